"""
Shared Constants for SwingSync
==============================
Landmark vocabulary, skeleton edges and drawing colours used across the project.
"""

# MediaPipe Pose landmark vocabulary. Order is fixed: every SkeletonFrame
# carries exactly these 33 keypoints in exactly this order.
LANDMARK_NAMES = [
    'nose', 'left_eye_inner', 'left_eye', 'left_eye_outer',
    'right_eye_inner', 'right_eye', 'right_eye_outer',
    'left_ear', 'right_ear', 'mouth_left', 'mouth_right',
    'left_shoulder', 'right_shoulder', 'left_elbow', 'right_elbow',
    'left_wrist', 'right_wrist', 'left_pinky', 'right_pinky',
    'left_index', 'right_index', 'left_thumb', 'right_thumb',
    'left_hip', 'right_hip', 'left_knee', 'right_knee',
    'left_ankle', 'right_ankle', 'left_heel', 'right_heel',
    'left_foot_index', 'right_foot_index'
]

NUM_LANDMARKS = 33
LANDMARK_INDICES = {name: idx for idx, name in enumerate(LANDMARK_NAMES)}

# Body-only connectivity drawn by the renderer (no face, no fingers)
SKELETON_EDGES = [
    (11, 12), (11, 13), (13, 15), (12, 14), (14, 16),
    (11, 23), (12, 24), (23, 24),
    (23, 25), (25, 27), (27, 29), (29, 31),
    (24, 26), (26, 28), (28, 30), (30, 32)
]

# Torso anchors used to seed foreground isolation
TORSO_LANDMARKS = ['left_shoulder', 'right_shoulder', 'left_hip', 'right_hip']

# Colours (BGR format for OpenCV)
MODEL_COLOR_BGR = (129, 185, 16)      # #10B981 green
SUBJECT_COLOR_BGR = (36, 191, 251)    # #FBBF24 yellow
IMPACT_COLOR_BGR = (68, 68, 239)      # #EF4444 red
LABEL_TEXT_BGR = (255, 255, 255)
LABEL_BACKING_BGR = (0, 0, 0)
DIVIDER_COLOR_BGR = (77, 77, 77)

# Colours for matplotlib (RGB format)
MODEL_COLOR_RGB = (16 / 255, 185 / 255, 129 / 255)
SUBJECT_COLOR_RGB = (251 / 255, 191 / 255, 36 / 255)
