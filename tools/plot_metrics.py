"""
Plot per-frame joint angles of a subject swing, optionally against a model.

Usage:
    python tools/plot_metrics.py subject_skeleton.json [model_skeleton.json]
        [--handedness right] [--output data/visualizations/angles.png]
"""

import argparse
import json
from pathlib import Path

import matplotlib.pyplot as plt
from scipy.ndimage import uniform_filter1d

from swingsync.biomechanics import SwingBiomechanics
from swingsync.constants import MODEL_COLOR_RGB, SUBJECT_COLOR_RGB
from swingsync.pose import SkeletonSequence

PANELS = [
    ('hip_rotation', 'Hip Rotation'),
    ('shoulder_rotation', 'Shoulder Rotation'),
    ('front_knee_angle', 'Front Knee Angle'),
    ('lead_elbow_angle', 'Lead Elbow Angle'),
]


def load(path):
    with open(path) as f:
        return SkeletonSequence.from_records(json.load(f))


def plot_sequences(sequences, handedness='right', output=None, smooth=5):
    """
    Args:
        sequences: list of (label, SkeletonSequence, rgb colour)
        handedness: Picks lead/trail sides
        output: PNG path; shown interactively when None
        smooth: uniform_filter1d window (1 disables)
    """
    bio = SwingBiomechanics(handedness)
    fig, axes = plt.subplots(2, 2, figsize=(14, 8))

    for label, sequence, color in sequences:
        df = bio.frame_metrics(sequence)
        for ax, (column, title) in zip(axes.flat, PANELS):
            series = df[column].interpolate(limit_direction='both').to_numpy()
            if smooth > 1 and len(series) >= smooth:
                series = uniform_filter1d(series, size=smooth, mode='nearest')
            ax.plot(df['timestamp'], series, color=color, linewidth=2, label=label)
            ax.set_title(title, fontsize=12, fontweight='bold')
            ax.set_xlabel('Time (s)')
            ax.set_ylabel('Angle (degrees)')
            ax.grid(True, alpha=0.3)

    for ax in axes.flat:
        ax.legend()
    plt.tight_layout()

    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(output, dpi=150, bbox_inches='tight')
        print(f"Saved visualization to {output}")
    else:
        plt.show()
    return fig


def main():
    parser = argparse.ArgumentParser(description='Plot joint-angle timelines')
    parser.add_argument('subject', help='Subject skeleton sequence JSON')
    parser.add_argument('model', nargs='?', help='Model skeleton sequence JSON')
    parser.add_argument('--handedness', choices=['right', 'left'], default='right')
    parser.add_argument('--output', '-o', default=None)
    args = parser.parse_args()

    sequences = [('Player', load(args.subject), SUBJECT_COLOR_RGB)]
    if args.model:
        sequences.insert(0, ('Model', load(args.model), MODEL_COLOR_RGB))
    plot_sequences(sequences, args.handedness, args.output)


if __name__ == "__main__":
    main()
