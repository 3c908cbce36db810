"""
Inspect video properties and the extraction plan each clip would get:
fps, resolution, duration, adaptive sampling rate, sampled frame count.

Usage:
    python tools/inspect_videos.py [video_dir]
"""

import sys
from pathlib import Path

import pandas as pd

from swingsync.config import ExtractionOptions
from swingsync.errors import SwingSyncError
from swingsync.video import FrameSampler, inspect_video


def plan_row(video_file, sampler, options):
    meta = inspect_video(video_file)
    row = {
        'Video': video_file.stem,
        'FPS': round(meta.fps, 2),
        'Resolution': meta.resolution,
        'Frames': meta.frame_count,
        'Duration (sec)': round(meta.duration, 2),
    }
    if meta.duration <= 0:
        row['Status'] = 'unreadable'
    elif meta.duration > options.hard_duration_limit:
        row['Status'] = 'rejected'
    else:
        plan = sampler.plan(meta.duration)
        row['Sample FPS'] = round(plan.rate, 2)
        row['Samples'] = plan.count
        row['Status'] = 'long' if meta.duration > options.soft_duration_limit else 'ok'
    return row


def main(video_dir='data/raw_videos'):
    options = ExtractionOptions()
    sampler = FrameSampler.from_options(options)
    results = []

    print("\n" + "=" * 80)
    print("VIDEO INSPECTION REPORT")
    print("=" * 80 + "\n")

    for video_file in sorted(Path(video_dir).glob('**/*.mp4')):
        try:
            row = plan_row(video_file, sampler, options)
        except SwingSyncError as e:
            print(f"✗ {video_file.stem}: {e}")
            continue
        results.append(row)
        print(f"✓ {row['Video']}: {row['Resolution']} @ {row['FPS']} fps, "
              f"{row['Duration (sec)']}s -> {row['Status']}")

    df = pd.DataFrame(results)
    if len(results) > 0:
        print("\n" + "=" * 80)
        print("SUMMARY")
        print("=" * 80)
        print(f"Total videos: {len(results)}")
        print(f"Rejected (> {options.hard_duration_limit:.0f}s): "
              f"{int((df['Status'] == 'rejected').sum())}")
        print("\nDetailed Table:")
        print(df.to_string(index=False, na_rep='-'))
        print("=" * 80 + "\n")
    return df


if __name__ == "__main__":
    main(*sys.argv[1:2])
