"""
SwingSync - Command-Line Pipeline
=================================
Extract, analyze, compare and replay swings side by side.

Commands:
1. extract  video -> skeleton sequence JSON (+ pose CSV, frame metrics, masks)
2. analyze  sequence -> reference-frame metrics + kinematic sequence
3. compare  model + subject sequences -> signed metric differences
4. render   video + sequences -> synchronized preview window or video file

Usage:
    python pipeline.py extract data/raw_videos/swing_001.mp4 --isolate
    python pipeline.py analyze data/extracted_poses/swing_001_skeleton.json --impact 84
    python pipeline.py compare model.json subject.json --model-impact 90 --subject-impact 84
    python pipeline.py render swing_001.mp4 --subject subject.json --model model.json --mode split
"""

import sys
import json
import logging
import argparse
from pathlib import Path

import pandas as pd
from tqdm import tqdm

from swingsync import config
from swingsync.config import ExtractionOptions, RenderOptions
from swingsync.errors import SwingSyncError
from swingsync.pose import SkeletonSequence, extract_from_file
from swingsync.video import IsolationMask
from swingsync.render import align_to_canonical, render_to_file, run_preview
from swingsync.biomechanics import (Handedness, SwingBiomechanics, SwingComparator,
                                    kinematic_sequence)


# ============================================
# FILE HELPERS
# ============================================

def load_sequence(path) -> SkeletonSequence:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sequence not found: {path}")
    if path.suffix.lower() == '.csv':
        return SkeletonSequence.read_csv(path)
    with open(path) as f:
        return SkeletonSequence.from_records(json.load(f))


def load_masks(path):
    with open(path) as f:
        return [IsolationMask.from_record(record) for record in json.load(f)]


def save_json(data, path):
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


class SwingSyncPipeline:
    """
    Drives the swingsync library for the command line.

    Args:
        output_base_dir: Base directory for extraction outputs
        handedness: Hitter handedness used by metrics
    """

    def __init__(self, output_base_dir=None, handedness='right'):
        self.output_base_dir = Path(output_base_dir or config.DATA_DIR)
        self.poses_dir = self.output_base_dir / 'extracted_poses'
        self.metrics_dir = self.output_base_dir / 'metrics'
        self.handedness = Handedness.parse(handedness)

    def extract(self, video_path, isolate=False, model_path=None):
        """
        Run extraction and write all artifacts next to each other.

        Returns:
            dict of output paths
        """
        video_path = Path(video_path)
        for directory in [self.poses_dir, self.metrics_dir]:
            directory.mkdir(parents=True, exist_ok=True)

        print("\n" + "=" * 70)
        print("🏌️ SWINGSYNC - EXTRACTION")
        print("=" * 70)
        print(f"📹 Input: {video_path}")
        print("=" * 70 + "\n")

        options = ExtractionOptions(isolation_enabled=isolate)
        with tqdm(total=0, desc='Extracting', unit='frame') as bar:
            def on_progress(p):
                bar.total = p.frames_total
                bar.n = p.frames_processed
                bar.set_postfix(eta=f"{p.estimated_seconds_remaining:.0f}s")
                bar.refresh()

            result = extract_from_file(video_path, options=options, progress=on_progress,
                                       model_path=model_path)

        stem = video_path.stem
        outputs = {
            'sequence': self.poses_dir / f"{stem}_skeleton.json",
            'poses_csv': self.poses_dir / f"{stem}_poses.csv",
            'frame_metrics_csv': self.metrics_dir / f"{stem}_frame_metrics.csv",
        }
        save_json(result.sequence.to_records(), outputs['sequence'])
        result.sequence.to_csv(outputs['poses_csv'])
        SwingBiomechanics(self.handedness).frame_metrics(result.sequence).to_csv(
            outputs['frame_metrics_csv'], index=False)
        if result.masks:
            outputs['masks'] = self.poses_dir / f"{stem}_masks.json"
            save_json([mask.to_record() for mask in result.masks], outputs['masks'])

        summary = result.summary()
        print(f"\n   ✓ Frames: {summary['frames_extracted']}/{summary['frames_targeted']} "
              f"at {summary['sampling_rate']:.1f} fps ({summary['frames_skipped']} skipped)")
        print(f"   ✓ Quality score: {summary['quality_score']:.2f}")
        for warning in result.warnings:
            print(f"   ⚠️  {warning}")
        for name, path in outputs.items():
            print(f"   📁 {name:<18} {path}")
        return outputs

    def analyze(self, sequence_path, impact, output=None):
        sequence = load_sequence(sequence_path)
        metrics = SwingBiomechanics(self.handedness).analyze(sequence, impact)
        kinematics = kinematic_sequence(sequence, impact, self.handedness)

        print("\n" + "=" * 70)
        print(f"📈 METRICS @ frame {impact} ({self.handedness.value}-handed)")
        print("=" * 70)
        for key, value in metrics.to_record().items():
            if key in ('reference_frame', 'handedness'):
                continue
            shown = 'unavailable' if value is None else f"{value:.1f}"
            print(f"   • {key:<26} {shown}")

        print("\n   Kinematic sequence: " + ' → '.join(kinematics.order))
        for segment, peak in kinematics.peaks.items():
            print(f"   • {segment:<10} peak {peak.peak_velocity:7.1f} deg/s, "
                  f"{peak.ms_before_reference:6.0f} ms before reference")

        if output:
            save_json({'metrics': metrics.to_record(),
                       'kinematic_sequence': kinematics.to_record()}, output)
            print(f"\n   ✓ Saved to: {output}")
        return metrics

    def compare(self, model_path, subject_path, model_impact, subject_impact, output=None,
                model_handedness=None):
        """
        Metric differences of a subject swing against a model swing.

        Args:
            model_handedness: Handedness of the model hitter (defaults to the subject's)
        """
        model_hand = Handedness.parse(model_handedness or self.handedness)
        model = SwingBiomechanics(model_hand).analyze(load_sequence(model_path), model_impact)
        subject = SwingBiomechanics(self.handedness).analyze(
            load_sequence(subject_path), subject_impact)
        table = SwingComparator().comparison_table(model, subject)

        print("\n" + "=" * 70)
        print("⚖️  SUBJECT vs MODEL (difference = subject - model)")
        print("=" * 70)
        with pd.option_context('display.float_format', '{:.1f}'.format):
            print(table.to_string(index=False, na_rep='-'))

        if output:
            table.to_csv(output, index=False)
            print(f"\n   ✓ Saved to: {output}")
        return table

    def render(self, video_path, subject_path=None, model_path=None, masks_path=None,
               mode='overlay', impact=None, isolate=False, scale_model=False, output=None):
        options = RenderOptions()
        fps = options.canonical_fps

        subject = model = None
        masks = []
        if subject_path:
            subject_raw = load_sequence(subject_path)
            raw_masks = load_masks(masks_path) if masks_path else []
            subject, masks = align_to_canonical(subject_raw, raw_masks, fps)
        if model_path:
            model_raw = load_sequence(model_path)
            if scale_model and subject_path:
                model_raw = model_raw.scaled_to(subject_raw)
            model, _ = align_to_canonical(model_raw, None, fps)

        impact_frame = None
        if impact is not None:
            rate = subject_raw.fps if subject_path else fps
            impact_frame = int(round(impact / rate * fps))

        if output:
            written = render_to_file(video_path, output, model, subject, masks, mode,
                                     impact_frame, isolate, options)
            print(f"   ✓ Rendered {written} frames to: {output}")
        else:
            run_preview(video_path, model, subject, masks, mode, impact_frame, isolate, options)


def build_parser():
    parser = argparse.ArgumentParser(description='SwingSync - swing capture and comparison')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--handedness', choices=['right', 'left'], default='right',
                        help='Hitter handedness (default: right)')
    sub = parser.add_subparsers(dest='command')

    p = sub.add_parser('extract', help='Extract a skeleton sequence from a video')
    p.add_argument('video', help='Path to video file')
    p.add_argument('--isolate', action='store_true', help='Compute athlete masks')
    p.add_argument('--model', type=str, default=None, help='PoseLandmarker .task file')
    p.add_argument('--output-dir', type=str, default=None, help='Output base directory')

    p = sub.add_parser('analyze', help='Metrics at a reference frame')
    p.add_argument('sequence', help='Skeleton sequence (.json or .csv)')
    p.add_argument('--impact', type=int, required=True, help='Reference frame index')
    p.add_argument('--output', '-o', type=str, default=None, help='Save metrics JSON')

    p = sub.add_parser('compare', help='Compare subject metrics with model metrics')
    p.add_argument('model', help='Model skeleton sequence')
    p.add_argument('subject', help='Subject skeleton sequence')
    p.add_argument('--model-impact', type=int, required=True)
    p.add_argument('--subject-impact', type=int, required=True)
    p.add_argument('--model-handedness', choices=['right', 'left'], default=None,
                   help='Model hitter handedness (default: --handedness)')
    p.add_argument('--output', '-o', type=str, default=None, help='Save comparison CSV')

    p = sub.add_parser('render', help='Synchronized playback')
    p.add_argument('video', help='Video shown under the skeletons')
    p.add_argument('--subject', type=str, default=None, help='Subject skeleton sequence')
    p.add_argument('--model', type=str, default=None, help='Model skeleton sequence')
    p.add_argument('--masks', type=str, default=None, help='Subject isolation masks JSON')
    p.add_argument('--mode', choices=['overlay', 'split'], default='overlay')
    p.add_argument('--impact', type=int, default=None, help='Impact frame (subject index)')
    p.add_argument('--isolate', action='store_true', help='Dim background using masks')
    p.add_argument('--scale-model', action='store_true', help='Scale model onto subject')
    p.add_argument('--output', '-o', type=str, default=None, help='Write video instead of preview')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if args.command is None:
        parser.print_help()
        return 0

    pipeline = SwingSyncPipeline(getattr(args, 'output_dir', None), args.handedness)
    try:
        if args.command == 'extract':
            pipeline.extract(args.video, isolate=args.isolate, model_path=args.model)
        elif args.command == 'analyze':
            pipeline.analyze(args.sequence, args.impact, args.output)
        elif args.command == 'compare':
            pipeline.compare(args.model, args.subject, args.model_impact,
                             args.subject_impact, args.output, args.model_handedness)
        elif args.command == 'render':
            pipeline.render(args.video, args.subject, args.model, args.masks, args.mode,
                            args.impact, args.isolate, args.scale_model, args.output)
    except FileNotFoundError as e:
        print(f"\n❌ ERROR: {e}")
        print("Please check the path and try again.")
        return 1
    except SwingSyncError as e:
        print(f"\n❌ ERROR: {e}")
        if e.guidance:
            print(f"   {e.guidance}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
