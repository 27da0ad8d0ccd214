#!/usr/bin/env python
"""
Video Processing Script

Runs the hand tracking pipeline over a whole video:
1. Load the models named in the config
2. Track hands frame by frame
3. Write an annotated copy of the video
4. Save per-frame results and a tracking summary as JSON

Usage:
    python scripts/process_video.py --config configs/default.yaml --input clip.mp4
"""

import argparse
from pathlib import Path
import json
import cv2
from tqdm import tqdm
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from handtrack.data.video_utils import VideoProcessor
from handtrack.evaluation.metrics import TrackingMetrics
from handtrack.evaluation.visualization import ResultVisualizer
from handtrack.pipeline import HandTrackingPipeline
from handtrack.utils.config import load_config
from handtrack.utils.logging_utils import setup_logging, get_logger

logger = get_logger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Track hands in a video file")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Configuration file"
    )
    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Input video file"
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        default="./outputs",
        help="Output directory"
    )
    parser.add_argument(
        "--max_frames",
        type=int,
        default=None,
        help="Maximum frames to process"
    )
    parser.add_argument(
        "--no_video",
        action="store_true",
        help="Skip writing the annotated video"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()

    setup_logging(frame_debug=args.verbose, use_tqdm=True)
    config = load_config(args.config)
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    pipeline = HandTrackingPipeline(config)
    ok, message = pipeline.load_from_config()
    if not ok:
        logger.error(f"Could not load models: {message}")
        sys.exit(1)

    visualizer = ResultVisualizer()
    stem = Path(args.input).stem

    all_hands = []
    frame_records = []
    writer = None

    with VideoProcessor(args.input) as video:
        info = video.info
        total = info.frame_count if info.frame_count > 0 else None
        if args.max_frames and total:
            total = min(total, args.max_frames)

        if not args.no_video:
            video_path = output_dir / f"{stem}_tracked.mp4"
            writer = cv2.VideoWriter(
                str(video_path),
                cv2.VideoWriter_fourcc(*'mp4v'),
                info.fps if info.fps > 0 else 30.0,
                info.resolution
            )

        try:
            for frame_idx, frame in tqdm(video.frames(max_frames=args.max_frames),
                                         total=total, desc=f"Tracking {stem}"):
                hands = pipeline.infer(frame)
                all_hands.append(hands)
                frame_records.append({
                    'frame': frame_idx,
                    'hands': [hand.to_dict() for hand in hands]
                })

                if writer is not None:
                    writer.write(visualizer.draw_hands(frame, hands))
        finally:
            if writer is not None:
                writer.release()

    # Summary
    report = TrackingMetrics().evaluate(all_hands)
    logger.info(f"\nTracking complete!")
    logger.info(f"Frames: {report.num_frames}, detection rate: {report.detection_rate:.1%}, "
                f"jitter: {report.jitter:.2f}px")

    results_path = output_dir / f"{stem}_hands.json"
    with open(results_path, 'w') as f:
        json.dump({
            'input': args.input,
            'summary': {
                'num_frames': report.num_frames,
                'detection_rate': report.detection_rate,
                'mean_hands': report.mean_hands,
                'landmark_validity': report.landmark_validity,
                'jitter': report.jitter,
            },
            'stats': pipeline.stats.to_dict(),
            'frames': frame_records
        }, f, indent=2)
    logger.info(f"Results saved to: {results_path}")


if __name__ == "__main__":
    main()
