"""
Tracking Metrics

Ground-truth-free measures of tracking quality over a processed sequence:
- Detection rate: share of frames with at least one hand
- Landmark validity: share of reported joints that were located
- Jitter: mean frame-to-frame displacement of one joint of the best hand

Lower jitter at a similar detection rate is what the temporal smoother
is for, so running the same clip with smoothing on and off gives a quick
comparison.

Usage:
    from handtrack.evaluation.metrics import TrackingMetrics

    metrics = TrackingMetrics()
    report = metrics.evaluate(per_frame_hands)
"""

import numpy as np
from typing import List, Sequence
from dataclasses import dataclass

from ..hand.landmarks import HandResult, PALM_CENTER, best_hand


@dataclass
class TrackingReport:
    """Tracking evaluation results."""
    num_frames: int
    detection_rate: float
    mean_hands: float
    landmark_validity: float
    jitter: float


def landmark_sequence(
    frames: Sequence[Sequence[HandResult]],
    joint: int = PALM_CENTER
) -> np.ndarray:
    """
    Trajectory of one joint of the best hand in each frame.

    Args:
        frames: Per-frame pipeline outputs
        joint: Landmark index

    Returns:
        Shape (T, 2); NaN where there is no hand or the joint is invalid
    """
    sequence = np.full((len(frames), 2), np.nan)
    for t, hands in enumerate(frames):
        hand = best_hand(hands)
        if hand is None or not hand.has_landmarks:
            continue
        lm = hand.landmarks[joint]
        if lm.valid:
            sequence[t] = lm.point
    return sequence


def compute_jitter(sequence: np.ndarray) -> float:
    """
    Mean displacement between consecutive frames.

    Steps touching a NaN are ignored; 0.0 when no step is available.
    """
    if len(sequence) < 2:
        return 0.0

    steps = np.linalg.norm(np.diff(sequence, axis=0), axis=1)
    steps = steps[~np.isnan(steps)]
    if len(steps) == 0:
        return 0.0
    return float(np.mean(steps))


def detection_rate(frames: Sequence[Sequence[HandResult]]) -> float:
    """Fraction of frames with at least one hand."""
    if len(frames) == 0:
        return 0.0
    return sum(1 for hands in frames if len(hands) > 0) / len(frames)


class TrackingMetrics:
    """Summary metrics for a sequence of pipeline outputs."""

    def __init__(self, joint: int = PALM_CENTER):
        """
        Args:
            joint: Landmark used for the jitter measure
        """
        self.joint = joint

    def evaluate(self, frames: Sequence[Sequence[HandResult]]) -> TrackingReport:
        """
        Evaluate a processed sequence.

        Args:
            frames: One list of hands per frame

        Returns:
            TrackingReport
        """
        num_frames = len(frames)
        total_hands = sum(len(hands) for hands in frames)

        landmarks: List = [lm for hands in frames for hand in hands for lm in hand.landmarks]
        validity = (
            sum(1 for lm in landmarks if lm.valid) / len(landmarks)
            if landmarks else 0.0
        )

        return TrackingReport(
            num_frames=num_frames,
            detection_rate=detection_rate(frames),
            mean_hands=total_hands / num_frames if num_frames > 0 else 0.0,
            landmark_validity=validity,
            jitter=compute_jitter(landmark_sequence(frames, self.joint))
        )
