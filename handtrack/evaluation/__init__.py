"""Tracking metrics and visualization module."""

from .metrics import (
    TrackingMetrics,
    TrackingReport,
    compute_jitter,
    detection_rate,
    landmark_sequence,
)
from .visualization import ResultVisualizer

__all__ = [
    "TrackingMetrics",
    "TrackingReport",
    "compute_jitter",
    "detection_rate",
    "landmark_sequence",
    "ResultVisualizer",
]
