"""Hand landmarks, per-region keypoint estimation and temporal smoothing."""

from .landmarks import (
    HandResult,
    Landmark,
    best_hand,
    NUM_LANDMARKS,
    LANDMARK_NAMES,
    HAND_CONNECTIONS,
    FINGERTIP_INDICES,
    PALM_CENTER,
    WRIST,
)
from .landmark_estimator import LandmarkEstimator, decode_heatmaps
from .smoother import TemporalSmoother, SmoothingState, ema_update

__all__ = [
    "HandResult",
    "Landmark",
    "best_hand",
    "NUM_LANDMARKS",
    "LANDMARK_NAMES",
    "HAND_CONNECTIONS",
    "FINGERTIP_INDICES",
    "PALM_CENTER",
    "WRIST",
    "LandmarkEstimator",
    "decode_heatmaps",
    "TemporalSmoother",
    "SmoothingState",
    "ema_update",
]
