"""Hand region tracking between detector runs."""

from .roi_tracker import RoiTracker, TrackedRegion, anchor_region

__all__ = [
    "RoiTracker",
    "TrackedRegion",
    "anchor_region",
]
