"""Hand box detection and duplicate suppression."""

from .detector import HandDetector, is_valid_frame, make_blob
from .nms import non_max_suppression, suppress

__all__ = [
    "HandDetector",
    "is_valid_frame",
    "make_blob",
    "non_max_suppression",
    "suppress",
]
