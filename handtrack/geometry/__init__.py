"""Frame-space geometry: boxes, overlap and letterboxing."""

from .boxes import BoundingBox, Detection, box_iou
from .letterbox import LetterboxTransform, DEFAULT_PAD_VALUE

__all__ = [
    "BoundingBox",
    "Detection",
    "box_iou",
    "LetterboxTransform",
    "DEFAULT_PAD_VALUE",
]
