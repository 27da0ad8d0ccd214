"""
Bounding Box Geometry

Integer frame-space boxes and the overlap measures used by suppression
and tracking.

Boxes are stored as (x, y, width, height) in frame pixels. A box that
has been clipped to a frame always lies inside [0, W) x [0, H) and has
positive area; clipping a box that falls outside the frame yields None.

Usage:
    from handtrack.geometry.boxes import BoundingBox

    box = BoundingBox.from_xyxy(10.2, 20.7, 110.0, 140.4)
    box = box.clip(640, 480)
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned integer box in frame pixel coordinates."""
    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def y2(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    @property
    def area(self) -> int:
        if self.width <= 0 or self.height <= 0:
            return 0
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def to_xyxy(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x2, self.y2)

    def to_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> 'BoundingBox':
        """
        Build a box from corner coordinates, rounding each corner.

        The width is derived from the rounded corners so that adjacent
        boxes sharing an edge stay adjacent after rounding.
        """
        left = int(round(x1))
        top = int(round(y1))
        right = int(round(x2))
        bottom = int(round(y2))
        return cls(left, top, right - left, bottom - top)

    def clip(self, frame_width: int, frame_height: int) -> Optional['BoundingBox']:
        """
        Clip the box to [0, frame_width) x [0, frame_height).

        Returns:
            Clipped box, or None if nothing with positive area remains
        """
        left = max(0, min(self.x, frame_width))
        top = max(0, min(self.y, frame_height))
        right = max(0, min(self.x2, frame_width))
        bottom = max(0, min(self.y2, frame_height))

        if right - left <= 0 or bottom - top <= 0:
            return None
        return BoundingBox(left, top, right - left, bottom - top)

    def shifted(self, dx: int, dy: int) -> 'BoundingBox':
        return BoundingBox(self.x + dx, self.y + dy, self.width, self.height)

    def iou(self, other: 'BoundingBox') -> float:
        return box_iou(self, other)


def box_iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Intersection over union of two boxes.

    Returns 0.0 when either box is degenerate.
    """
    inter_w = min(a.x2, b.x2) - max(a.x, b.x)
    inter_h = min(a.y2, b.y2) - max(a.y, b.y)
    if inter_w <= 0 or inter_h <= 0:
        return 0.0

    inter = inter_w * inter_h
    union = a.area + b.area - inter
    if union <= 0:
        return 0.0
    return inter / union


@dataclass
class Detection:
    """A scored detector candidate in frame coordinates."""
    box: BoundingBox
    score: float
    class_id: Optional[int] = None
