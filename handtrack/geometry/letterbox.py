"""
Letterbox Transform

Aspect-preserving resize plus symmetric padding to a fixed square network
input, and the inverse mapping back to source-image coordinates.

Both inference stages use the same transform: the detector letterboxes
the full frame, the landmark stage letterboxes each ROI crop.

Usage:
    from handtrack.geometry.letterbox import LetterboxTransform

    lb = LetterboxTransform.compute(640, 480, 640)
    net_input = lb.apply(frame)
    x, y = lb.to_source_point(320.0, 300.0)
"""

import cv2
import numpy as np
from dataclasses import dataclass
from typing import Tuple


DEFAULT_PAD_VALUE = 114


@dataclass(frozen=True)
class LetterboxTransform:
    """
    Parameters of a letterbox mapping from a source image to a square.

    Source coordinates map to target coordinates as
    ``target = source * scale + pad``; the inverse is
    ``source = (target - pad) / scale``.
    """
    src_width: int
    src_height: int
    size: int
    scale: float
    resized_width: int
    resized_height: int
    pad_x: int
    pad_y: int

    @classmethod
    def compute(cls, src_width: int, src_height: int, size: int) -> 'LetterboxTransform':
        """
        Compute the transform for a source of the given size.

        Args:
            src_width: Source image width in pixels
            src_height: Source image height in pixels
            size: Side length of the square target

        Returns:
            LetterboxTransform
        """
        if src_width <= 0 or src_height <= 0:
            raise ValueError(f"Source size must be positive, got {src_width}x{src_height}")
        if size <= 0:
            raise ValueError(f"Target size must be positive, got {size}")

        scale = min(size / src_width, size / src_height)
        resized_w = min(size, max(1, int(round(src_width * scale))))
        resized_h = min(size, max(1, int(round(src_height * scale))))

        return cls(
            src_width=src_width,
            src_height=src_height,
            size=size,
            scale=scale,
            resized_width=resized_w,
            resized_height=resized_h,
            pad_x=(size - resized_w) // 2,
            pad_y=(size - resized_h) // 2,
        )

    def apply(self, image: np.ndarray, pad_value: int = DEFAULT_PAD_VALUE) -> np.ndarray:
        """
        Resize and pad an image to ``size x size``.

        Args:
            image: Image of shape (src_height, src_width[, C])
            pad_value: Fill value for the padded border

        Returns:
            Letterboxed image with the same dtype and channel count
        """
        h, w = image.shape[:2]
        if (w, h) != (self.src_width, self.src_height):
            raise ValueError(
                f"Image is {w}x{h}, transform was computed for "
                f"{self.src_width}x{self.src_height}"
            )

        if (w, h) != (self.resized_width, self.resized_height):
            image = cv2.resize(
                image, (self.resized_width, self.resized_height),
                interpolation=cv2.INTER_LINEAR
            )

        right = self.size - self.resized_width - self.pad_x
        bottom = self.size - self.resized_height - self.pad_y
        if image.ndim == 3:
            value = [pad_value] * image.shape[2]
        else:
            value = pad_value

        return cv2.copyMakeBorder(
            image, self.pad_y, bottom, self.pad_x, right,
            cv2.BORDER_CONSTANT, value=value
        )

    def to_target_point(self, x: float, y: float) -> Tuple[float, float]:
        """Map a source point into letterboxed coordinates."""
        return (x * self.scale + self.pad_x, y * self.scale + self.pad_y)

    def to_source_point(self, x: float, y: float) -> Tuple[float, float]:
        """Map a letterboxed point back to the source, clipped to its bounds."""
        sx = (x - self.pad_x) / self.scale
        sy = (y - self.pad_y) / self.scale
        sx = min(max(sx, 0.0), float(self.src_width))
        sy = min(max(sy, 0.0), float(self.src_height))
        return (sx, sy)

    def to_source_boxes(self, boxes_xyxy: np.ndarray) -> np.ndarray:
        """
        Vectorised inverse for an (N, 4) array of corner boxes.

        Returns:
            (N, 4) float array clipped to the source bounds
        """
        if boxes_xyxy.size == 0:
            return boxes_xyxy.reshape(0, 4).astype(np.float32)

        boxes = boxes_xyxy.astype(np.float32).copy()
        boxes[:, [0, 2]] -= self.pad_x
        boxes[:, [1, 3]] -= self.pad_y
        boxes /= self.scale
        boxes[:, [0, 2]] = np.clip(boxes[:, [0, 2]], 0, self.src_width)
        boxes[:, [1, 3]] = np.clip(boxes[:, [1, 3]], 0, self.src_height)
        return boxes
