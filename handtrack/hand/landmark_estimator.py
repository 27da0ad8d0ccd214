"""
Hand Landmark Estimator

Runs a heatmap keypoint network (OpenPose hand layout) on each tracked
hand region and decodes the 21 joints into frame coordinates.

Pipeline per region:
1. Clip the region to the frame and crop it
2. Letterbox the crop to the square network input
3. Forward pass -> (1, C, H, W) heatmaps, one channel per joint
   (C >= 21; the OpenPose model adds a background channel)
4. Per joint: argmax cell, threshold, map the cell centre back through
   the letterbox and offset by the region origin

Usage:
    from handtrack.hand.landmark_estimator import LandmarkEstimator

    estimator = LandmarkEstimator(model, input_size=368)
    hand = estimator.estimate(frame, roi)
    if hand is not None:
        print(hand.valid_count)
"""

import numpy as np
from typing import List, Optional

from ..detection.detector import is_valid_frame, make_blob
from ..exceptions import InferenceError
from ..geometry.boxes import BoundingBox
from ..geometry.letterbox import LetterboxTransform, DEFAULT_PAD_VALUE
from ..inference.backend import InferenceModel, run_forward
from ..utils.logging_utils import get_logger
from .landmarks import HandResult, Landmark, NUM_LANDMARKS

logger = get_logger(__name__)


def decode_heatmaps(
    heatmaps: np.ndarray,
    transform: LetterboxTransform,
    roi: BoundingBox,
    threshold: float
) -> List[Landmark]:
    """
    Decode the first 21 heatmap channels into frame-space landmarks.

    Args:
        heatmaps: (C, H, W) array with C >= 21
        transform: Letterbox that produced the network input from the crop
        roi: Frame-space region the crop was taken from
        threshold: Minimum peak value for a joint to count as found

    Returns:
        21 landmarks in canonical order; missing joints are invalid
        with coordinates (-1, -1)
    """
    _, grid_h, grid_w = heatmaps.shape
    step_x = transform.size / grid_w
    step_y = transform.size / grid_h

    landmarks = []
    for joint in range(NUM_LANDMARKS):
        heatmap = heatmaps[joint]
        row, col = np.unravel_index(int(np.argmax(heatmap)), heatmap.shape)
        peak = float(heatmap[row, col])

        if not peak >= threshold:
            landmarks.append(Landmark.invalid(peak))
            continue

        # Cell centre in letterboxed input pixels
        px = (col + 0.5) * step_x
        py = (row + 0.5) * step_y
        cx, cy = transform.to_source_point(px, py)

        x = min(max(roi.x + cx, float(roi.x)), float(roi.x2 - 1))
        y = min(max(roi.y + cy, float(roi.y)), float(roi.y2 - 1))
        landmarks.append(Landmark(x, y, True, peak))

    return landmarks


class LandmarkEstimator:
    """
    Per-region keypoint stage.

    Attributes:
        model: Inference model producing (1, C, H, W) heatmaps
        input_size: Square network input size
        confidence_threshold: Heatmap peak needed for a valid joint
    """

    def __init__(
        self,
        model: Optional[InferenceModel] = None,
        input_size: int = 368,
        confidence_threshold: float = 0.05,
        swap_rb: bool = False,
        pad_value: int = DEFAULT_PAD_VALUE
    ):
        self.model = model
        self.input_size = input_size
        self.confidence_threshold = confidence_threshold
        self.swap_rb = swap_rb
        self.pad_value = pad_value

    def estimate(
        self,
        frame: np.ndarray,
        region: BoundingBox,
        score: float = 0.0,
        class_id: Optional[int] = None
    ) -> Optional[HandResult]:
        """
        Locate the 21 hand joints inside one region.

        Args:
            frame: BGR image (H, W, 3)
            region: Hand region in frame coordinates
            score: Detection score carried into the result
            class_id: Detection class carried into the result

        Returns:
            HandResult for the clipped region, or None when there is no
            model, the frame is empty or the region has no area in frame

        Raises:
            InferenceError: If the forward pass fails or the output is not
                a (1, C>=21, H, W) heatmap tensor
        """
        if self.model is None or not is_valid_frame(frame):
            return None

        h, w = frame.shape[:2]
        roi = region.clip(w, h)
        if roi is None:
            return None

        crop = frame[roi.y:roi.y2, roi.x:roi.x2]
        transform = LetterboxTransform.compute(roi.width, roi.height, self.input_size)
        blob = make_blob(transform.apply(crop, self.pad_value), self.swap_rb)

        output = np.asarray(run_forward(self.model, blob, "landmarks"))
        if output.ndim != 4 or output.shape[0] != 1 or output.shape[1] < NUM_LANDMARKS:
            raise InferenceError(
                f"Expected (1, >={NUM_LANDMARKS}, H, W) heatmaps, got {output.shape}"
            )
        if output.shape[2] == 0 or output.shape[3] == 0:
            raise InferenceError(f"Empty heatmap grid {output.shape}")

        landmarks = decode_heatmaps(output[0], transform, roi, self.confidence_threshold)
        return HandResult(roi=roi, score=score, landmarks=landmarks, class_id=class_id)
