"""
Hand Box Detector

Runs a YOLO-style box-detection network on the full frame and turns its
raw candidate tensor into frame-space detections.

Pipeline:
1. Letterbox the frame to the square network input
2. Forward pass through the inference model
3. Reshape the output to rows of (cx, cy, w, h, confidence[, classes])
4. Confidence threshold
5. Centre form -> corner form, undo the letterbox, clip to the frame

Duplicate suppression is a separate step (see ``nms.py``).

Usage:
    from handtrack.detection.detector import HandDetector

    detector = HandDetector(model, input_size=640)
    detections = detector.detect(frame)
"""

import cv2
import numpy as np
from typing import List, Optional, Tuple

from ..exceptions import InferenceError
from ..geometry.boxes import BoundingBox, Detection
from ..geometry.letterbox import LetterboxTransform, DEFAULT_PAD_VALUE
from ..inference.backend import InferenceModel, run_forward
from ..utils.logging_utils import get_logger

logger = get_logger(__name__)


def is_valid_frame(frame: Optional[np.ndarray]) -> bool:
    """True for a non-empty (H, W[, C]) image."""
    return (
        frame is not None
        and isinstance(frame, np.ndarray)
        and frame.ndim >= 2
        and frame.shape[0] > 0
        and frame.shape[1] > 0
    )


def make_blob(image: np.ndarray, swap_rb: bool) -> np.ndarray:
    """Build a float32 NCHW blob with pixel values scaled to [0, 1]."""
    return cv2.dnn.blobFromImage(
        image,
        scalefactor=1.0 / 255.0,
        size=(image.shape[1], image.shape[0]),
        mean=(0, 0, 0),
        swapRB=swap_rb,
        crop=False
    )


class HandDetector:
    """
    Box detector stage.

    Output layouts:
        channels_first: (1, attrs, N), the Ultralytics YOLOv8/11 export
        channels_last:  (1, N, attrs)

    Score layouts:
        objectness:   column 4 is the confidence, columns 5+ (if any)
                      are per-class scores used for the class id
        class_scores: columns 4+ are per-class scores, the confidence
                      is their maximum
    """

    def __init__(
        self,
        model: Optional[InferenceModel] = None,
        input_size: int = 640,
        confidence_threshold: float = 0.3,
        output_layout: str = "channels_first",
        score_layout: str = "objectness",
        swap_rb: bool = True,
        pad_value: int = DEFAULT_PAD_VALUE
    ):
        """
        Args:
            model: Inference model, or None until one is loaded
            input_size: Square network input size
            confidence_threshold: Candidates below this are dropped
            output_layout: 'channels_first' or 'channels_last'
            score_layout: 'objectness' or 'class_scores'
            swap_rb: Convert BGR frames to RGB for the network
            pad_value: Letterbox fill value
        """
        if output_layout not in ('channels_first', 'channels_last'):
            raise ValueError(f"Unknown output_layout '{output_layout}'")
        if score_layout not in ('objectness', 'class_scores'):
            raise ValueError(f"Unknown score_layout '{score_layout}'")

        self.model = model
        self.input_size = input_size
        self.confidence_threshold = confidence_threshold
        self.output_layout = output_layout
        self.score_layout = score_layout
        self.swap_rb = swap_rb
        self.pad_value = pad_value

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """
        Detect hand boxes in a BGR frame.

        Args:
            frame: BGR image (H, W, 3)

        Returns:
            Detections in frame coordinates, in network output order.
            Empty if the frame is empty or no model is loaded.

        Raises:
            InferenceError: If the forward pass fails or the output
                cannot be interpreted
        """
        if self.model is None or not is_valid_frame(frame):
            return []

        h, w = frame.shape[:2]
        transform = LetterboxTransform.compute(w, h, self.input_size)
        blob = make_blob(transform.apply(frame, self.pad_value), self.swap_rb)

        output = run_forward(self.model, blob, "detector")
        candidates = self._candidate_rows(output)

        return self.decode(candidates, transform)

    def _candidate_rows(self, output: np.ndarray) -> np.ndarray:
        """Reshape raw network output to (N, attrs)."""
        output = np.asarray(output, dtype=np.float32)
        if output.ndim == 3:
            output = output[0]
        if output.ndim != 2:
            raise InferenceError(f"Unexpected detector output shape {output.shape}")

        if self.output_layout == 'channels_first':
            output = output.T

        if output.shape[0] > 0 and output.shape[1] < 5:
            raise InferenceError(
                f"Detector rows need at least 5 attributes, got {output.shape[1]}"
            )
        return output

    def _scores(self, rows: np.ndarray) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """Per-row confidence and class id (None for single-score rows)."""
        if self.score_layout == 'objectness':
            confidence = rows[:, 4]
            if rows.shape[1] > 5:
                class_ids = np.argmax(rows[:, 5:], axis=1)
            else:
                class_ids = None
        else:
            class_scores = rows[:, 4:]
            confidence = class_scores.max(axis=1)
            class_ids = np.argmax(class_scores, axis=1) if class_scores.shape[1] > 1 else None
        return confidence, class_ids

    def decode(
        self,
        rows: np.ndarray,
        transform: LetterboxTransform
    ) -> List[Detection]:
        """
        Convert candidate rows in letterbox space to frame detections.

        Args:
            rows: (N, attrs) array of (cx, cy, w, h, confidence, ...)
            transform: Letterbox used to build the network input

        Returns:
            Detections with positive area, clipped to the frame
        """
        if rows.size == 0:
            return []

        confidence, class_ids = self._scores(rows)
        mask = confidence >= self.confidence_threshold
        if not np.any(mask):
            return []

        rows = rows[mask]
        confidence = confidence[mask]
        if class_ids is not None:
            class_ids = class_ids[mask]

        cx, cy, bw, bh = rows[:, 0], rows[:, 1], rows[:, 2], rows[:, 3]
        corners = np.stack([cx - bw / 2, cy - bh / 2, cx + bw / 2, cy + bh / 2], axis=1)
        corners = transform.to_source_boxes(corners)

        detections = []
        for i, (x1, y1, x2, y2) in enumerate(corners):
            box = BoundingBox.from_xyxy(x1, y1, x2, y2).clip(
                transform.src_width, transform.src_height
            )
            if box is None:
                continue

            detections.append(Detection(
                box=box,
                score=float(np.clip(confidence[i], 0.0, 1.0)),
                class_id=int(class_ids[i]) if class_ids is not None else None
            ))

        logger.debug(f"Detector: {len(rows)} candidates above threshold, {len(detections)} kept")
        return detections
