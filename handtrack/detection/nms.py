"""
Non-Max Suppression

Greedy removal of duplicate, heavily-overlapping detections.

The highest-scoring remaining candidate is always kept; every other
candidate overlapping it with IoU >= threshold is dropped. Equal scores
keep their input order, so the result is deterministic.
"""

import numpy as np
from typing import List, Sequence

from ..geometry.boxes import Detection


def non_max_suppression(
    detections: Sequence[Detection],
    iou_threshold: float = 0.5
) -> List[int]:
    """
    Greedy NMS over a list of detections.

    Args:
        detections: Candidate detections in frame coordinates
        iou_threshold: Overlap at or above which a candidate is suppressed

    Returns:
        Indices of kept detections, in descending-score order
    """
    if not 0.0 <= iou_threshold <= 1.0:
        raise ValueError(f"iou_threshold must be in [0, 1], got {iou_threshold}")

    if len(detections) == 0:
        return []

    boxes = np.array([d.box.to_xyxy() for d in detections], dtype=np.float64)
    scores = np.array([d.score for d in detections], dtype=np.float64)

    x1, y1, x2, y2 = boxes.T
    areas = np.maximum(0.0, x2 - x1) * np.maximum(0.0, y2 - y1)

    # Stable sort so that ties keep first-seen order
    order = np.argsort(-scores, kind='stable')
    keep = []

    while order.size > 0:
        i = order[0]
        keep.append(int(i))
        rest = order[1:]

        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
        union = areas[i] + areas[rest] - inter
        iou = np.where(union > 0, inter / np.maximum(union, 1e-12), 0.0)

        order = rest[iou < iou_threshold]

    return keep


def suppress(
    detections: Sequence[Detection],
    iou_threshold: float = 0.5
) -> List[Detection]:
    """Return the detections that survive NMS, best first."""
    return [detections[i] for i in non_max_suppression(detections, iou_threshold)]
