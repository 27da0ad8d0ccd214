"""
Hand Landmarks and Per-Frame Results

Canonical 21-Keypoint Structure:
    0: Wrist
    1-4: Thumb (CMC, MCP, IP, TIP)
    5-8: Index (MCP, PIP, DIP, TIP)
    9-12: Middle (MCP, PIP, DIP, TIP)
    13-16: Ring (MCP, PIP, DIP, TIP)
    17-20: Little (MCP, PIP, DIP, TIP)

Positions are fixed: consumers index joints directly (e.g. index 9, the
middle-finger base, as a palm-centre proxy). Joints the network could
not locate are kept in place, flagged invalid, with coordinates (-1, -1).

Usage:
    from handtrack.hand.landmarks import HandResult, PALM_CENTER

    palm = hand.landmarks[PALM_CENTER]
    if palm.valid:
        anchor = (palm.x, palm.y)
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..geometry.boxes import BoundingBox


NUM_LANDMARKS = 21
INVALID_COORD = -1.0

LANDMARK_NAMES = [
    'wrist',
    'thumb_cmc', 'thumb_mcp', 'thumb_ip', 'thumb_tip',
    'index_mcp', 'index_pip', 'index_dip', 'index_tip',
    'middle_mcp', 'middle_pip', 'middle_dip', 'middle_tip',
    'ring_mcp', 'ring_pip', 'ring_dip', 'ring_tip',
    'little_mcp', 'little_pip', 'little_dip', 'little_tip'
]

WRIST = 0
PALM_CENTER = 9  # middle_mcp
FINGERTIP_INDICES = [4, 8, 12, 16, 20]

HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),  # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),  # Index
    (0, 9), (9, 10), (10, 11), (11, 12),  # Middle
    (0, 13), (13, 14), (14, 15), (15, 16),  # Ring
    (0, 17), (17, 18), (18, 19), (19, 20),  # Little
    (5, 9), (9, 13), (13, 17)  # Palm
]


@dataclass(frozen=True)
class Landmark:
    """A single 2D keypoint in frame pixels."""
    x: float
    y: float
    valid: bool = True
    confidence: float = 0.0  # heatmap peak value

    @classmethod
    def invalid(cls, confidence: float = 0.0) -> 'Landmark':
        return cls(INVALID_COORD, INVALID_COORD, False, confidence)

    @property
    def point(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass
class HandResult:
    """One tracked hand in one frame."""
    roi: BoundingBox
    score: float = 0.0
    landmarks: List[Landmark] = field(default_factory=list)
    class_id: Optional[int] = None

    @property
    def has_landmarks(self) -> bool:
        return len(self.landmarks) == NUM_LANDMARKS

    @property
    def valid_count(self) -> int:
        return sum(1 for lm in self.landmarks if lm.valid)

    @property
    def centroid(self) -> Tuple[float, float]:
        """Mean of the valid landmarks, or the ROI centre if there are none."""
        valid = [lm.point for lm in self.landmarks if lm.valid]
        if not valid:
            return self.roi.center
        pts = np.asarray(valid, dtype=np.float64)
        cx, cy = pts.mean(axis=0)
        return (float(cx), float(cy))

    @property
    def palm_center(self) -> Optional[Tuple[float, float]]:
        """Middle-finger base if it is valid, else None."""
        if not self.has_landmarks:
            return None
        lm = self.landmarks[PALM_CENTER]
        return lm.point if lm.valid else None

    @property
    def fingertips(self) -> List[Landmark]:
        if not self.has_landmarks:
            return []
        return [self.landmarks[i] for i in FINGERTIP_INDICES]

    def landmark_array(self) -> np.ndarray:
        """
        Landmarks as an array.

        Returns:
            Shape (21, 2) float array, NaN for invalid joints, or
            shape (0, 2) when the hand carries no landmarks
        """
        if not self.landmarks:
            return np.zeros((0, 2))
        arr = np.array([lm.point for lm in self.landmarks], dtype=np.float64)
        mask = np.array([not lm.valid for lm in self.landmarks])
        arr[mask] = np.nan
        return arr

    def to_dict(self) -> dict:
        """JSON-friendly representation."""
        return {
            'roi': list(self.roi.to_tuple()),
            'score': self.score,
            'class_id': self.class_id,
            'landmarks': [
                {'x': lm.x, 'y': lm.y, 'valid': lm.valid, 'confidence': lm.confidence}
                for lm in self.landmarks
            ]
        }


def best_hand(hands: Sequence[HandResult]) -> Optional[HandResult]:
    """
    Highest-scoring hand.

    Ties go to the hand that appears first in the list.
    """
    best = None
    for hand in hands:
        if best is None or hand.score > best.score:
            best = hand
    return best
