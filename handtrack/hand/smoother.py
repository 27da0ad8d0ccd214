"""
Temporal Smoother for Tracked Hands

Online (causal) jitter reduction for the per-frame hand results.

Each frame:
1. Match current hands to the previous frame's tracked hands by nearest
   centroid (greedy, in current-hand order, within ``max_match_distance``)
2. Exponentially smooth every point of a matched hand against its
   previous output
3. Hold the last valid value of a point that drops out, for at most
   ``hold_invalid_frames`` consecutive frames

Unmatched hands start new, unsmoothed tracks. Previous tracks that find
no current hand are dropped, or kept (not emitted) for up to
``keep_unmatched_frames`` frames so a briefly lost hand can re-attach.

Modes:
    landmarks: the 21 landmarks are the smoothed points
    box:       the ROI (x, y, w, h) is smoothed as one 4-D point

Usage:
    from handtrack.hand.smoother import TemporalSmoother
    from handtrack.utils.config import SmoothingConfig

    smoother = TemporalSmoother(SmoothingConfig(ema_alpha=0.3), mode="landmarks")
    for hands in per_frame_hands:
        smoothed = smoother.smooth(hands, frame_size=(w, h))
"""

import numpy as np
from dataclasses import dataclass, replace
from scipy.spatial.distance import cdist
from typing import List, Optional, Sequence, Tuple

from ..geometry.boxes import BoundingBox
from ..utils.config import SmoothingConfig
from ..utils.logging_utils import get_logger
from .landmarks import HandResult, Landmark

logger = get_logger(__name__)


SMOOTHER_MODES = ('landmarks', 'box')


@dataclass
class SmoothingState:
    """Smoothed output of one tracked hand, kept for the next frame."""
    values: np.ndarray       # (P, D) last output per point
    valid: np.ndarray        # (P,) bool
    staleness: np.ndarray    # (P,) frames each point has been held
    confidence: np.ndarray   # (P,)
    centroid: Tuple[float, float]
    missed: int = 0


def ema_update(
    previous: np.ndarray,
    current: np.ndarray,
    alpha: float
) -> np.ndarray:
    """
    Exponential moving average step ``prev + alpha * (cur - prev)``.

    The result is clamped to lie between ``previous`` and ``current``
    component-wise, and equals ``previous`` exactly when the two match.
    """
    blended = previous + alpha * (current - previous)
    low = np.minimum(previous, current)
    high = np.maximum(previous, current)
    return np.clip(blended, low, high)


class TemporalSmoother:
    """
    Nearest-centroid track matching plus per-point EMA with hold-over.

    Attributes:
        config: Active smoothing configuration
        mode: 'landmarks' or 'box'
    """

    def __init__(self, config: Optional[SmoothingConfig] = None, mode: str = "landmarks"):
        """
        Args:
            config: Smoothing parameters (defaults if None)
            mode: Which points to smooth, 'landmarks' or 'box'
        """
        if mode not in SMOOTHER_MODES:
            raise ValueError(f"mode must be one of {SMOOTHER_MODES}, got '{mode}'")

        self.config = (config or SmoothingConfig()).validate()
        self.mode = mode
        self._states: List[SmoothingState] = []

    @property
    def num_tracks(self) -> int:
        return len(self._states)

    def set_config(self, config: SmoothingConfig):
        """Replace the smoothing parameters; tracked state is kept."""
        self.config = config.validate()

    def reset(self):
        """Forget every tracked hand."""
        self._states = []

    def smooth(
        self,
        hands: Sequence[HandResult],
        frame_size: Optional[Tuple[int, int]] = None
    ) -> List[HandResult]:
        """
        Smooth one frame of hand results.

        Args:
            hands: Current frame's hands, in pipeline order
            frame_size: (width, height) used to re-clip smoothed boxes

        Returns:
            Smoothed hands, one per input hand, in the same order
        """
        if not self.config.enabled:
            self._states = []
            return list(hands)

        matches = self._match(hands)

        outputs = []
        new_states = []
        for hand, prev_index in zip(hands, matches):
            prev = self._states[prev_index] if prev_index is not None else None
            result, state = self._update(hand, prev, frame_size)
            outputs.append(result)
            if state is not None:
                new_states.append(state)

        # Previous tracks nobody matched
        matched = {m for m in matches if m is not None}
        for i, state in enumerate(self._states):
            if i in matched:
                continue
            state.missed += 1
            if state.missed <= self.config.keep_unmatched_frames:
                new_states.append(state)

        self._states = new_states
        return outputs

    def _match(self, hands: Sequence[HandResult]) -> List[Optional[int]]:
        """Index of the matched previous state for each current hand."""
        matches: List[Optional[int]] = [None] * len(hands)
        if not hands or not self._states:
            return matches

        current = np.array([h.centroid for h in hands], dtype=np.float64)
        previous = np.array([s.centroid for s in self._states], dtype=np.float64)
        distances = cdist(current, previous)

        taken = np.zeros(len(self._states), dtype=bool)
        for i in range(len(hands)):
            row = np.where(taken, np.inf, distances[i])
            j = int(np.argmin(row))
            if row[j] < self.config.max_match_distance:
                matches[i] = j
                taken[j] = True
            else:
                logger.debug(f"Hand {i}: no track within {self.config.max_match_distance}px, starting new track")
        return matches

    def _points(self, hand: HandResult) -> Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]]:
        """(values, valid, confidence) for the points this mode smooths."""
        if self.mode == 'box':
            values = np.array([hand.roi.to_tuple()], dtype=np.float64)
            return values, np.ones(1, dtype=bool), np.array([hand.score], dtype=np.float64)

        if not hand.has_landmarks:
            return None
        values = np.array([lm.point for lm in hand.landmarks], dtype=np.float64)
        valid = np.array([lm.valid for lm in hand.landmarks], dtype=bool)
        confidence = np.array([lm.confidence for lm in hand.landmarks], dtype=np.float64)
        return values, valid, confidence

    def _update(
        self,
        hand: HandResult,
        prev: Optional[SmoothingState],
        frame_size: Optional[Tuple[int, int]]
    ) -> Tuple[HandResult, Optional[SmoothingState]]:
        points = self._points(hand)
        if points is None:
            return hand, None
        cur_values, cur_valid, cur_conf = points

        if prev is None or prev.values.shape != cur_values.shape:
            values = cur_values.copy()
            valid = cur_valid.copy()
            staleness = np.zeros(len(valid), dtype=np.int64)
            confidence = cur_conf.copy()
        else:
            values, valid, staleness, confidence = self._blend(prev, cur_values, cur_valid, cur_conf)

        result = self._build_result(hand, values, valid, confidence, frame_size)
        state = SmoothingState(
            values=values,
            valid=valid,
            staleness=staleness,
            confidence=confidence,
            centroid=result.centroid,
        )
        return result, state

    def _blend(
        self,
        prev: SmoothingState,
        cur_values: np.ndarray,
        cur_valid: np.ndarray,
        cur_conf: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        hold_limit = self.config.hold_invalid_frames

        values = cur_values.copy()
        valid = cur_valid.copy()
        staleness = np.zeros(len(cur_valid), dtype=np.int64)
        confidence = cur_conf.copy()

        both = cur_valid & prev.valid
        values[both] = ema_update(prev.values[both], cur_values[both], self.config.ema_alpha)

        hold = ~cur_valid & prev.valid & (prev.staleness < hold_limit)
        values[hold] = prev.values[hold]
        valid[hold] = True
        staleness[hold] = prev.staleness[hold] + 1
        confidence[hold] = prev.confidence[hold]

        return values, valid, staleness, confidence

    def _build_result(
        self,
        hand: HandResult,
        values: np.ndarray,
        valid: np.ndarray,
        confidence: np.ndarray,
        frame_size: Optional[Tuple[int, int]]
    ) -> HandResult:
        if self.mode == 'box':
            x, y, w, h = (int(round(v)) for v in values[0])
            roi = BoundingBox(x, y, w, h)
            if frame_size is not None:
                roi = roi.clip(frame_size[0], frame_size[1]) or hand.roi
            return replace(hand, roi=roi, landmarks=list(hand.landmarks))

        landmarks = [
            Landmark(float(values[i, 0]), float(values[i, 1]), True, float(confidence[i]))
            if valid[i] else Landmark.invalid(float(confidence[i]))
            for i in range(len(valid))
        ]
        return replace(hand, landmarks=landmarks)
