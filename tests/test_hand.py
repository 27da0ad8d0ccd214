"""Tests for hand landmarks, the landmark estimator and temporal smoothing."""

import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from handtrack.exceptions import ConfigError, InferenceError
from handtrack.geometry.boxes import BoundingBox
from handtrack.geometry.letterbox import LetterboxTransform
from handtrack.hand.landmarks import HandResult, Landmark, best_hand, NUM_LANDMARKS, PALM_CENTER
from handtrack.hand.landmark_estimator import LandmarkEstimator, decode_heatmaps
from handtrack.hand.smoother import TemporalSmoother, ema_update
from handtrack.utils.config import SmoothingConfig


def make_hand(x=100.0, y=100.0, invalid=(), score=0.9, roi=None):
    """Hand whose joint i sits at (x + i, y + i)."""
    landmarks = [
        Landmark.invalid() if i in invalid else Landmark(x + i, y + i, True, 0.8)
        for i in range(NUM_LANDMARKS)
    ]
    if roi is None:
        roi = BoundingBox(int(x) - 20, int(y) - 20, 60, 60)
    return HandResult(roi=roi, score=score, landmarks=landmarks)


def points(hand):
    return [(lm.x, lm.y, lm.valid) for lm in hand.landmarks]


class TestHandResult:
    """Tests for HandResult and landmark helpers."""

    def test_centroid_uses_valid_landmarks(self):
        hand = make_hand(invalid=range(1, NUM_LANDMARKS))
        assert hand.centroid == (100.0, 100.0)

    def test_centroid_falls_back_to_roi(self):
        hand = HandResult(roi=BoundingBox(0, 0, 10, 20))
        assert hand.centroid == (5.0, 10.0)

    def test_invalid_landmark_sentinel(self):
        lm = Landmark.invalid()
        assert not lm.valid
        assert lm.point == (-1.0, -1.0)

    def test_landmark_array_nan_for_invalid(self):
        arr = make_hand(invalid=(3,)).landmark_array()
        assert arr.shape == (21, 2)
        assert np.all(np.isnan(arr[3]))
        assert arr[4, 0] == 104.0

    def test_palm_center(self):
        assert make_hand().palm_center == (109.0, 109.0)
        assert make_hand(invalid=(PALM_CENTER,)).palm_center is None

    def test_fingertips(self):
        tips = make_hand().fingertips
        assert [t.x for t in tips] == [104.0, 108.0, 112.0, 116.0, 120.0]

    def test_best_hand(self):
        a = make_hand(score=0.7)
        b = make_hand(score=0.9)
        c = make_hand(score=0.9)
        assert best_hand([a, b, c]) is b
        assert best_hand([]) is None

    def test_to_dict(self):
        data = make_hand(invalid=(0,)).to_dict()
        assert data['roi'] == [80, 80, 60, 60]
        assert len(data['landmarks']) == 21
        assert data['landmarks'][0]['valid'] is False


class TestDecodeHeatmaps:
    """Tests for heatmap decoding."""

    def test_peak_mapped_to_frame(self):
        roi = BoundingBox(50, 60, 100, 100)
        transform = LetterboxTransform.compute(100, 100, 368)
        heatmaps = np.zeros((22, 46, 46), dtype=np.float32)
        heatmaps[:, 10, 20] = 0.9

        landmarks = decode_heatmaps(heatmaps, transform, roi, 0.05)

        assert len(landmarks) == 21
        # Cell centre (164, 84) / 3.68 + ROI origin
        assert landmarks[0].x == pytest.approx(50 + 164 / 3.68)
        assert landmarks[0].y == pytest.approx(60 + 84 / 3.68)
        assert landmarks[0].confidence == pytest.approx(0.9)

    def test_below_threshold_is_invalid(self):
        roi = BoundingBox(0, 0, 100, 100)
        transform = LetterboxTransform.compute(100, 100, 368)
        heatmaps = np.zeros((22, 46, 46), dtype=np.float32)
        heatmaps[:, 5, 5] = 0.01

        landmarks = decode_heatmaps(heatmaps, transform, roi, 0.05)

        assert all(not lm.valid for lm in landmarks)
        assert all(lm.point == (-1.0, -1.0) for lm in landmarks)

    def test_joints_decoded_independently(self):
        roi = BoundingBox(0, 0, 100, 100)
        transform = LetterboxTransform.compute(100, 100, 368)
        heatmaps = np.zeros((22, 46, 46), dtype=np.float32)
        heatmaps[:21, 23, 23] = 0.5
        heatmaps[7] = 0.0

        landmarks = decode_heatmaps(heatmaps, transform, roi, 0.05)

        assert not landmarks[7].valid
        assert sum(lm.valid for lm in landmarks) == 20

    def test_positions_stay_inside_roi(self):
        roi = BoundingBox(30, 40, 50, 200)
        transform = LetterboxTransform.compute(50, 200, 368)
        heatmaps = np.zeros((22, 46, 46), dtype=np.float32)
        heatmaps[:, 45, 0] = 1.0  # bottom-left cell, inside the side padding

        for lm in decode_heatmaps(heatmaps, transform, roi, 0.05):
            assert roi.x <= lm.x <= roi.x2 - 1
            assert roi.y <= lm.y <= roi.y2 - 1


class TestLandmarkEstimator:
    """Tests for LandmarkEstimator."""

    def test_estimate(self, frame, make_landmark_model):
        model = make_landmark_model(cell=(10, 20))
        estimator = LandmarkEstimator(model, input_size=368)

        hand = estimator.estimate(frame, BoundingBox(50, 60, 100, 100), score=0.8)

        assert model.calls == 1
        assert hand.roi == BoundingBox(50, 60, 100, 100)
        assert hand.score == 0.8
        assert hand.valid_count == 21
        assert hand.landmarks[0].x == pytest.approx(50 + 164 / 3.68)

    def test_region_is_clipped(self, frame, landmark_model):
        hand = LandmarkEstimator(landmark_model).estimate(frame, BoundingBox(600, 400, 100, 100))
        assert hand.roi == BoundingBox(600, 400, 40, 80)

    def test_region_outside_frame(self, frame, landmark_model):
        estimator = LandmarkEstimator(landmark_model)
        assert estimator.estimate(frame, BoundingBox(700, 10, 50, 50)) is None
        assert landmark_model.calls == 0

    def test_too_few_channels(self, frame, make_landmark_model):
        estimator = LandmarkEstimator(make_landmark_model(channels=5))
        with pytest.raises(InferenceError):
            estimator.estimate(frame, BoundingBox(50, 60, 100, 100))

    def test_forward_failure(self, frame, make_landmark_model):
        estimator = LandmarkEstimator(make_landmark_model(error=RuntimeError("oom")))
        with pytest.raises(InferenceError):
            estimator.estimate(frame, BoundingBox(50, 60, 100, 100))


class TestEmaUpdate:
    """Tests for the per-point update rule."""

    def test_idempotent(self):
        prev = np.array([[3.7, -2.1]])
        for alpha in (0.05, 0.3, 0.77, 1.0):
            np.testing.assert_array_equal(ema_update(prev, prev.copy(), alpha), prev)

    def test_between_previous_and_current(self):
        rng = np.random.default_rng(2)
        for _ in range(100):
            prev = rng.normal(size=(21, 2)) * 100
            cur = rng.normal(size=(21, 2)) * 100
            alpha = float(rng.uniform(0.01, 1.0))
            out = ema_update(prev, cur, alpha)
            assert np.all(out >= np.minimum(prev, cur))
            assert np.all(out <= np.maximum(prev, cur))

    def test_value(self):
        out = ema_update(np.array([100.0]), np.array([110.0]), 0.3)
        assert out[0] == pytest.approx(103.0)


class TestTemporalSmoother:
    """Tests for TemporalSmoother."""

    def test_first_frame_unchanged(self):
        smoother = TemporalSmoother(SmoothingConfig(), mode="landmarks")
        hand = make_hand()
        out = smoother.smooth([hand])
        assert points(out[0]) == points(hand)

    def test_same_input_is_idempotent(self):
        for alpha in (0.1, 0.5, 1.0):
            smoother = TemporalSmoother(SmoothingConfig(ema_alpha=alpha), mode="landmarks")
            smoother.smooth([make_hand()])
            out = smoother.smooth([make_hand()])
            assert points(out[0]) == points(make_hand())

    def test_smoothing_moves_toward_current(self):
        smoother = TemporalSmoother(SmoothingConfig(ema_alpha=0.3), mode="landmarks")
        smoother.smooth([make_hand(x=100.0)])
        out = smoother.smooth([make_hand(x=110.0)])

        assert out[0].landmarks[0].x == pytest.approx(103.0)
        assert out[0].landmarks[0].y == pytest.approx(100.0)

    def test_hold_for_k_frames(self):
        """K invalid frames report the last valid point; the next reports invalid."""
        smoother = TemporalSmoother(SmoothingConfig(hold_invalid_frames=3), mode="landmarks")
        smoother.smooth([make_hand()])

        for _ in range(3):
            out = smoother.smooth([make_hand(invalid=(5,))])
            assert out[0].landmarks[5].valid
            assert out[0].landmarks[5].point == (105.0, 105.0)

        out = smoother.smooth([make_hand(invalid=(5,))])
        assert not out[0].landmarks[5].valid
        assert out[0].landmarks[5].point == (-1.0, -1.0)

    def test_zero_hold(self):
        smoother = TemporalSmoother(SmoothingConfig(hold_invalid_frames=0), mode="landmarks")
        smoother.smooth([make_hand()])
        out = smoother.smooth([make_hand(invalid=(5,))])
        assert not out[0].landmarks[5].valid

    def test_recovered_point_taken_as_is(self):
        smoother = TemporalSmoother(SmoothingConfig(hold_invalid_frames=0), mode="landmarks")
        smoother.smooth([make_hand(invalid=(5,))])
        out = smoother.smooth([make_hand(x=102.0, invalid=())])
        assert out[0].landmarks[5].x == 107.0

    def test_jump_starts_new_track(self):
        """A centroid jump beyond max_match_distance is not smoothed."""
        smoother = TemporalSmoother(SmoothingConfig(max_match_distance=120.0), mode="landmarks")
        smoother.smooth([make_hand(x=100.0, y=100.0)])
        jumped = make_hand(x=400.0, y=400.0)
        out = smoother.smooth([jumped])
        assert points(out[0]) == points(jumped)

    def test_tracks_follow_their_hand(self):
        smoother = TemporalSmoother(SmoothingConfig(ema_alpha=0.5), mode="landmarks")
        smoother.smooth([make_hand(x=100.0), make_hand(x=400.0)])

        out = smoother.smooth([make_hand(x=410.0), make_hand(x=90.0)])

        assert out[0].landmarks[0].x == pytest.approx(405.0)
        assert out[1].landmarks[0].x == pytest.approx(95.0)

    def test_unmatched_state_dropped_by_default(self):
        smoother = TemporalSmoother(SmoothingConfig(ema_alpha=0.3), mode="landmarks")
        smoother.smooth([make_hand(x=100.0)])
        assert smoother.smooth([]) == []
        assert smoother.num_tracks == 0

        out = smoother.smooth([make_hand(x=110.0)])
        assert out[0].landmarks[0].x == 110.0

    def test_keep_unmatched_frames(self):
        config = SmoothingConfig(ema_alpha=0.3, keep_unmatched_frames=1)
        smoother = TemporalSmoother(config, mode="landmarks")
        smoother.smooth([make_hand(x=100.0)])
        assert smoother.smooth([]) == []

        out = smoother.smooth([make_hand(x=110.0)])
        assert out[0].landmarks[0].x == pytest.approx(103.0)

    def test_box_mode(self):
        smoother = TemporalSmoother(SmoothingConfig(ema_alpha=0.5), mode="box")
        smoother.smooth([HandResult(roi=BoundingBox(100, 100, 50, 50), score=0.9)])
        out = smoother.smooth([HandResult(roi=BoundingBox(110, 100, 50, 50), score=0.9)])
        assert out[0].roi == BoundingBox(105, 100, 50, 50)

    def test_box_mode_reclips(self):
        smoother = TemporalSmoother(SmoothingConfig(ema_alpha=0.5), mode="box")
        smoother.smooth([HandResult(roi=BoundingBox(600, 100, 40, 50))], frame_size=(640, 480))
        out = smoother.smooth([HandResult(roi=BoundingBox(620, 100, 40, 50))], frame_size=(640, 480))
        assert out[0].roi.x2 <= 640

    def test_disabled_passes_through(self):
        smoother = TemporalSmoother(SmoothingConfig(enabled=False), mode="landmarks")
        hands = [make_hand(x=100.0)]
        assert smoother.smooth(hands) == hands
        out = smoother.smooth([make_hand(x=110.0)])
        assert out[0].landmarks[0].x == 110.0
        assert smoother.num_tracks == 0

    def test_reset(self):
        smoother = TemporalSmoother(SmoothingConfig(), mode="landmarks")
        smoother.smooth([make_hand()])
        smoother.reset()
        assert smoother.num_tracks == 0

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            TemporalSmoother(SmoothingConfig(), mode="auto")

    def test_invalid_config(self):
        with pytest.raises(ConfigError):
            TemporalSmoother(SmoothingConfig(ema_alpha=0.0))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
