"""Tests for tracking metrics and visualization."""

import pytest
import numpy as np
import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

sys.path.insert(0, str(Path(__file__).parent.parent))

from handtrack.evaluation.metrics import (
    TrackingMetrics,
    compute_jitter,
    detection_rate,
    landmark_sequence,
)
from handtrack.evaluation.visualization import ResultVisualizer
from handtrack.geometry.boxes import BoundingBox
from handtrack.hand.landmarks import HandResult, Landmark, NUM_LANDMARKS, PALM_CENTER


def make_hand(x, y, score=0.9, invalid=()):
    landmarks = [
        Landmark.invalid() if i in invalid else Landmark(float(x), float(y), True, 0.5)
        for i in range(NUM_LANDMARKS)
    ]
    return HandResult(roi=BoundingBox(int(x) - 30, int(y) - 30, 60, 60), score=score, landmarks=landmarks)


class TestMetrics:
    """Tests for sequence metrics."""

    def test_landmark_sequence_gaps(self):
        frames = [
            [make_hand(100, 100)],
            [],
            [make_hand(110, 100, invalid=(PALM_CENTER,))],
            [make_hand(120, 100)],
        ]
        seq = landmark_sequence(frames)
        assert seq.shape == (4, 2)
        assert tuple(seq[0]) == (100.0, 100.0)
        assert np.all(np.isnan(seq[1]))
        assert np.all(np.isnan(seq[2]))

    def test_landmark_sequence_uses_best_hand(self):
        frames = [[make_hand(10, 10, score=0.2), make_hand(50, 50, score=0.8)]]
        assert tuple(landmark_sequence(frames)[0]) == (50.0, 50.0)

    def test_jitter(self):
        seq = np.array([[0.0, 0.0], [3.0, 4.0], [3.0, 4.0], [np.nan, np.nan], [10.0, 10.0]])
        assert compute_jitter(seq) == pytest.approx(2.5)

    def test_jitter_short(self):
        assert compute_jitter(np.zeros((1, 2))) == 0.0

    def test_detection_rate(self):
        assert detection_rate([[make_hand(1, 1)], [], [make_hand(1, 1)], []]) == 0.5
        assert detection_rate([]) == 0.0

    def test_evaluate(self):
        frames = [
            [make_hand(100, 100)],
            [make_hand(103, 104, invalid=(0,)), make_hand(300, 300, score=0.1)],
            [],
        ]
        report = TrackingMetrics().evaluate(frames)

        assert report.num_frames == 3
        assert report.detection_rate == pytest.approx(2 / 3)
        assert report.mean_hands == pytest.approx(1.0)
        assert report.landmark_validity == pytest.approx(62 / 63)
        assert report.jitter == pytest.approx(5.0)


class TestResultVisualizer:
    """Tests for ResultVisualizer."""

    def test_draw_hands(self, frame):
        visualizer = ResultVisualizer()
        hand = make_hand(200, 200, invalid=(4,))
        out = visualizer.draw_hands(frame, [hand])

        assert out.shape == frame.shape
        assert not np.array_equal(out, frame)
        # Input frame untouched
        assert np.all(frame == 40)

    def test_draw_box_only_hand(self, frame):
        hand = HandResult(roi=BoundingBox(10, 10, 50, 50), score=0.5)
        out = ResultVisualizer().draw_hands(frame, [hand])
        assert out.shape == frame.shape

    def test_plot_landmark_trajectory(self, tmp_path):
        visualizer = ResultVisualizer(output_dir=str(tmp_path))
        raw = np.random.default_rng(0).normal(size=(30, 2))
        fig = visualizer.plot_landmark_trajectory(raw, raw * 0.5, joint=PALM_CENTER, save_name="traj.png")

        assert fig is not None
        assert (tmp_path / "traj.png").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
