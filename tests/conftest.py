"""Shared fixtures: fake inference models so tests need no network weights."""

import sys
import logging
import pytest
import numpy as np
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from handtrack.exceptions import InferenceError

logging.getLogger('matplotlib').setLevel(logging.WARNING)


class FakeDetectorModel:
    """
    Returns fixed candidate rows in channels_first layout (1, 5, N).

    Rows are (cx, cy, w, h, confidence) in letterboxed input pixels.
    """

    def __init__(self, rows=None, error=None):
        self.rows = np.array(rows if rows is not None else [], dtype=np.float32).reshape(-1, 5)
        self.error = error
        self.calls = 0
        self.backend_target = None

    def forward(self, blob):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.rows.T[np.newaxis, ...]

    def set_backend_target(self, backend, target):
        self.backend_target = (backend, target)


class FakeLandmarkModel:
    """
    Returns (1, 22, grid, grid) heatmaps with every joint peaking at the
    same cell. A non-zero ``step`` moves that cell by (rows, cols) on every
    call.
    """

    def __init__(self, cell=(23, 23), grid=46, peak=0.9, channels=22, error=None, step=(0, 0)):
        self.cell = cell
        self.step = step
        self.grid = grid
        self.peak = peak
        self.channels = channels
        self.error = error
        self.calls = 0
        self.backend_target = None

    def forward(self, blob):
        self.calls += 1
        if self.error is not None:
            raise self.error
        heatmaps = np.zeros((1, self.channels, self.grid, self.grid), dtype=np.float32)
        moves = self.calls - 1
        row = min(self.cell[0] + self.step[0] * moves, self.grid - 1)
        col = min(self.cell[1] + self.step[1] * moves, self.grid - 1)
        heatmaps[0, :, row, col] = self.peak
        return heatmaps

    def set_backend_target(self, backend, target):
        self.backend_target = (backend, target)


@pytest.fixture
def frame():
    """640x480 BGR test frame."""
    return np.full((480, 640, 3), 40, dtype=np.uint8)


@pytest.fixture
def detector_model():
    """Detector returning one confident box centred in the letterbox."""
    # 640x480 -> 640: scale 1, pad_y 80, so this maps to (270, 190, 100, 100)
    return FakeDetectorModel(rows=[[320.0, 320.0, 100.0, 100.0, 0.9]])


@pytest.fixture
def landmark_model():
    return FakeLandmarkModel()


@pytest.fixture
def make_detector_model():
    """Factory for detectors with custom rows or errors."""
    return FakeDetectorModel


@pytest.fixture
def make_landmark_model():
    """Factory for landmark models with custom output."""
    return FakeLandmarkModel


@pytest.fixture
def broken_forward():
    """Exception raised by a failing backend."""
    return InferenceError("backend exploded")
