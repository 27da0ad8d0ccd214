"""
Hand Tracking Package

Real-time 2D hand tracking from video frames: box detection, ROI
tracking, heatmap landmarks and temporal smoothing.
"""

__version__ = "1.0.0"

from . import geometry
from . import inference
from . import detection
from . import tracking
from . import hand
from . import data
from . import evaluation
from . import utils
