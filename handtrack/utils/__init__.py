"""Utility functions and classes."""

from .config import (
    load_config,
    save_config,
    merge_configs,
    Config,
    DetectorConfig,
    LandmarkConfig,
    TrackingConfig,
    SmoothingConfig,
)
from .logging_utils import setup_logging, get_logger

__all__ = [
    "load_config",
    "save_config",
    "merge_configs",
    "Config",
    "DetectorConfig",
    "LandmarkConfig",
    "TrackingConfig",
    "SmoothingConfig",
    "setup_logging",
    "get_logger",
]
