"""
Configuration Management

Handles loading and merging configuration files.

Usage:
    from handtrack.utils.config import load_config

    config = load_config('configs/default.yaml')
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict

from ..exceptions import ConfigError


SMOOTHING_MODES = ('auto', 'landmarks', 'box')
OUTPUT_LAYOUTS = ('channels_first', 'channels_last')
SCORE_LAYOUTS = ('objectness', 'class_scores')


@dataclass
class DetectorConfig:
    """Box detector (YOLO-style ONNX) configuration."""
    model_path: Optional[str] = "models/yolo11s_hand.onnx"
    input_size: int = 640
    confidence_threshold: float = 0.3
    nms_iou_threshold: float = 0.5
    output_layout: str = "channels_first"
    score_layout: str = "objectness"
    swap_rb: bool = True


@dataclass
class LandmarkConfig:
    """Heatmap keypoint network (OpenPose hand, Caffe) configuration."""
    enabled: bool = True
    proto_path: Optional[str] = "models/pose_deploy.prototxt"
    weights_path: Optional[str] = "models/pose_iter_102000.caffemodel"
    input_size: int = 368
    confidence_threshold: float = 0.05
    swap_rb: bool = False


@dataclass
class TrackingConfig:
    """ROI tracker configuration."""
    detection_every: int = 5
    damping: float = 0.9
    max_step_fraction: float = 1.0 / 6.0
    anchor_x: int = 50


@dataclass
class SmoothingConfig:
    """Temporal smoothing configuration."""
    enabled: bool = True
    ema_alpha: float = 0.3            # 0..1, higher = more responsive
    max_match_distance: float = 120.0  # pixels between hand centroids
    hold_invalid_frames: int = 3
    keep_unmatched_frames: int = 0
    mode: str = "auto"

    def validate(self) -> 'SmoothingConfig':
        """Raise ConfigError if any value is out of range."""
        if not 0.0 < self.ema_alpha <= 1.0:
            raise ConfigError(f"ema_alpha must be in (0, 1], got {self.ema_alpha}")
        if self.max_match_distance <= 0:
            raise ConfigError(f"max_match_distance must be positive, got {self.max_match_distance}")
        if self.hold_invalid_frames < 0:
            raise ConfigError(f"hold_invalid_frames must be >= 0, got {self.hold_invalid_frames}")
        if self.keep_unmatched_frames < 0:
            raise ConfigError(f"keep_unmatched_frames must be >= 0, got {self.keep_unmatched_frames}")
        if self.mode not in SMOOTHING_MODES:
            raise ConfigError(f"mode must be one of {SMOOTHING_MODES}, got '{self.mode}'")
        return self


@dataclass
class Config:
    """Main configuration container."""
    project_name: str = "handtrack"
    version: str = "1.0.0"

    # Inference backend
    backend: str = "cpu"
    target: str = "cpu"

    # Sub-configurations
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    landmarks: LandmarkConfig = field(default_factory=LandmarkConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)

    def validate(self) -> 'Config':
        """Raise ConfigError if any value is out of range."""
        det = self.detector
        if det.input_size <= 0:
            raise ConfigError(f"detector.input_size must be positive, got {det.input_size}")
        if not 0.0 <= det.confidence_threshold <= 1.0:
            raise ConfigError("detector.confidence_threshold must be in [0, 1]")
        if not 0.0 <= det.nms_iou_threshold <= 1.0:
            raise ConfigError("detector.nms_iou_threshold must be in [0, 1]")
        if det.output_layout not in OUTPUT_LAYOUTS:
            raise ConfigError(f"detector.output_layout must be one of {OUTPUT_LAYOUTS}")
        if det.score_layout not in SCORE_LAYOUTS:
            raise ConfigError(f"detector.score_layout must be one of {SCORE_LAYOUTS}")

        if self.landmarks.input_size <= 0:
            raise ConfigError("landmarks.input_size must be positive")

        trk = self.tracking
        if trk.detection_every < 0:
            raise ConfigError("tracking.detection_every must be >= 0")
        if not 0.0 <= trk.damping <= 1.0:
            raise ConfigError("tracking.damping must be in [0, 1]")
        if trk.max_step_fraction < 0:
            raise ConfigError("tracking.max_step_fraction must be >= 0")

        self.smoothing.validate()
        return self

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'Config':
        """Create Config from dictionary."""
        config = cls()
        config_dict = config_dict or {}

        # Project settings
        project = config_dict.get('project', {})
        config.project_name = project.get('name', config.project_name)
        config.version = project.get('version', config.version)

        # Backend settings
        inference = config_dict.get('inference', {})
        config.backend = inference.get('backend', config.backend)
        config.target = inference.get('target', config.target)

        # Detector config
        detector = config_dict.get('detector', {})
        config.detector = DetectorConfig(
            model_path=detector.get('model_path', config.detector.model_path),
            input_size=detector.get('input_size', 640),
            confidence_threshold=detector.get('confidence_threshold', 0.3),
            nms_iou_threshold=detector.get('nms_iou_threshold', 0.5),
            output_layout=detector.get('output_layout', 'channels_first'),
            score_layout=detector.get('score_layout', 'objectness'),
            swap_rb=detector.get('swap_rb', True)
        )

        # Landmark config
        landmarks = config_dict.get('landmarks', {})
        config.landmarks = LandmarkConfig(
            enabled=landmarks.get('enabled', True),
            proto_path=landmarks.get('proto_path', config.landmarks.proto_path),
            weights_path=landmarks.get('weights_path', config.landmarks.weights_path),
            input_size=landmarks.get('input_size', 368),
            confidence_threshold=landmarks.get('confidence_threshold', 0.05),
            swap_rb=landmarks.get('swap_rb', False)
        )

        # Tracking config
        tracking = config_dict.get('tracking', {})
        config.tracking = TrackingConfig(
            detection_every=tracking.get('detection_every', 5),
            damping=tracking.get('damping', 0.9),
            max_step_fraction=tracking.get('max_step_fraction', 1.0 / 6.0),
            anchor_x=tracking.get('anchor_x', 50)
        )

        # Smoothing config
        smoothing = config_dict.get('smoothing', {})
        config.smoothing = SmoothingConfig(
            enabled=smoothing.get('enabled', True),
            ema_alpha=smoothing.get('ema_alpha', 0.3),
            max_match_distance=smoothing.get('max_match_distance', 120.0),
            hold_invalid_frames=smoothing.get('hold_invalid_frames', 3),
            keep_unmatched_frames=smoothing.get('keep_unmatched_frames', 0),
            mode=smoothing.get('mode', 'auto')
        )

        return config.validate()


def load_config(config_path: str) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file

    Returns:
        Config object
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r') as f:
        config_dict = yaml.safe_load(f)

    return Config.from_dict(config_dict or {})


def merge_configs(base: Dict, override: Dict) -> Dict:
    """
    Merge two config dictionaries.

    Args:
        base: Base configuration
        override: Override values

    Returns:
        Merged configuration
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def config_to_dict(config: Config) -> Dict[str, Any]:
    """Convert a Config into the nested layout read by ``Config.from_dict``."""
    return {
        'project': {
            'name': config.project_name,
            'version': config.version
        },
        'inference': {
            'backend': config.backend,
            'target': config.target
        },
        'detector': asdict(config.detector),
        'landmarks': asdict(config.landmarks),
        'tracking': asdict(config.tracking),
        'smoothing': asdict(config.smoothing)
    }


def save_config(config: Config, path: str):
    """Save configuration to YAML file."""
    with open(path, 'w') as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False)
