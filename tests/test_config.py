"""Tests for configuration loading and validation."""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from handtrack.exceptions import ConfigError
from handtrack.utils.config import (
    Config,
    SmoothingConfig,
    load_config,
    save_config,
    merge_configs,
)

DEFAULT_CONFIG = Path(__file__).parent.parent / "configs" / "default.yaml"


class TestConfig:
    """Tests for Config and its sections."""

    def test_defaults(self):
        config = Config()
        assert config.detector.input_size == 640
        assert config.landmarks.input_size == 368
        assert config.tracking.detection_every == 5
        assert config.tracking.damping == 0.9
        assert config.smoothing.ema_alpha == 0.3
        assert config.smoothing.max_match_distance == 120.0
        assert config.smoothing.hold_invalid_frames == 3

    def test_load_default_file(self):
        config = load_config(str(DEFAULT_CONFIG))
        assert config.project_name == "handtrack"
        assert config.backend == "cpu"
        assert config.detector.model_path == "models/yolo11s_hand.onnx"
        assert config.smoothing.mode == "auto"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_partial_dict_keeps_defaults(self):
        config = Config.from_dict({'smoothing': {'ema_alpha': 0.5}})
        assert config.smoothing.ema_alpha == 0.5
        assert config.smoothing.hold_invalid_frames == 3
        assert config.detector.nms_iou_threshold == 0.5

    def test_empty_dict(self):
        assert Config.from_dict({}).tracking.detection_every == 5

    def test_save_and_reload(self, tmp_path):
        config = Config.from_dict({'tracking': {'detection_every': 3}, 'inference': {'backend': 'cuda'}})
        path = tmp_path / "saved.yaml"
        save_config(config, str(path))

        reloaded = load_config(str(path))
        assert reloaded.tracking.detection_every == 3
        assert reloaded.backend == "cuda"

    @pytest.mark.parametrize("section,values", [
        ('smoothing', {'ema_alpha': 0.0}),
        ('smoothing', {'ema_alpha': 1.5}),
        ('smoothing', {'max_match_distance': 0}),
        ('smoothing', {'hold_invalid_frames': -1}),
        ('smoothing', {'mode': 'kalman'}),
        ('detector', {'nms_iou_threshold': 2.0}),
        ('detector', {'output_layout': 'nhwc'}),
        ('tracking', {'detection_every': -2}),
    ])
    def test_invalid_values(self, section, values):
        with pytest.raises(ConfigError):
            Config.from_dict({section: values})

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            SmoothingConfig(ema_alpha=-1.0).validate()


class TestMergeConfigs:
    """Tests for merge_configs."""

    def test_nested_override(self):
        base = {'smoothing': {'ema_alpha': 0.3, 'hold_invalid_frames': 3}}
        merged = merge_configs(base, {'smoothing': {'ema_alpha': 0.7}})
        assert merged == {'smoothing': {'ema_alpha': 0.7, 'hold_invalid_frames': 3}}

    def test_base_unchanged(self):
        base = {'a': 1}
        merge_configs(base, {'a': 2})
        assert base == {'a': 1}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
