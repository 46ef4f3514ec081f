"""
Configuration Tests

Tests for module-level defaults and the RemovalConfig parameter groups.
"""

import pytest

import config
from repeat_remover.kernel_params import (
    DEFAULT_CONFIG,
    FrameParams,
    OutputParams,
    RemovalConfig,
    ScanParams,
    config_from_params,
    validate_config,
)


class TestModuleDefaults:
    """Tests for config.py constants and helpers."""

    def test_defaults_are_valid(self):
        assert config.validate_config()

    def test_defaults_match_dataclasses(self):
        """config.py and the dataclass defaults agree."""
        assert DEFAULT_CONFIG.frame.frame_length == config.FRAME_LENGTH
        assert DEFAULT_CONFIG.frame.hop_length == config.HOP_LENGTH
        assert DEFAULT_CONFIG.frame.sample_rate == config.TARGET_SAMPLE_RATE
        assert DEFAULT_CONFIG.scan.window_size == config.COMPARISON_WINDOW_FRAMES
        assert DEFAULT_CONFIG.scan.threshold == config.SIMILARITY_THRESHOLD
        assert DEFAULT_CONFIG.scan.dtw_boundary == config.DTW_BOUNDARY
        assert DEFAULT_CONFIG.scan.include_last_window == config.INCLUDE_LAST_WINDOW
        assert DEFAULT_CONFIG.output.suffix == config.OUTPUT_SUFFIX
        assert DEFAULT_CONFIG.output.subtype == config.OUTPUT_SUBTYPE

    def test_bin_count(self):
        """1024-sample frames give 512 magnitude bins."""
        assert DEFAULT_CONFIG.frame.n_bins == 512


class TestValidateConfig:
    """Tests for kernel_params.validate_config."""

    def test_default_is_valid(self):
        assert validate_config(DEFAULT_CONFIG)

    @pytest.mark.parametrize('cfg', [
        RemovalConfig(frame=FrameParams(frame_length=0)),
        RemovalConfig(frame=FrameParams(hop_length=0)),
        RemovalConfig(frame=FrameParams(sample_rate=-1)),
        RemovalConfig(frame=FrameParams(frame_length=256, hop_length=512)),
        RemovalConfig(scan=ScanParams(window_size=0)),
        RemovalConfig(scan=ScanParams(threshold=0.0)),
        RemovalConfig(scan=ScanParams(dtw_boundary='itakura')),
        RemovalConfig(output=OutputParams(suffix='')),
    ])
    def test_invalid_configs(self, cfg):
        with pytest.raises(ValueError):
            validate_config(cfg)

    def test_params_are_frozen(self):
        with pytest.raises(Exception):
            DEFAULT_CONFIG.frame.frame_length = 2048


class TestConfigFromParams:
    """Tests for config_from_params."""

    def test_overrides_applied(self):
        cfg = config_from_params(frame_length=16, hop_length=8, threshold=1e-6)

        assert cfg.frame.frame_length == 16
        assert cfg.frame.hop_length == 8
        assert cfg.scan.threshold == 1e-6
        assert cfg.scan.window_size == DEFAULT_CONFIG.scan.window_size
        assert cfg.output == DEFAULT_CONFIG.output

    def test_none_values_ignored(self):
        cfg = config_from_params(frame_length=None, threshold=None)
        assert cfg == DEFAULT_CONFIG

    def test_base_config_kept(self):
        base = RemovalConfig(scan=ScanParams(window_size=3))
        cfg = config_from_params(base, threshold=2.0)

        assert cfg.scan.window_size == 3
        assert cfg.scan.threshold == 2.0

    def test_unknown_key(self):
        with pytest.raises(ValueError, match='Unknown parameters'):
            config_from_params(frame_size=16)

    def test_invalid_result(self):
        with pytest.raises(ValueError):
            config_from_params(frame_length=8, hop_length=16)

    def test_to_dict_is_flat(self):
        params = config_from_params(dtw_boundary='standard').to_dict()

        assert params['dtw_boundary'] == 'standard'
        assert set(params) == {
            'frame_length', 'hop_length', 'sample_rate',
            'window_size', 'threshold', 'dtw_boundary', 'include_last_window',
            'output_suffix', 'output_dir_name', 'output_subtype',
        }
