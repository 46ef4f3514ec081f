"""
Kernel Parameters Module - All Tunable Constants

These parameters control framing, the repeat scan and the output format.
Each component receives them explicitly instead of reading shared globals.

USAGE:
    from repeat_remover.kernel_params import RemovalConfig, DEFAULT_CONFIG

    # Use default config
    cfg = DEFAULT_CONFIG

    # Create custom config
    custom = RemovalConfig(
        frame=FrameParams(frame_length=2048, hop_length=1024),
        scan=ScanParams(window_size=8, threshold=0.5)
    )
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional

DTW_BOUNDARY_MODES = ('reference', 'standard')


@dataclass(frozen=True)
class FrameParams:
    """
    Framing parameters shared by detection and excision.

    Detection and excision must use the same instance, otherwise the
    removed sample spans no longer line up with the detected frames.

    Attributes:
        frame_length: Samples per analysis window (default 1024 = ~23ms at 44100 Hz)
        hop_length: Hop between windows (default 512, 2x overlap)
        sample_rate: Decode/resample rate in Hz (default 44100)
    """
    frame_length: int = 1024
    hop_length: int = 512
    sample_rate: int = 44100

    @property
    def n_bins(self) -> int:
        """Magnitude bins per spectral frame."""
        return self.frame_length // 2


@dataclass(frozen=True)
class ScanParams:
    """
    Repeat scan parameters.

    Attributes:
        window_size: Consecutive frames compared as one window (default 5)
        threshold: DTW distance below which frames are similar (default 0.8)
        dtw_boundary: 'reference' (only D[0][0] seeded) or 'standard'
            (cumulative first row/column)
        include_last_window: Let the window starting at N - W take part
            in the scan (default True)
    """
    window_size: int = 5
    threshold: float = 0.8
    dtw_boundary: str = 'reference'
    include_last_window: bool = True


@dataclass(frozen=True)
class OutputParams:
    """
    Output naming and format.

    Attributes:
        suffix: Appended to the input stem (default '_repremoved')
        output_dir_name: Sibling directory for outputs (default 'outputs')
        subtype: soundfile subtype of the written WAV (default 'PCM_16')
    """
    suffix: str = '_repremoved'
    output_dir_name: str = 'outputs'
    subtype: str = 'PCM_16'


@dataclass
class RemovalConfig:
    """
    Complete configuration aggregating all parameter groups.

    Example usage:
        cfg = RemovalConfig()  # All defaults
        cfg = RemovalConfig(scan=ScanParams(threshold=0.5))  # Override specific params
    """
    frame: FrameParams = field(default_factory=FrameParams)
    scan: ScanParams = field(default_factory=ScanParams)
    output: OutputParams = field(default_factory=OutputParams)

    def to_dict(self) -> Dict:
        """
        Export all parameters as a flat dictionary for JSON serialization.

        Returns:
            Dictionary with all parameter values
        """
        return {
            # Frame params
            'frame_length': self.frame.frame_length,
            'hop_length': self.frame.hop_length,
            'sample_rate': self.frame.sample_rate,

            # Scan params
            'window_size': self.scan.window_size,
            'threshold': self.scan.threshold,
            'dtw_boundary': self.scan.dtw_boundary,
            'include_last_window': self.scan.include_last_window,

            # Output params
            'output_suffix': self.output.suffix,
            'output_dir_name': self.output.output_dir_name,
            'output_subtype': self.output.subtype,
        }


# Default configuration instance
DEFAULT_CONFIG = RemovalConfig()


def validate_config(config: RemovalConfig) -> bool:
    """
    Validate configuration parameters for consistency.

    Parameters:
        config: RemovalConfig instance to validate

    Returns:
        True if config is valid

    Raises:
        ValueError: If configuration is invalid
    """
    # Check positive values
    if config.frame.frame_length <= 0:
        raise ValueError("frame_length must be positive")
    if config.frame.hop_length <= 0:
        raise ValueError("hop_length must be positive")
    if config.frame.sample_rate <= 0:
        raise ValueError("sample_rate must be positive")

    # Spans of consecutive frames must tile the signal
    if config.frame.hop_length > config.frame.frame_length:
        raise ValueError("hop_length must not exceed frame_length")

    if config.scan.window_size < 1:
        raise ValueError("window_size must be at least 1")
    if config.scan.threshold <= 0.0:
        raise ValueError("threshold must be positive")
    if config.scan.dtw_boundary not in DTW_BOUNDARY_MODES:
        raise ValueError(f"Unknown dtw_boundary: {config.scan.dtw_boundary}")

    if not config.output.suffix:
        raise ValueError("output suffix must not be empty")

    return True


def config_from_params(
    base: Optional[RemovalConfig] = None,
    **overrides
) -> RemovalConfig:
    """
    Build a config from keyword overrides, ignoring None values.

    Recognized keys: frame_length, hop_length, sample_rate, window_size,
    threshold, dtw_boundary, include_last_window, suffix, output_dir_name,
    subtype.

    Raises:
        ValueError: If an override is unknown or the result is invalid
    """
    base = base or DEFAULT_CONFIG
    groups = {
        'frame': ('frame_length', 'hop_length', 'sample_rate'),
        'scan': ('window_size', 'threshold', 'dtw_boundary', 'include_last_window'),
        'output': ('suffix', 'output_dir_name', 'subtype'),
    }

    known = {key for keys in groups.values() for key in keys}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown parameters: {sorted(unknown)}")

    parts = {}
    for group, keys in groups.items():
        changes = {k: overrides[k] for k in keys if overrides.get(k) is not None}
        parts[group] = replace(getattr(base, group), **changes)

    cfg = RemovalConfig(**parts)
    validate_config(cfg)
    return cfg


# Validate default config on import
validate_config(DEFAULT_CONFIG)
