"""
repeat-remover - Source Modules

This package contains the core modules for repeat detection and removal:
- kernel_params: Explicit configuration dataclasses
- timebase: Frame count, frame/sample span and frame/time mapping
- kernel: Spectral frames, DTW frame similarity, repeat scanner
- audio_io: Frame source (decode + framing) and 16-bit WAV sink
- excision: Frame and sample excision driven by the repeated-frame mask
- export: JSON report and plot generation
"""

__version__ = "1.0.0"
