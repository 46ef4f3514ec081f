"""
repeat-remover - Configuration

All tunable parameters and constants with documentation.
Every default value includes rationale.
"""

from typing import List

# =============================================================================
# FRAME-LEVEL PARAMETERS
# =============================================================================

# Frame length for spectral analysis (samples)
# Why: 1024 samples at 44100 Hz ≈ 23ms window, short enough that a repeated
#      phrase lines up frame-for-frame, yields 512 magnitude bins per frame
FRAME_LENGTH: int = 1024

# Hop length between frames (samples)
# Why: 512 samples = 2x overlap, each frame contributes exactly one hop of
#      fresh samples to the output stream
HOP_LENGTH: int = 512

# Target sample rate for processing (Hz)
# Why: 44100 Hz keeps the output at CD rate, no quality loss on 16-bit sources
TARGET_SAMPLE_RATE: int = 44100

# =============================================================================
# REPEAT SCAN PARAMETERS
# =============================================================================

# Number of consecutive frames compared as one unit
# Why: 5 frames ≈ 70ms at 44100 Hz / 512 hop, long enough to ignore isolated
#      look-alike frames, short enough to catch stutters and doubled words
COMPARISON_WINDOW_FRAMES: int = 5

# DTW distance below which two frames count as similar
# Why: 0.8 in raw magnitude units only accepts near-identical spectra,
#      sample-exact repeats score 0.0
SIMILARITY_THRESHOLD: float = 0.8

# DTW boundary initialization: 'reference' or 'standard'
# Why: 'reference' seeds only the first cell and reproduces the historical
#      output of the tool. 'standard' accumulates the first row/column.
DTW_BOUNDARY: str = 'reference'

# Whether the scan includes the window starting at N - W
# Why: True lets the last window of the track take part in a match, so a
#      block repeated at the very end is removed in full
INCLUDE_LAST_WINDOW: bool = True

# =============================================================================
# OUTPUT PARAMETERS
# =============================================================================

# Suffix appended to the input file stem
OUTPUT_SUFFIX: str = '_repremoved'

# Output directory created next to the input directory
# Why: tracks/inputs/song.wav -> tracks/outputs/song_repremoved.wav keeps
#      results out of the folder that is scanned for inputs
OUTPUT_DIR_NAME: str = 'outputs'

# Output sample format
# Why: 16-bit PCM mono matches the decoded input, samples are copied unchanged
OUTPUT_SUBTYPE: str = 'PCM_16'

# File extensions picked up when a directory is given
AUDIO_EXTENSIONS: List[str] = ['.wav', '.mp3', '.flac', '.ogg', '.m4a']

# Report JSON schema version
# Why: Versioning allows future format changes while maintaining compatibility
SCHEMA_VERSION: str = "1.0.0"

# Plot resolution (dots per inch)
PLOT_DPI: int = 150

# Plot figure size (width, height in inches)
# Why: wide timeline view of the waveform with removed spans shaded
PLOT_FIGSIZE: tuple = (14, 6)

# =============================================================================
# PERFORMANCE PARAMETERS
# =============================================================================

# Maximum track duration to process (seconds)
# Why: hard upper bound, not a practical length. Each 512-bin DTW costs about
#      23 ms and the scan compares every frame pair, so a 10 s track (860
#      frames, ~366k pairs) already takes about 2.4 hours.
MAX_TRACK_DURATION_SEC: float = 600.0

# =============================================================================
# VALIDATION
# =============================================================================

def validate_config() -> bool:
    """
    Validate configuration parameters for consistency.

    Returns:
        True if config is valid

    Raises:
        ValueError: If configuration is invalid
    """
    if FRAME_LENGTH <= 0 or HOP_LENGTH <= 0:
        raise ValueError("FRAME_LENGTH and HOP_LENGTH must be positive")

    if HOP_LENGTH > FRAME_LENGTH:
        raise ValueError("HOP_LENGTH must not exceed FRAME_LENGTH")

    if TARGET_SAMPLE_RATE <= 0:
        raise ValueError("TARGET_SAMPLE_RATE must be positive")

    if COMPARISON_WINDOW_FRAMES < 1:
        raise ValueError("COMPARISON_WINDOW_FRAMES must be at least 1")

    if SIMILARITY_THRESHOLD <= 0.0:
        raise ValueError("SIMILARITY_THRESHOLD must be positive")

    if DTW_BOUNDARY not in ('reference', 'standard'):
        raise ValueError(f"Unknown DTW_BOUNDARY: {DTW_BOUNDARY}")

    if MAX_TRACK_DURATION_SEC <= 0:
        raise ValueError("MAX_TRACK_DURATION_SEC must be positive")

    return True


# Validate on import
validate_config()
