"""
Timebase Module - Frame/Sample Mapping Utilities

Provides the deterministic mapping between frame indices, the sample spans
each frame contributes to the output stream, and time in seconds.

DESIGN CONSTRAINTS:
- The first analysis window covers samples [0, frame_length)
- Each following window advances by hop_length, the last one zero-padded
- Frame 0 owns its whole window, frame i >= 1 owns only its fresh hop
- The spans of all frames tile [0, n_samples) with no gap and no overlap
- Deterministic: same inputs -> same outputs
- No config imports (explicit parameters)
"""

import numpy as np
from typing import List, Tuple, Optional


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_FRAME_LENGTH: int = 1024
DEFAULT_HOP_LENGTH: int = 512
DEFAULT_SAMPLE_RATE: int = 44100


# =============================================================================
# FRAME COUNT
# =============================================================================

def compute_frame_count(
    n_samples: int,
    frame_length: int = DEFAULT_FRAME_LENGTH,
    hop_length: int = DEFAULT_HOP_LENGTH
) -> int:
    """
    Number of analysis windows a signal of n_samples yields.

    CONTRACT:
    - 0 for an empty signal
    - 1 when the signal fits in a single window
    - otherwise 1 + ceil((n_samples - frame_length) / hop_length),
      the last window zero-padded

    Parameters:
        n_samples: Signal length in samples
        frame_length: Analysis window size in samples
        hop_length: Hop size in samples

    Returns:
        Number of frames (non-negative int)
    """
    if n_samples <= 0:
        return 0
    if n_samples <= frame_length:
        return 1
    return 1 + -(-(n_samples - frame_length) // hop_length)


# =============================================================================
# FRAME <-> SAMPLE SPANS
# =============================================================================

def frame_sample_span(
    frame_idx: int,
    frame_length: int = DEFAULT_FRAME_LENGTH,
    hop_length: int = DEFAULT_HOP_LENGTH,
    n_samples: Optional[int] = None
) -> Tuple[int, int]:
    """
    Half-open sample range that one frame contributes to the output.

    Frame 0 contributes its whole window. Every later frame contributes
    only the hop of samples its window adds past the previous one:
    [(i - 1) * hop + frame_length, i * hop + frame_length).

    Parameters:
        frame_idx: Frame index (0-based)
        frame_length: Analysis window size in samples
        hop_length: Hop size in samples
        n_samples: Optional signal length, spans are clipped to it

    Returns:
        Tuple of (start_sample, end_sample), end exclusive
    """
    if frame_idx < 0:
        raise ValueError(f"Frame index must be non-negative, got {frame_idx}")

    if frame_idx == 0:
        start, end = 0, frame_length
    else:
        end = frame_idx * hop_length + frame_length
        start = end - hop_length

    if n_samples is not None:
        start = min(start, n_samples)
        end = min(end, n_samples)

    return start, end


def compute_frame_spans(
    n_samples: int,
    frame_length: int = DEFAULT_FRAME_LENGTH,
    hop_length: int = DEFAULT_HOP_LENGTH
) -> np.ndarray:
    """
    Sample spans of every frame of a signal.

    Returns:
        (n_frames, 2) int64 array of [start, end) pairs clipped to n_samples
    """
    n_frames = compute_frame_count(n_samples, frame_length, hop_length)
    spans = np.zeros((n_frames, 2), dtype=np.int64)
    for i in range(n_frames):
        spans[i] = frame_sample_span(i, frame_length, hop_length, n_samples)
    return spans


# =============================================================================
# FRAME <-> TIME
# =============================================================================

def frame_index_to_time(
    frame_idx: int,
    hop_length: int = DEFAULT_HOP_LENGTH,
    sample_rate: int = DEFAULT_SAMPLE_RATE
) -> float:
    """
    Start time of a frame's analysis window in seconds.
    """
    return float(frame_idx * hop_length / sample_rate)


def frame_span_to_time(
    start_frame: int,
    end_frame: int,
    frame_length: int = DEFAULT_FRAME_LENGTH,
    hop_length: int = DEFAULT_HOP_LENGTH,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    n_samples: Optional[int] = None
) -> Tuple[float, float]:
    """
    Time range removed from the output by frames [start_frame, end_frame).

    Parameters:
        start_frame: First frame of the run
        end_frame: One past the last frame of the run
        frame_length: Analysis window size in samples
        hop_length: Hop size in samples
        sample_rate: Sample rate in Hz
        n_samples: Optional signal length for clipping

    Returns:
        Tuple of (start_sec, end_sec)
    """
    if end_frame <= start_frame:
        return 0.0, 0.0

    start_sample, _ = frame_sample_span(start_frame, frame_length, hop_length, n_samples)
    _, end_sample = frame_sample_span(end_frame - 1, frame_length, hop_length, n_samples)

    return float(start_sample / sample_rate), float(end_sample / sample_rate)


# =============================================================================
# MASK SEGMENTATION
# =============================================================================

def mask_to_segments(mask: np.ndarray) -> List[Tuple[int, int]]:
    """
    Split a boolean frame mask into maximal runs of True values.

    Parameters:
        mask: Boolean array indexed by frame number

    Returns:
        List of (start_frame, end_frame) tuples, end exclusive, in order
    """
    mask = np.asarray(mask, dtype=bool)
    if len(mask) == 0:
        return []

    # Pad with False on both sides so every run has a rising and falling edge
    padded = np.concatenate([[False], mask, [False]])
    edges = np.diff(padded.astype(np.int8))
    starts = np.where(edges == 1)[0]
    ends = np.where(edges == -1)[0]

    return [(int(s), int(e)) for s, e in zip(starts, ends)]
