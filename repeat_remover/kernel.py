"""
DSP Kernel Module - Core Repeat Detection Functions

This module contains the deterministic kernel for repeat detection.

DESIGN CONSTRAINTS:
- No I/O operations (no file reading/writing)
- No plotting or visualization
- Explicit state management (no hidden globals)
- No config module imports - all parameters are explicit
- Only numpy and scipy dependencies (no librosa)

PROCESSING PIPELINE:
1. Framing (audio -> zero-padded analysis windows)
2. Spectral frames (windows -> magnitude spectra, K = frame_length // 2 bins)
3. Frame similarity (DTW distance over the bin sequences, thresholded)
4. Repeat scan (all non-overlapping window pairs -> boolean frame mask)

COST:
The scan is exhaustive. Each frame pair costs O(K^2) and up to O(N^2) frame
pairs are compared, so processing time grows with the square of track length.
With 1024-sample frames one DTW takes about 23 ms, so a 10 s track at
44100 Hz (860 frames, ~366k pairs) takes about 2.4 hours.
"""

import numpy as np
from typing import Callable, Iterator, List, Optional, Sequence, Union
from scipy.fft import rfft


# =============================================================================
# DEFAULT PARAMETERS (Explicit - No Config Imports)
# =============================================================================

DEFAULT_FRAME_LENGTH: int = 1024
DEFAULT_HOP_LENGTH: int = 512
DEFAULT_WINDOW_SIZE: int = 5
DEFAULT_THRESHOLD: float = 0.8
DEFAULT_DTW_BOUNDARY: str = 'reference'

FrameSequence = Union[np.ndarray, Sequence[np.ndarray]]
SimilarityFn = Callable[[np.ndarray, np.ndarray], bool]


# =============================================================================
# FRAMING AND SPECTRAL FRAMES
# =============================================================================

def frame_signal(
    audio: np.ndarray,
    frame_length: int = DEFAULT_FRAME_LENGTH,
    hop_length: int = DEFAULT_HOP_LENGTH
) -> Iterator[np.ndarray]:
    """
    Yield fixed-size analysis windows over a signal.

    CONTRACT:
    - Window i covers samples [i * hop, i * hop + frame_length)
    - The last partial window is zero-padded to frame_length
    - Window count equals timebase.compute_frame_count(len(audio), ...)
    - An empty signal yields nothing

    Parameters:
        audio: Audio array (1D)
        frame_length: Window size in samples
        hop_length: Hop size in samples

    Yields:
        float32 arrays of length frame_length
    """
    audio = np.asarray(audio, dtype=np.float32)
    n_samples = len(audio)
    if n_samples == 0:
        return

    start = 0
    while True:
        window = audio[start:start + frame_length]
        if len(window) < frame_length:
            window = np.pad(window, (0, frame_length - len(window)))
        yield window

        if start + frame_length >= n_samples:
            break
        start += hop_length


def compute_magnitude_spectrum(window: np.ndarray, n_bins: Optional[int] = None) -> np.ndarray:
    """
    Magnitude of the first n_bins real-FFT bins of one window.

    No window function is applied. n_bins defaults to len(window) // 2.
    """
    if n_bins is None:
        n_bins = len(window) // 2
    spectrum = np.abs(rfft(np.asarray(window, dtype=np.float64)))
    return spectrum[:n_bins].astype(np.float32)


def compute_spectral_frames(
    audio: np.ndarray,
    frame_length: int = DEFAULT_FRAME_LENGTH,
    hop_length: int = DEFAULT_HOP_LENGTH
) -> np.ndarray:
    """
    Compute the spectral frame sequence of a signal.

    Parameters:
        audio: Audio array (1D, float in [-1.0, 1.0])
        frame_length: Window size in samples
        hop_length: Hop size in samples

    Returns:
        (n_frames, frame_length // 2) float32 array, one row per window
    """
    n_bins = frame_length // 2
    spectra = [
        compute_magnitude_spectrum(window, n_bins)
        for window in frame_signal(audio, frame_length, hop_length)
    ]
    if not spectra:
        return np.zeros((0, n_bins), dtype=np.float32)
    return np.vstack(spectra)


# =============================================================================
# FRAME SIMILARITY (DTW)
# =============================================================================

class DTWWorkspace:
    """
    Reusable buffers for DTW between frames of one fixed size.

    Holds the local cost table, the accumulated cost table and the index
    arrays of every interior anti-diagonal. Buffers are reallocated only
    when the frame-pair shape changes.
    """

    def __init__(self):
        self.shape = None
        self.local_cost = None
        self.accumulated = None
        self.diagonals = []

    def prepare(self, n: int, m: int) -> None:
        if self.shape == (n, m):
            return

        self.local_cost = np.empty((n, m), dtype=np.float64)
        self.accumulated = np.empty((n, m), dtype=np.float64)

        # Interior cells (i, j >= 1) grouped by d = i + j. Cells on one
        # anti-diagonal depend only on diagonals d - 1 and d - 2.
        self.diagonals = []
        for d in range(2, n + m - 1):
            i = np.arange(max(1, d - m + 1), min(n - 1, d - 1) + 1)
            if len(i) == 0:
                continue
            j = d - i
            self.diagonals.append((i, j, i - 1, j - 1))

        self.shape = (n, m)


def dtw_distance(
    a: np.ndarray,
    b: np.ndarray,
    boundary: str = DEFAULT_DTW_BOUNDARY,
    workspace: Optional[DTWWorkspace] = None
) -> float:
    """
    Dynamic time warping distance between two spectral frames.

    CONTRACT:
    - Local cost C[i][j] = |a[i] - b[j]|
    - Interior recurrence for i, j >= 1:
      D[i][j] = C[i][j] + min(D[i-1][j], D[i][j-1], D[i-1][j-1])
    - Result is D[n-1][m-1]
    - Empty input on either side returns 0.0
    - Symmetric: dtw_distance(a, b) == dtw_distance(b, a)

    Boundary modes:
    - 'reference': every cell starts at +inf and only D[0][0] = 0. Row 0 and
      column 0 are never filled, so every path leaves (0, 0) diagonally and
      C[0][0] is not counted. Frames of unequal length whose final cell lies
      on row 0 or column 0 score +inf.
    - 'standard': D[0][0] = C[0][0], D[i][0] and D[0][j] accumulate the
      first column and row.

    Parameters:
        a: First frame (1D)
        b: Second frame (1D)
        boundary: 'reference' or 'standard'
        workspace: Optional DTWWorkspace reused across calls

    Returns:
        Non-negative distance (float, possibly inf)

    Raises:
        ValueError: If boundary mode is unknown
    """
    if boundary not in ('reference', 'standard'):
        raise ValueError(f"Unknown DTW boundary mode: {boundary}")

    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    n, m = len(a), len(b)
    if n == 0 or m == 0:
        return 0.0

    if workspace is None:
        workspace = DTWWorkspace()
    workspace.prepare(n, m)

    cost = workspace.local_cost
    acc = workspace.accumulated

    np.subtract.outer(a, b, out=cost)
    np.abs(cost, out=cost)

    acc.fill(np.inf)
    if boundary == 'reference':
        acc[0, 0] = 0.0
    else:
        acc[:, 0] = np.cumsum(cost[:, 0])
        acc[0, :] = np.cumsum(cost[0, :])

    for i, j, i_prev, j_prev in workspace.diagonals:
        best = np.minimum(acc[i_prev, j], acc[i, j_prev])
        np.minimum(best, acc[i_prev, j_prev], out=best)
        acc[i, j] = cost[i, j] + best

    return float(acc[n - 1, m - 1])


def are_frames_similar(
    a: np.ndarray,
    b: np.ndarray,
    threshold: float = DEFAULT_THRESHOLD,
    boundary: str = DEFAULT_DTW_BOUNDARY,
    workspace: Optional[DTWWorkspace] = None
) -> bool:
    """Two frames are similar iff their DTW distance is below threshold."""
    return dtw_distance(a, b, boundary=boundary, workspace=workspace) < threshold


# =============================================================================
# REPEAT SCANNER
# =============================================================================

def detect_repeated_frames(
    frames: FrameSequence,
    window_size: int = DEFAULT_WINDOW_SIZE,
    threshold: float = DEFAULT_THRESHOLD,
    boundary: str = DEFAULT_DTW_BOUNDARY,
    include_last_window: bool = True,
    similar: Optional[SimilarityFn] = None
) -> np.ndarray:
    """
    Mark every frame that belongs to a repeated window pair.

    CONTRACT:
    - Window starts range over [0, last] with last = N - W, or N - W - 1
      when include_last_window is False
    - A pair of windows (i, j) is compared only when j >= i + W
    - The pair matches iff similar(frames[i + k], frames[j + k]) for all k < W
    - A match marks [i, i + W) and [j, j + W)
    - The result is the union over all matches, independent of scan order
    - Fewer frames than needed for one pair -> all-False mask

    The scan walks one lag L = j - i at a time along its diagonal, evaluating
    each frame pair (p, p + L) once and tracking the run of consecutive
    similar pairs. A window ending at p matches when the run reaches W. This
    marks exactly the frames the naive (i, j, k) loop marks.

    Parameters:
        frames: (N, K) array or sequence of 1D frames
        window_size: W, frames per comparison window
        threshold: DTW distance threshold (ignored when similar is given)
        boundary: DTW boundary mode (ignored when similar is given)
        include_last_window: Include the window starting at N - W
        similar: Optional predicate replacing the DTW comparison

    Returns:
        Boolean mask of length N, True for repeated frames

    Raises:
        ValueError: If window_size < 1
    """
    if window_size < 1:
        raise ValueError(f"window_size must be at least 1, got {window_size}")

    n_frames = len(frames)
    mask = np.zeros(n_frames, dtype=bool)

    last_start = n_frames - window_size
    if not include_last_window:
        last_start -= 1

    # The first possible pair is (0, W)
    if last_start < window_size:
        return mask

    if similar is None:
        workspace = DTWWorkspace()

        def similar(a, b):
            return are_frames_similar(a, b, threshold, boundary, workspace)

    for lag in range(window_size, last_start + 1):
        last_i = last_start - lag
        run = 0
        for p in range(last_i + window_size):
            if not similar(frames[p], frames[p + lag]):
                run = 0
                continue

            run += 1
            if run >= window_size:
                i = p - window_size + 1
                mask[i:i + window_size] = True
                mask[i + lag:i + lag + window_size] = True

    return mask


def repeated_indices(mask: np.ndarray) -> List[int]:
    """Sorted frame indices set in a repeated-frame mask."""
    return [int(i) for i in np.flatnonzero(np.asarray(mask, dtype=bool))]


def mask_from_indices(indices, n_frames: int) -> np.ndarray:
    """
    Build a repeated-frame mask from an iterable of frame indices.

    Raises:
        ValueError: If an index falls outside [0, n_frames)
    """
    mask = np.zeros(n_frames, dtype=bool)
    for idx in indices:
        if not 0 <= idx < n_frames:
            raise ValueError(f"Frame index {idx} out of range for {n_frames} frames")
        mask[idx] = True
    return mask
