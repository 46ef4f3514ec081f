"""
Excision Module

Remove the frames marked in a repeated-frame mask from a signal.

The signal is re-framed with the same frame_length/hop_length used for
detection; a running frame counter decides keep/drop for each frame's
sample span. Kept material is forwarded unmodified and in order.
"""

from pathlib import Path
from typing import Dict, Iterator, Sequence, Union

import numpy as np

import config
from repeat_remover import timebase
from repeat_remover.audio_io import AudioSink, FrameSource
from repeat_remover.kernel_params import FrameParams


def _is_repeated(mask: np.ndarray, frame_idx: int) -> bool:
    # Frames past the end of the mask were never scanned
    return frame_idx < len(mask) and bool(mask[frame_idx])


def excise_frames(frames: Sequence, mask: np.ndarray) -> Iterator:
    """
    Yield the frames whose index is not set in the mask, in original order.

    Parameters:
        frames: Any indexable sequence of frames
        mask: Boolean repeated-frame mask

    Yields:
        Kept frames
    """
    mask = np.asarray(mask, dtype=bool)
    for idx, frame in enumerate(frames):
        if not _is_repeated(mask, idx):
            yield frame


def iter_kept_blocks(
    samples: np.ndarray,
    mask: np.ndarray,
    frame_length: int = config.FRAME_LENGTH,
    hop_length: int = config.HOP_LENGTH
) -> Iterator[np.ndarray]:
    """
    Yield the sample span of every frame not set in the mask.

    CONTRACT:
    - Frame indices follow timebase.compute_frame_count / frame_sample_span
    - The counter advances for every frame, kept or dropped
    - With an all-False mask the blocks concatenate to the input exactly

    Parameters:
        samples: Signal (1D)
        mask: Boolean repeated-frame mask
        frame_length: Analysis window size in samples
        hop_length: Hop size in samples

    Yields:
        Views into samples, in order
    """
    mask = np.asarray(mask, dtype=bool)
    n_samples = len(samples)
    n_frames = timebase.compute_frame_count(n_samples, frame_length, hop_length)

    for frame_idx in range(n_frames):
        if _is_repeated(mask, frame_idx):
            continue
        start, end = timebase.frame_sample_span(frame_idx, frame_length, hop_length, n_samples)
        yield samples[start:end]


def excise_audio(
    samples: np.ndarray,
    mask: np.ndarray,
    frame_length: int = config.FRAME_LENGTH,
    hop_length: int = config.HOP_LENGTH
) -> np.ndarray:
    """
    In-memory excision: concatenation of iter_kept_blocks.

    Returns:
        Array with the same dtype as samples
    """
    samples = np.asarray(samples)
    blocks = list(iter_kept_blocks(samples, mask, frame_length, hop_length))
    if not blocks:
        return samples[:0].copy()
    return np.concatenate(blocks)


def remove_repeated_segments(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    mask: np.ndarray,
    frame_params: FrameParams = FrameParams(),
    subtype: str = config.OUTPUT_SUBTYPE
) -> Dict[str, int]:
    """
    Re-decode input_path and stream every kept frame span to output_path.

    The input is decoded again with the framing in frame_params, which must
    be the framing the mask was computed with.

    Parameters:
        input_path: Source audio file
        output_path: Destination WAV file
        mask: Boolean repeated-frame mask from the scan
        frame_params: Framing used during detection
        subtype: soundfile subtype of the output

    Returns:
        Dict with frames_total, frames_removed, frames_kept, samples_in,
        samples_out

    Raises:
        AudioDecodeError: If the input cannot be decoded
        AudioWriteError: If the output cannot be written
    """
    source = FrameSource.open(
        input_path,
        sample_rate=frame_params.sample_rate,
        frame_length=frame_params.frame_length,
        hop_length=frame_params.hop_length
    )
    return excise_source(source, output_path, mask, subtype)


def excise_source(
    source: FrameSource,
    output_path: Union[str, Path],
    mask: np.ndarray,
    subtype: str = config.OUTPUT_SUBTYPE
) -> Dict[str, int]:
    """Stream the kept spans of an open FrameSource into a WAV sink."""
    mask = np.asarray(mask, dtype=bool)
    frames_removed = 0

    with AudioSink(output_path, source.sample_rate, subtype) as sink:
        for frame_idx, block in source.spans():
            if _is_repeated(mask, frame_idx):
                frames_removed += 1
                continue
            sink.write(block)
        samples_out = sink.samples_written

    return {
        'frames_total': source.n_frames,
        'frames_removed': frames_removed,
        'frames_kept': source.n_frames - frames_removed,
        'samples_in': source.n_samples,
        'samples_out': samples_out,
    }
