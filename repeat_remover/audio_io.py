"""
Audio I/O Module

Handles audio decoding into a frame source and 16-bit WAV output.
All operations are deterministic and reproducible: opening the same file
with the same framing parameters yields identical frames.
"""

from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

import numpy as np
import librosa
import soundfile as sf

import config
from repeat_remover import kernel, timebase

PathLike = Union[str, Path]

PCM16_SCALE: float = 32768.0


class AudioDecodeError(OSError):
    """Input file could not be opened or decoded."""


class AudioWriteError(OSError):
    """Output file could not be opened or written."""


# =============================================================================
# DECODING
# =============================================================================

def load_audio(file_path: PathLike, target_sr: Optional[int] = None) -> Tuple[np.ndarray, int]:
    """
    Load audio file and return as numpy array.

    Uses librosa (supports mp3, flac, wav), downmixing to mono and
    resampling to target_sr.

    Parameters:
        file_path: Path to audio file
        target_sr: Target sample rate (None = use native rate)

    Returns:
        Tuple of (audio_array, sample_rate)
        audio_array: mono float32 array in range [-1.0, 1.0]
        sample_rate: sample rate in Hz

    Raises:
        AudioDecodeError: If the file is missing or cannot be decoded
    """
    path = Path(file_path)
    if not path.is_file():
        raise AudioDecodeError(f"Input file not found: {path}")

    try:
        audio, sr = librosa.load(str(path), sr=target_sr, mono=True)
    except Exception as e:
        raise AudioDecodeError(f"Could not decode {path.name}: {e}") from e

    return audio.astype(np.float32), int(sr)


def to_pcm16(audio: np.ndarray) -> np.ndarray:
    """
    Convert float audio in [-1.0, 1.0] to int16 PCM.

    Exact inverse of the int16 / 32768 scaling used when decoding 16-bit
    files, so untouched 16-bit input round-trips bit for bit.
    """
    scaled = np.round(np.asarray(audio, dtype=np.float64) * PCM16_SCALE)
    return np.clip(scaled, -32768, 32767).astype(np.int16)


def pcm16_to_float(samples: np.ndarray) -> np.ndarray:
    """Convert int16 PCM to float32 in [-1.0, 1.0)."""
    return (np.asarray(samples, dtype=np.float32) / PCM16_SCALE).astype(np.float32)


def validate_audio(audio: np.ndarray, sr: int, max_duration: Optional[float] = None) -> None:
    """
    Validate audio array for processing.

    Empty audio is valid: it produces no frames and an empty output.

    Parameters:
        audio: Audio array to validate
        sr: Sample rate (Hz)
        max_duration: Maximum allowed duration in seconds (None = use config)

    Raises:
        ValueError: If audio is invalid
    """
    if max_duration is None:
        max_duration = config.MAX_TRACK_DURATION_SEC

    if audio.ndim != 1:
        raise ValueError(f"Expected mono audio, got shape {audio.shape}")

    if len(audio) == 0:
        return

    if np.issubdtype(audio.dtype, np.floating) and not np.isfinite(audio).all():
        raise ValueError("Audio contains NaN or infinite values")

    duration = len(audio) / sr
    if duration > max_duration:
        raise ValueError(
            f"Audio duration ({duration:.1f}s) exceeds maximum "
            f"({max_duration:.1f}s)"
        )


# =============================================================================
# FRAME SOURCE
# =============================================================================

class FrameSource:
    """
    Decoded mono signal with a fixed framing.

    The signal is held as int16 PCM. Analysis windows and output spans are
    both derived from the same frame_length/hop_length, so a frame index
    found during detection addresses the same samples during excision.

    Usage:
        source = FrameSource.open(path, 44100, 1024, 512)
        frames = source.spectral_frames()
        for idx, block in source.spans():
            ...
    """

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int = config.TARGET_SAMPLE_RATE,
        frame_length: int = config.FRAME_LENGTH,
        hop_length: int = config.HOP_LENGTH,
        path: Optional[Path] = None
    ):
        samples = np.asarray(samples)
        if samples.dtype != np.int16:
            samples = to_pcm16(samples)
        self.samples = samples
        self.sample_rate = sample_rate
        self.frame_length = frame_length
        self.hop_length = hop_length
        self.path = path

    @classmethod
    def open(
        cls,
        file_path: PathLike,
        sample_rate: int = config.TARGET_SAMPLE_RATE,
        frame_length: int = config.FRAME_LENGTH,
        hop_length: int = config.HOP_LENGTH
    ) -> 'FrameSource':
        """
        Decode a file into a frame source.

        Raises:
            AudioDecodeError: If the file cannot be opened or decoded
        """
        audio, sr = load_audio(file_path, target_sr=sample_rate)
        return cls(to_pcm16(audio), sr, frame_length, hop_length, path=Path(file_path))

    @property
    def n_samples(self) -> int:
        return len(self.samples)

    @property
    def n_frames(self) -> int:
        return timebase.compute_frame_count(self.n_samples, self.frame_length, self.hop_length)

    @property
    def duration(self) -> float:
        return self.n_samples / self.sample_rate

    def audio(self) -> np.ndarray:
        """Signal as float32 in [-1.0, 1.0)."""
        return pcm16_to_float(self.samples)

    def spectral_frames(self) -> np.ndarray:
        """(n_frames, frame_length // 2) magnitude spectra."""
        return kernel.compute_spectral_frames(self.audio(), self.frame_length, self.hop_length)

    def spans(self) -> Iterator[Tuple[int, np.ndarray]]:
        """
        Yield (frame_index, int16 block) for every frame.

        Blocks are the samples each frame contributes to the output, in
        order. Concatenating all blocks reproduces the signal exactly.
        """
        for idx in range(self.n_frames):
            start, end = timebase.frame_sample_span(
                idx, self.frame_length, self.hop_length, self.n_samples
            )
            yield idx, self.samples[start:end]


# =============================================================================
# OUTPUT SINK
# =============================================================================

class AudioSink:
    """
    Sample-accurate mono WAV writer.

    Wraps soundfile.SoundFile in write mode; int16 blocks are written to
    PCM_16 unchanged. Creates the parent directory on open. Use as a
    context manager so the file is finalized on both success and failure.
    """

    def __init__(
        self,
        file_path: PathLike,
        sample_rate: int = config.TARGET_SAMPLE_RATE,
        subtype: str = config.OUTPUT_SUBTYPE
    ):
        self.path = Path(file_path)
        self.sample_rate = sample_rate
        self.subtype = subtype
        self.samples_written = 0
        self._file = None

    def open(self) -> 'AudioSink':
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = sf.SoundFile(
                str(self.path), mode='w', samplerate=self.sample_rate,
                channels=1, format='WAV', subtype=self.subtype
            )
        except Exception as e:
            raise AudioWriteError(f"Could not open output {self.path}: {e}") from e
        return self

    def write(self, block: np.ndarray) -> None:
        if self._file is None:
            raise AudioWriteError(f"Output {self.path} is not open")
        if len(block) == 0:
            return
        try:
            self._file.write(np.ascontiguousarray(block))
        except Exception as e:
            raise AudioWriteError(f"Could not write to {self.path}: {e}") from e
        self.samples_written += len(block)

    def close(self) -> None:
        if self._file is None:
            return
        try:
            self._file.close()
        except Exception as e:
            raise AudioWriteError(f"Could not finalize {self.path}: {e}") from e
        finally:
            self._file = None

    def __enter__(self) -> 'AudioSink':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def write_wav(
    file_path: PathLike,
    samples: np.ndarray,
    sample_rate: int = config.TARGET_SAMPLE_RATE,
    subtype: str = config.OUTPUT_SUBTYPE
) -> int:
    """
    Write a mono signal to a WAV file in one call.

    Float input is converted to int16 first.

    Returns:
        Number of samples written
    """
    samples = np.asarray(samples)
    if samples.dtype != np.int16:
        samples = to_pcm16(samples)
    with AudioSink(file_path, sample_rate, subtype) as sink:
        sink.write(samples)
        return sink.samples_written
