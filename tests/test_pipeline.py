"""
Pipeline Test Suite

End-to-end tests using generated audio with known ground truth.
No external audio files required.
"""

import json

import pytest
import numpy as np
import soundfile as sf

import cli
from repeat_remover import audio_io, excision, kernel
from repeat_remover.kernel_params import FrameParams, RemovalConfig, ScanParams

SR = 8000
FRAME_LENGTH = 16
HOP_LENGTH = 8

# Exact repeats only; identical spans give DTW distance 0
TEST_CONFIG = RemovalConfig(
    frame=FrameParams(frame_length=FRAME_LENGTH, hop_length=HOP_LENGTH, sample_rate=SR),
    scan=ScanParams(window_size=5, threshold=1e-6),
)


# =============================================================================
# SYNTHETIC AUDIO GENERATORS
# =============================================================================

def generate_repeated_phrase(seed: int = 0) -> np.ndarray:
    """
    Generate int16 audio with one phrase played twice, then a unique tail.

    Layout: phrase (80 samples) + phrase (80) + tail (80) = 240 samples.
    With 16/8 framing frames 0..8 equal frames 10..18; frame 9 straddles
    the boundary between the copies.

    Returns:
        int16 audio array
    """
    rng = np.random.default_rng(seed)
    phrase = rng.integers(-12000, 12000, 80).astype(np.int16)
    tail = rng.integers(-12000, 12000, 80).astype(np.int16)
    return np.concatenate([phrase, phrase, tail])


def generate_unique_noise(n_samples: int = 240, seed: int = 1) -> np.ndarray:
    """Generate int16 noise with no repeated material."""
    rng = np.random.default_rng(seed)
    return rng.integers(-12000, 12000, n_samples).astype(np.int16)


def write_track(path, samples):
    audio_io.write_wav(path, samples, SR)
    return path


# =============================================================================
# DETECTION TESTS
# =============================================================================

class TestDetection:
    """Tests for detect_repeats_in_audio."""

    def test_repeated_phrase_detected(self):
        """Both copies of the phrase are marked."""
        audio = audio_io.pcm16_to_float(generate_repeated_phrase())

        detection = cli.detect_repeats_in_audio(audio, TEST_CONFIG)

        assert kernel.repeated_indices(detection['mask']) == (
            list(range(0, 9)) + list(range(10, 19))
        )
        assert detection['segments'] == [(0, 9), (10, 19)]
        assert detection['frames'].shape == (29, FRAME_LENGTH // 2)

    def test_unique_noise_not_detected(self):
        """No exact repeats -> empty mask."""
        audio = audio_io.pcm16_to_float(generate_unique_noise())

        detection = cli.detect_repeats_in_audio(audio, TEST_CONFIG)

        assert not detection['mask'].any()
        assert detection['segments'] == []

    def test_short_input(self):
        """Input yielding fewer than 2W frames is left alone."""
        audio = audio_io.pcm16_to_float(generate_unique_noise(n_samples=40))

        detection = cli.detect_repeats_in_audio(audio, TEST_CONFIG)

        assert len(detection['mask']) < 2 * TEST_CONFIG.scan.window_size
        assert not detection['mask'].any()

        out = excision.excise_audio(
            audio_io.to_pcm16(audio), detection['mask'], FRAME_LENGTH, HOP_LENGTH
        )
        np.testing.assert_array_equal(out, audio_io.to_pcm16(audio))

    def test_empty_input(self):
        """Zero samples -> zero frames, empty mask."""
        detection = cli.detect_repeats_in_audio(np.zeros(0, dtype=np.float32), TEST_CONFIG)
        assert len(detection['mask']) == 0

    def test_redetection_does_not_grow(self):
        """Detection on the excised output marks no more frames than before."""
        samples = generate_repeated_phrase()
        first = cli.detect_repeats_in_audio(audio_io.pcm16_to_float(samples), TEST_CONFIG)

        output = excision.excise_audio(samples, first['mask'], FRAME_LENGTH, HOP_LENGTH)
        second = cli.detect_repeats_in_audio(audio_io.pcm16_to_float(output), TEST_CONFIG)

        assert second['mask'].sum() <= first['mask'].sum()


# =============================================================================
# FILE PIPELINE TESTS
# =============================================================================

class TestProcessSingleTrack:
    """Tests for process_single_track."""

    def test_repeated_phrase_removed(self, tmp_path):
        """Output holds frame 9 and the tail only."""
        samples = generate_repeated_phrase()
        in_path = write_track(tmp_path / 'take.wav', samples)
        out_path = tmp_path / 'out' / 'take_repremoved.wav'

        assert cli.process_single_track(in_path, out_path, TEST_CONFIG)

        written, sr = sf.read(str(out_path), dtype='int16')
        assert sr == SR
        np.testing.assert_array_equal(written, np.concatenate([samples[80:88], samples[160:]]))

    def test_no_repeats_copies_input(self, tmp_path):
        """Without repeats the output equals the input sample for sample."""
        samples = generate_unique_noise(500)
        in_path = write_track(tmp_path / 'noise.wav', samples)
        out_path = tmp_path / 'noise_repremoved.wav'

        assert cli.process_single_track(in_path, out_path, TEST_CONFIG)

        written, _ = sf.read(str(out_path), dtype='int16')
        np.testing.assert_array_equal(written, samples)

    def test_report_written(self, tmp_path):
        """Report JSON and plot are created on request."""
        in_path = write_track(tmp_path / 'take.wav', generate_repeated_phrase())
        report_dir = tmp_path / 'reports'

        assert cli.process_single_track(
            in_path, tmp_path / 'take_out.wav', TEST_CONFIG,
            report_dir=report_dir, generate_plots=True
        )

        report_path = report_dir / 'take_repeats.json'
        assert report_path.exists()
        assert (report_dir / 'take_repeats.png').exists()

        with open(report_path) as f:
            report = json.load(f)

        assert report['track_name'] == 'take'
        assert report['n_frames'] == 29
        assert report['n_repeated_frames'] == 18
        assert [(s['start_frame'], s['end_frame']) for s in report['segments']] == [(0, 9), (10, 19)]
        assert report['excision']['samples_out'] == 88
        assert report['params']['frame_length'] == FRAME_LENGTH

    def test_empty_track(self, tmp_path):
        """A zero-sample WAV yields an empty output file."""
        in_path = write_track(tmp_path / 'silent.wav', np.zeros(0, dtype=np.int16))
        out_path = tmp_path / 'out' / 'silent_repremoved.wav'

        assert cli.process_single_track(
            in_path, out_path, TEST_CONFIG, report_dir=tmp_path / 'reports'
        )

        info = sf.info(str(out_path))
        assert info.frames == 0
        assert info.samplerate == SR

        with open(tmp_path / 'reports' / 'silent_repeats.json') as f:
            report = json.load(f)
        assert report['n_frames'] == 0
        assert report['segments'] == []

    def test_missing_file_reports_failure(self, tmp_path, capsys):
        """A failing file returns False and reports to stderr."""
        ok = cli.process_single_track(
            tmp_path / 'missing.wav', tmp_path / 'out.wav', TEST_CONFIG
        )

        assert not ok
        assert 'ERROR processing missing.wav' in capsys.readouterr().err
        assert not (tmp_path / 'out.wav').exists()


class TestBatch:
    """Tests for the batch entry point."""

    def test_derive_output_path_sibling_dir(self, tmp_path):
        """tracks/inputs/song.mp3 -> tracks/outputs/song_repremoved.wav."""
        input_path = tmp_path / 'tracks' / 'inputs' / 'song.mp3'

        out = cli.derive_output_path(input_path)

        assert out == (tmp_path / 'tracks').resolve() / 'outputs' / 'song_repremoved.wav'

    def test_derive_output_path_explicit_dir(self, tmp_path):
        out = cli.derive_output_path(tmp_path / 'a' / 'song.flac', tmp_path / 'clean')
        assert out == tmp_path / 'clean' / 'song_repremoved.wav'

    def test_collect_input_files(self, tmp_path):
        """Directories expand to sorted audio files."""
        write_track(tmp_path / 'b.wav', generate_unique_noise(50))
        write_track(tmp_path / 'a.wav', generate_unique_noise(50))
        (tmp_path / 'notes.txt').write_text('ignore me')

        files = cli.collect_input_files([tmp_path, tmp_path / 'extra.wav'])

        assert files == [tmp_path / 'a.wav', tmp_path / 'b.wav', tmp_path / 'extra.wav']

    def test_batch_continues_after_failure(self, tmp_path):
        """One missing file does not stop the batch."""
        inputs = tmp_path / 'tracks' / 'inputs'
        inputs.mkdir(parents=True)
        good = write_track(inputs / 'good.wav', generate_repeated_phrase())
        missing = inputs / 'missing.wav'

        results = cli.process_batch([missing, good], cfg=TEST_CONFIG)

        assert results == {'success': 1, 'failed': 1}
        assert (tmp_path / 'tracks' / 'outputs' / 'good_repremoved.wav').exists()

    def test_main_exit_codes(self, tmp_path):
        """CLI exits 0 when every file succeeds, 1 otherwise."""
        track = write_track(tmp_path / 'take.wav', generate_repeated_phrase())
        out_dir = tmp_path / 'clean'
        args = [
            '--output', str(out_dir),
            '--frame-length', str(FRAME_LENGTH),
            '--hop-length', str(HOP_LENGTH),
            '--sample-rate', str(SR),
            '--threshold', '1e-6',
        ]

        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(track)] + args)
        assert exc_info.value.code == 0

        written, _ = sf.read(str(out_dir / 'take_repremoved.wav'), dtype='int16')
        assert len(written) == 88

        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(track), str(tmp_path / 'missing.wav')] + args)
        assert exc_info.value.code == 1

    def test_main_rejects_invalid_config(self, tmp_path):
        """hop longer than the frame is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(tmp_path / 'x.wav'), '--frame-length', '8', '--hop-length', '16'])
        assert exc_info.value.code == 2

    @pytest.mark.parametrize('option', ['--threshold', '--window-size', '--frame-length'])
    def test_main_rejects_explicit_zero(self, tmp_path, option):
        """An explicit 0 is validated, not replaced by the default."""
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(tmp_path / 'x.wav'), option, '0'])
        assert exc_info.value.code == 2
