#!/usr/bin/env python3
"""
repeat-remover - Command Line Interface

Main entry point for removing repeated segments from audio tracks.
Each file is analyzed (spectral frames -> repeat scan), then decoded a
second time with identical framing and written without the repeated frames.
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import numpy as np

import config
from repeat_remover import audio_io, excision, export, kernel, timebase
from repeat_remover.audio_io import FrameSource
from repeat_remover.kernel_params import RemovalConfig, DEFAULT_CONFIG, config_from_params


def detect_repeats_in_audio(audio: np.ndarray, cfg: RemovalConfig = DEFAULT_CONFIG) -> Dict:
    """
    Run the detection pipeline on a float signal.

    Parameters:
        audio: Mono float signal in [-1.0, 1.0]
        cfg: Removal config

    Returns:
        Dict with:
            - 'frames': (n_frames, n_bins) spectral frames
            - 'mask': boolean repeated-frame mask
            - 'segments': list of (start_frame, end_frame) runs
    """
    frames = kernel.compute_spectral_frames(audio, cfg.frame.frame_length, cfg.frame.hop_length)
    mask = kernel.detect_repeated_frames(
        frames,
        window_size=cfg.scan.window_size,
        threshold=cfg.scan.threshold,
        boundary=cfg.scan.dtw_boundary,
        include_last_window=cfg.scan.include_last_window
    )
    return {
        'frames': frames,
        'mask': mask,
        'segments': timebase.mask_to_segments(mask),
    }


def derive_output_path(
    input_path: Path,
    output_dir: Optional[Path] = None,
    suffix: str = config.OUTPUT_SUFFIX,
    output_dir_name: str = config.OUTPUT_DIR_NAME
) -> Path:
    """
    Output path for one input file.

    tracks/inputs/song.mp3 -> tracks/outputs/song_repremoved.wav when no
    output directory is given, otherwise <output_dir>/song_repremoved.wav.
    """
    input_path = Path(input_path)
    file_name = f"{input_path.stem}{suffix}.wav"

    if output_dir is not None:
        return Path(output_dir) / file_name

    return input_path.resolve().parent.parent / output_dir_name / file_name


def process_single_track(
    file_path: Path,
    output_path: Path,
    cfg: RemovalConfig = DEFAULT_CONFIG,
    report_dir: Optional[Path] = None,
    generate_plots: bool = False,
    verbose: bool = False
) -> bool:
    """
    Process a single audio track through the full pipeline.

    Parameters:
        file_path: Path to audio file
        output_path: Path of the WAV file to write
        cfg: Removal config
        report_dir: Directory for the JSON report (None = no report)
        generate_plots: Also write a waveform plot next to the report
        verbose: Print verbose progress messages

    Returns:
        True if successful, False otherwise
    """
    file_path = Path(file_path)
    output_path = Path(output_path)
    track_name = file_path.stem

    try:
        if verbose:
            print(f"\nProcessing: {file_path.name}")
            print("-" * 60)

        # Step 1: Decode and frame
        if verbose:
            print("1. Loading audio...")

        source = FrameSource.open(
            file_path,
            sample_rate=cfg.frame.sample_rate,
            frame_length=cfg.frame.frame_length,
            hop_length=cfg.frame.hop_length
        )
        audio_io.validate_audio(source.samples, source.sample_rate)

        if verbose:
            print(f"   Duration: {source.duration:.2f}s, Sample rate: {source.sample_rate} Hz")

        # Step 2: Detect repeated frames
        if verbose:
            print("2. Scanning for repeated segments...")

        detection = detect_repeats_in_audio(source.audio(), cfg)
        mask = detection['mask']

        if verbose:
            print(f"   {len(mask)} frames, {int(mask.sum())} repeated, "
                  f"{len(detection['segments'])} segments")

        # Step 3: Re-decode and write kept frames
        if verbose:
            print("3. Writing output...")

        stats = excision.remove_repeated_segments(
            file_path, output_path, mask,
            frame_params=cfg.frame,
            subtype=cfg.output.subtype
        )

        if verbose:
            print(f"   Kept {stats['frames_kept']} of {stats['frames_total']} frames")

        # Step 4: Report
        if report_dir is not None:
            report = export.create_report(
                track_name, cfg, mask, stats,
                duration_sec=source.duration,
                n_samples=source.n_samples
            )
            created_files = export.export_report(
                report, Path(report_dir), track_name,
                audio=source.audio(),
                sample_rate=source.sample_rate,
                generate_plots=generate_plots
            )
            if verbose:
                print(f"   Created {len(created_files)} report files")
                export.print_removal_summary(report)

        print(f"Processing complete. Output saved to {output_path}")
        return True

    except Exception as e:
        print(f"ERROR processing {file_path.name}: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return False


def collect_input_files(paths: Iterable[Path]) -> List[Path]:
    """
    Expand input paths into a list of files.

    Files are passed through as given (missing ones included, so the batch
    reports them). Directories expand to their audio files, sorted.
    """
    files = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            found = [
                p for p in path.iterdir()
                if p.is_file() and p.suffix.lower() in config.AUDIO_EXTENSIONS
            ]
            files.extend(sorted(found))
        else:
            files.append(path)
    return files


def process_batch(
    paths: Iterable[Path],
    output_dir: Optional[Path] = None,
    cfg: RemovalConfig = DEFAULT_CONFIG,
    report_dir: Optional[Path] = None,
    generate_plots: bool = False,
    verbose: bool = False
) -> Dict[str, int]:
    """
    Process every input file, one after another.

    A failing file is reported and skipped; the batch always continues.

    Parameters:
        paths: Input files and/or directories
        output_dir: Output directory (None = sibling 'outputs' directory)
        cfg: Removal config
        report_dir: Directory for JSON reports (None = no reports)
        generate_plots: Write waveform plots with the reports
        verbose: Print verbose messages

    Returns:
        Dict with success/failure counts
    """
    audio_files = collect_input_files(paths)

    if not audio_files:
        print("No audio files found")
        return {'success': 0, 'failed': 0}

    print(f"Found {len(audio_files)} audio files")

    success_count = 0
    failed_count = 0

    for audio_file in audio_files:
        output_path = derive_output_path(
            audio_file, output_dir,
            suffix=cfg.output.suffix,
            output_dir_name=cfg.output.output_dir_name
        )

        success = process_single_track(
            audio_file, output_path, cfg,
            report_dir=report_dir,
            generate_plots=generate_plots,
            verbose=verbose
        )

        if success:
            success_count += 1
        else:
            failed_count += 1

    print(f"\nProcessing complete: {success_count} successful, {failed_count} failed")

    return {'success': success_count, 'failed': failed_count}


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='repeat-remover - Remove repeated segments from audio',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process files, outputs go to ../outputs/<name>_repremoved.wav
  %(prog)s tracks/inputs/take1.wav tracks/inputs/take2.wav

  # Process a directory into an explicit output directory
  %(prog)s tracks/inputs/ --output cleaned/

  # Looser matching with a JSON report and plot per file
  %(prog)s take1.wav --threshold 2.0 --report reports/ --verbose
        """
    )

    parser.add_argument(
        'inputs',
        nargs='+',
        type=str,
        help='Input audio files or directories'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help=f"Output directory (default: '{config.OUTPUT_DIR_NAME}' next to the input directory)"
    )

    parser.add_argument(
        '--report',
        type=str,
        help='Directory for per-file JSON reports'
    )

    parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Skip plot generation for reports'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Print verbose progress messages'
    )

    # Parameter overrides
    parser.add_argument(
        '--frame-length',
        type=int,
        help=f'Frame length in samples (default: {config.FRAME_LENGTH})'
    )

    parser.add_argument(
        '--hop-length',
        type=int,
        help=f'Hop length in samples (default: {config.HOP_LENGTH})'
    )

    parser.add_argument(
        '--sample-rate',
        type=int,
        help=f'Target sample rate (default: {config.TARGET_SAMPLE_RATE})'
    )

    parser.add_argument(
        '--window-size',
        type=int,
        help=f'Frames per comparison window (default: {config.COMPARISON_WINDOW_FRAMES})'
    )

    parser.add_argument(
        '--threshold',
        type=float,
        help=f'DTW similarity threshold (default: {config.SIMILARITY_THRESHOLD})'
    )

    parser.add_argument(
        '--dtw-boundary',
        choices=['reference', 'standard'],
        help=f'DTW boundary initialization (default: {config.DTW_BOUNDARY})'
    )

    parser.add_argument(
        '--exclude-last-window',
        action='store_true',
        help='Leave the window starting at N - W out of the scan'
    )

    args = parser.parse_args(argv)

    try:
        cfg = config_from_params(
            # None means "not given"; explicit values are validated as passed
            frame_length=args.frame_length,
            hop_length=args.hop_length,
            sample_rate=args.sample_rate,
            window_size=args.window_size,
            threshold=args.threshold,
            dtw_boundary=args.dtw_boundary,
            include_last_window=not args.exclude_last_window and config.INCLUDE_LAST_WINDOW,
            suffix=config.OUTPUT_SUFFIX,
            output_dir_name=config.OUTPUT_DIR_NAME,
            subtype=config.OUTPUT_SUBTYPE
        )
    except ValueError as e:
        parser.error(str(e))

    results = process_batch(
        [Path(p) for p in args.inputs],
        output_dir=Path(args.output) if args.output else None,
        cfg=cfg,
        report_dir=Path(args.report) if args.report else None,
        generate_plots=not args.no_plots,
        verbose=args.verbose
    )

    sys.exit(0 if results['failed'] == 0 else 1)


if __name__ == '__main__':
    main()
