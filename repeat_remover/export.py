"""
Export Module

Generate JSON reports and plots describing which spans were removed.
All reports follow a versioned schema for consistency.
"""

import numpy as np
import json
from pathlib import Path
from typing import Dict, List, Optional
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt

import config
from repeat_remover import timebase
from repeat_remover.kernel_params import RemovalConfig


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.bool_):
            return bool(obj)
        return super().default(obj)


def describe_segments(
    mask: np.ndarray,
    cfg: RemovalConfig,
    n_samples: Optional[int] = None
) -> List[Dict]:
    """
    Turn the repeated-frame mask into a list of removed segments.

    Parameters:
        mask: Boolean repeated-frame mask
        cfg: Config the mask was computed with
        n_samples: Signal length, clips the final segment

    Returns:
        List of dicts with start_frame, end_frame (exclusive), n_frames,
        start_time and end_time (seconds)
    """
    segments = []
    for start_frame, end_frame in timebase.mask_to_segments(mask):
        start_time, end_time = timebase.frame_span_to_time(
            start_frame, end_frame,
            cfg.frame.frame_length, cfg.frame.hop_length, cfg.frame.sample_rate,
            n_samples=n_samples
        )
        segments.append({
            'start_frame': start_frame,
            'end_frame': end_frame,
            'n_frames': end_frame - start_frame,
            'start_time': round(start_time, 4),
            'end_time': round(end_time, 4),
        })
    return segments


def create_report(
    track_name: str,
    cfg: RemovalConfig,
    mask: np.ndarray,
    stats: Dict,
    duration_sec: float,
    n_samples: Optional[int] = None
) -> Dict:
    """
    Create the removal report following schema.

    Parameters:
        track_name: Name of the track
        cfg: Config used for detection and excision
        mask: Boolean repeated-frame mask
        stats: Dict returned by excision.remove_repeated_segments
        duration_sec: Input duration in seconds
        n_samples: Input length in samples

    Returns:
        Report dict ready for JSON serialization
    """
    mask = np.asarray(mask, dtype=bool)
    n_frames = len(mask)
    n_repeated = int(mask.sum())

    segments = describe_segments(mask, cfg, n_samples=n_samples)
    removed_sec = sum(s['end_time'] - s['start_time'] for s in segments)

    return {
        'schema_version': config.SCHEMA_VERSION,
        'track_name': track_name,
        'params': cfg.to_dict(),
        'duration_sec': round(float(duration_sec), 4),
        'n_frames': n_frames,
        'n_repeated_frames': n_repeated,
        'repeated_fraction': round(n_repeated / n_frames, 4) if n_frames else 0.0,
        'removed_duration_sec': round(removed_sec, 4),
        'segments': segments,
        'excision': dict(stats),
    }


def save_json(data: Dict, output_path: Path) -> None:
    """
    Save data as JSON with pretty printing.

    Parameters:
        data: Dictionary to save
        output_path: Path to output file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(data, f, indent=2, cls=NumpyEncoder)


def plot_repeated_regions(
    audio: np.ndarray,
    sample_rate: int,
    segments: List[Dict],
    output_path: Path,
    title: str = "Repeated Regions"
) -> None:
    """
    Plot the waveform with removed segments shaded.

    Parameters:
        audio: Float signal in [-1.0, 1.0]
        sample_rate: Sample rate (Hz)
        segments: From describe_segments
        output_path: Path to save plot
        title: Plot title
    """
    fig, ax = plt.subplots(figsize=config.PLOT_FIGSIZE)

    times = np.arange(len(audio)) / sample_rate
    ax.plot(times, audio, color='steelblue', linewidth=0.5, label='Waveform')

    for i, segment in enumerate(segments):
        ax.axvspan(segment['start_time'], segment['end_time'],
                   alpha=0.3, color='red',
                   label='Removed' if i == 0 else '_nolegend_')

    ax.set_xlabel('Time (seconds)', fontsize=10)
    ax.set_ylabel('Amplitude', fontsize=10)
    ax.set_title(title, fontsize=12, fontweight='bold')
    ax.legend(loc='upper right', fontsize=8)
    ax.grid(True, alpha=0.3)
    ax.set_ylim(-1.05, 1.05)

    plt.tight_layout()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=config.PLOT_DPI, bbox_inches='tight')
    plt.close(fig)


def export_report(
    report: Dict,
    output_dir: Path,
    track_name: str,
    audio: Optional[np.ndarray] = None,
    sample_rate: Optional[int] = None,
    generate_plots: bool = True
) -> List[Path]:
    """
    Export the report JSON and, if requested, the waveform plot.

    Parameters:
        report: From create_report
        output_dir: Output directory path
        track_name: Name of track (for filenames)
        audio: Float signal, required for the plot
        sample_rate: Sample rate, required for the plot
        generate_plots: Whether to generate the plot file

    Returns:
        List of paths to created files
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    created_files = []

    report_path = output_dir / f"{track_name}_repeats.json"
    save_json(report, report_path)
    created_files.append(report_path)

    if generate_plots and audio is not None and sample_rate:
        plot_path = output_dir / f"{track_name}_repeats.png"
        plot_repeated_regions(
            audio, sample_rate, report['segments'], plot_path,
            title=f"Repeated Regions: {track_name}"
        )
        created_files.append(plot_path)

    return created_files


def print_removal_summary(report: Dict) -> None:
    """
    Print concise removal summary to console.

    Parameters:
        report: Report dict from create_report
    """
    print(f"\n{'='*60}")
    print(f"Repeat Removal Summary: {report['track_name']}")
    print(f"{'='*60}")
    print(f"Duration: {report['duration_sec']:.2f} seconds")
    print(f"Frames: {report['n_frames']}, repeated: {report['n_repeated_frames']} "
          f"({100.0 * report['repeated_fraction']:.1f}%)")
    print(f"Removed: {report['removed_duration_sec']:.2f} seconds "
          f"in {len(report['segments'])} segments")

    for i, segment in enumerate(report['segments'][:10], 1):
        print(f"  {i}. {segment['start_time']:.2f}s - {segment['end_time']:.2f}s "
              f"(frames {segment['start_frame']}-{segment['end_frame'] - 1})")

    print(f"{'='*60}\n")
