"""
Manifest serialization module.

Exports the smoothed frame stream to JSON or a NumPy archive so
renderers that run out of process can consume it frame by frame.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from sonica.core.features import GlobalAnalysis, SmoothedFrame


@dataclass
class ManifestMetadata:
    """Metadata header for the frame manifest."""

    bpm: float
    duration: float
    fps: int
    n_frames: int
    n_bins: int
    waveform_points: int
    schema_version: str = "1.0"


class ManifestExporter:
    """
    Exports smoothed frames to a JSON manifest or ``.npz`` archive.

    Each manifest frame carries every renderer-facing field of
    :class:`SmoothedFrame`, rounded to a fixed precision.
    """

    def __init__(self, precision: int = 4):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
        """
        self.precision = precision

    def _round(self, value: float) -> float:
        """Round to configured precision."""
        return round(float(value), self.precision)

    def _round_array(self, values: np.ndarray) -> list[float]:
        return np.round(values.astype(np.float64), self.precision).tolist()

    def _build_frame(self, index: int, frame: SmoothedFrame) -> dict[str, Any]:
        """
        Build a single frame's data dictionary.

        Args:
            index: Frame index.
            frame: Source smoothed frame.

        Returns:
            Dictionary with all frame data.
        """
        return {
            "frame_index": index,
            "time": self._round(frame.time),
            "is_beat": bool(frame.is_beat),
            "beat_intensity": self._round(frame.beat_intensity),
            "beat_phase": self._round(frame.beat_phase),
            "bass": self._round(frame.bass),
            "mid": self._round(frame.mid),
            "high": self._round(frame.high),
            "rms": self._round(frame.rms),
            "spectral_centroid": self._round(frame.spectral_centroid),
            "spectral_flux": self._round(frame.spectral_flux),
            "fft_bins": self._round_array(frame.fft_bins),
            "waveform": self._round_array(frame.waveform),
        }

    def build_manifest(
        self,
        frames: list[SmoothedFrame],
        analysis: GlobalAnalysis,
        fps: int,
    ) -> dict[str, Any]:
        """
        Build the complete manifest dictionary.

        Args:
            frames: Pass 3 output.
            analysis: Pass 1 output (tempo, duration, beat grid).
            fps: Output frame rate.

        Returns:
            Complete manifest dictionary ready for serialization.
        """
        metadata = ManifestMetadata(
            bpm=self._round(analysis.tempo_bpm),
            duration=self._round(analysis.duration),
            fps=fps,
            n_frames=len(frames),
            n_bins=len(frames[0].fft_bins) if frames else 0,
            waveform_points=max((len(f.waveform) for f in frames), default=0),
        )

        return {
            "metadata": {
                "bpm": metadata.bpm,
                "duration": metadata.duration,
                "fps": metadata.fps,
                "n_frames": metadata.n_frames,
                "n_bins": metadata.n_bins,
                "waveform_points": metadata.waveform_points,
                "schema_version": metadata.schema_version,
            },
            "beats": [self._round(t) for t in analysis.beat_times],
            "frames": [self._build_frame(i, frame) for i, frame in enumerate(frames)],
        }

    def export_json(
        self,
        frames: list[SmoothedFrame],
        analysis: GlobalAnalysis,
        fps: int,
        output_path: Union[str, Path],
        indent: int | None = None,
    ) -> Path:
        """
        Export manifest to JSON file.

        Args:
            frames: Smoothed frames.
            analysis: Global analysis.
            fps: Output frame rate.
            output_path: Path for output JSON file.
            indent: JSON indentation level (None = compact).

        Returns:
            Path to written file.
        """
        manifest = self.build_manifest(frames, analysis, fps)
        output_path = Path(output_path)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=indent)

        return output_path

    def export_numpy(
        self,
        frames: list[SmoothedFrame],
        analysis: GlobalAnalysis,
        fps: int,
        output_path: Union[str, Path],
    ) -> Path:
        """
        Export frames as a NumPy .npz archive for faster loading.

        Spectra and waveforms are stacked into 2-D arrays; waveforms
        shorter than the longest one are zero-padded at the end.

        Returns:
            Path to written file.
        """
        output_path = Path(output_path)

        n_bins = len(frames[0].fft_bins) if frames else 0
        wave_len = max((len(f.waveform) for f in frames), default=0)
        fft_bins = np.zeros((len(frames), n_bins), dtype=np.float32)
        waveform = np.zeros((len(frames), wave_len), dtype=np.float32)
        for i, frame in enumerate(frames):
            fft_bins[i] = frame.fft_bins
            waveform[i, : len(frame.waveform)] = frame.waveform

        def column(name: str, dtype=np.float32) -> np.ndarray:
            return np.array([getattr(f, name) for f in frames], dtype=dtype)

        np.savez_compressed(
            output_path,
            fft_bins=fft_bins,
            waveform=waveform,
            bass=column("bass"),
            mid=column("mid"),
            high=column("high"),
            rms=column("rms"),
            spectral_centroid=column("spectral_centroid"),
            spectral_flux=column("spectral_flux"),
            beat_intensity=column("beat_intensity"),
            beat_phase=column("beat_phase"),
            is_beat=column("is_beat", dtype=bool),
            frame_times=column("time", dtype=np.float64),
            beat_times=np.asarray(analysis.beat_times, dtype=np.float64),
            bpm=np.array([analysis.tempo_bpm]),
            fps=np.array([fps]),
            n_frames=np.array([len(frames)]),
        )

        return output_path
