"""
Per-frame feature extraction (Pass 2).

Every output video frame gets one raw :class:`FrameFeatures` record,
computed independently from the immutable sample buffer.  Frames are
fanned out over a thread pool; each task writes only its own slot of a
pre-sized result list, and each worker thread owns its transform.
"""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

import numpy as np

from sonica.core.decomposer import AudioSamples
from sonica.core.features import (
    BAND_RANGES,
    EPSILON,
    FFT_SIZE,
    WAVEFORM_POINTS,
    FrameFeatures,
)
from sonica.core.spectrum import SpectrumTransform

logger = logging.getLogger(__name__)


def compute_n_frames(n_samples: int, sample_rate: int, fps: int) -> int:
    """Number of output frames covering *n_samples*: ceil(duration * fps)."""
    return math.ceil(n_samples * fps / sample_rate)


def frame_center(frame_idx: int, samples_per_frame: float) -> int:
    """Sample index at the middle of an output frame; halves round up."""
    return math.floor(frame_idx * samples_per_frame + 0.5)


class FrameFeatureExtractor:
    """
    Computes raw spectral features for each output frame.

    ``extract_frame`` is a pure function of the buffer and the frame index,
    which is what makes the parallel ``extract`` safe without locking.
    """

    def __init__(
        self,
        target_fps: int = 30,
        fft_size: int = FFT_SIZE,
        workers: Optional[int] = None,
    ):
        """
        Initialize the extractor.

        Args:
            target_fps: Output video frame rate.
            fft_size: Spectrum window size in samples.
            workers: Thread pool size. None lets the executor decide.
        """
        self.target_fps = target_fps
        self.fft_size = fft_size
        self.workers = workers
        self._local = threading.local()

    def _transform(self) -> SpectrumTransform:
        """The calling thread's own transform, built on first use."""
        transform = getattr(self._local, "transform", None)
        if transform is None:
            transform = SpectrumTransform(self.fft_size)
            self._local.transform = transform
        return transform

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def band_energy(
        fft_bins: np.ndarray,
        low_hz: float,
        high_hz: float,
        freq_resolution: float,
    ) -> float:
        """RMS of the magnitudes whose bins fall in [low_hz, high_hz)."""
        low_bin = int(low_hz / freq_resolution)
        high_bin = min(int(high_hz / freq_resolution), len(fft_bins))
        if low_bin >= high_bin:
            return 0.0
        band = fft_bins[low_bin:high_bin]
        return float(np.sqrt(np.mean(band * band)))

    @staticmethod
    def spectral_centroid(fft_bins: np.ndarray, freq_resolution: float) -> float:
        """Magnitude-weighted mean frequency; 0.0 for a silent spectrum."""
        total = float(np.sum(fft_bins))
        if total <= EPSILON:
            return 0.0
        freqs = np.arange(len(fft_bins)) * freq_resolution
        return float(np.sum(freqs * fft_bins) / total)

    @staticmethod
    def downsample_waveform(frame_samples: np.ndarray) -> np.ndarray:
        """Nearest-index pick of at most WAVEFORM_POINTS samples."""
        n = len(frame_samples)
        if n == 0:
            return np.zeros(WAVEFORM_POINTS, dtype=np.float32)
        points = min(WAVEFORM_POINTS, n)
        idx = (np.arange(points) * n) // points
        return np.asarray(frame_samples[idx], dtype=np.float32)

    # ------------------------------------------------------------------
    # Per-frame extraction
    # ------------------------------------------------------------------

    def extract_frame(
        self,
        samples: np.ndarray,
        sample_rate: int,
        frame_idx: int,
    ) -> FrameFeatures:
        """
        Raw features for a single output frame.

        Args:
            samples: Full mono sample buffer (read only).
            sample_rate: Sample rate in Hz.
            frame_idx: Output frame index.

        Returns:
            FrameFeatures with ``spectral_flux`` left unset.
        """
        n = len(samples)
        samples_per_frame = sample_rate / self.target_fps
        freq_resolution = sample_rate / self.fft_size
        center = frame_center(frame_idx, samples_per_frame)

        # Spectrum window around the frame center, clipped at the track edges
        start = min(max(0, center - self.fft_size // 2), n)
        end = min(start + self.fft_size, n)
        segment = samples[start:end].astype(np.float64)
        fft_bins = self._transform().magnitudes(segment)

        bands = {
            name: self.band_energy(fft_bins, low, high, freq_resolution)
            for name, (low, high) in BAND_RANGES.items()
        }

        # Time-domain window spanning one frame duration
        frame_len = int(samples_per_frame)
        frame_start = min(max(0, center - frame_len // 2), n)
        frame_end = min(frame_start + frame_len, n)
        frame_samples = samples[frame_start:frame_end]
        if len(frame_samples) == 0:
            rms = 0.0
        else:
            chunk = frame_samples.astype(np.float64)
            rms = float(np.sqrt(np.mean(chunk * chunk)))

        return FrameFeatures(
            fft_bins=fft_bins,
            rms=rms,
            spectral_centroid=self.spectral_centroid(fft_bins, freq_resolution),
            waveform=self.downsample_waveform(frame_samples),
            **bands,
        )

    # ------------------------------------------------------------------
    # Parallel extraction
    # ------------------------------------------------------------------

    def extract(
        self,
        audio: AudioSamples,
        n_frames: Optional[int] = None,
    ) -> list[FrameFeatures]:
        """
        Extract every frame of the track in parallel.

        Args:
            audio: Decoded mono audio.
            n_frames: Frame count override; defaults to ceil(duration * fps).

        Returns:
            FrameFeatures list, index-aligned with output frames.

        Raises:
            Any exception raised by a frame task; remaining tasks are
            cancelled so no partial, misaligned result is returned.
        """
        if n_frames is None:
            n_frames = compute_n_frames(audio.n_samples, audio.sample_rate, self.target_fps)

        results: list[Optional[FrameFeatures]] = [None] * n_frames
        if n_frames == 0:
            return []

        samples = audio.samples
        sr = audio.sample_rate

        def fill_slot(idx: int) -> None:
            results[idx] = self.extract_frame(samples, sr, idx)

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(fill_slot, idx) for idx in range(n_frames)]
            try:
                for future in as_completed(futures):
                    future.result()
            except Exception:
                for future in futures:
                    future.cancel()
                raise

        logger.debug("Extracted %d raw frames", n_frames)
        return results
