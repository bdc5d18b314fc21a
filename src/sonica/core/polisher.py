"""
Signal smoothing and normalization module (Pass 3).

Turns the raw per-frame features into the bounded stream the renderer
consumes: spectral flux between consecutive frames, a bidirectional
exponential filter to remove flicker without lag, peak normalization,
and the beat envelope / phase derived from the global beat grid.

Every step here carries state from one frame to the next, so this pass
runs sequentially in frame order.
"""

import bisect
import logging

import numpy as np

from sonica.core.features import EPSILON, FrameFeatures, GlobalAnalysis, SmoothedFrame

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Recurrences
# ---------------------------------------------------------------------------

def ema_forward(values: np.ndarray, alpha: float) -> np.ndarray:
    """
    Forward exponential moving average along axis 0.

    ``out[0] = values[0]``; ``out[i] = alpha * values[i] + (1 - alpha) * out[i - 1]``.
    Works for 1-D series and for (n_frames, n_bins) stacks alike.
    """
    out = np.empty_like(values)
    if len(values) == 0:
        return out
    current = values[0]
    out[0] = current
    for i in range(1, len(values)):
        current = alpha * values[i] + (1.0 - alpha) * current
        out[i] = current
    return out


def ema_backward(values: np.ndarray, alpha: float) -> np.ndarray:
    """Same recurrence as :func:`ema_forward`, seeded at the last index."""
    out = np.empty_like(values)
    if len(values) == 0:
        return out
    current = values[-1]
    out[-1] = current
    for i in range(len(values) - 2, -1, -1):
        current = alpha * values[i] + (1.0 - alpha) * current
        out[i] = current
    return out


def compute_spectral_flux(spectra: np.ndarray) -> np.ndarray:
    """
    Half-wave-rectified magnitude increase between consecutive frames.

    Args:
        spectra: (n_frames, n_bins) raw magnitudes.

    Returns:
        (n_frames,) flux; frame 0 is always 0.0.
    """
    n = len(spectra)
    flux = np.zeros(n, dtype=np.float64)
    for i in range(1, n):
        diff = spectra[i].astype(np.float64) - spectra[i - 1]
        flux[i] = float(np.sum(np.maximum(diff, 0.0)))
    return flux


# ---------------------------------------------------------------------------
# Beat grid helpers
# ---------------------------------------------------------------------------

def is_on_beat(time: float, beat_times: np.ndarray, fps: int) -> bool:
    """True when *time* lies within half a frame period of any beat."""
    if len(beat_times) == 0:
        return False
    tolerance = 0.5 / fps
    idx = bisect.bisect_left(beat_times, time)
    for j in (idx - 1, idx):
        if 0 <= j < len(beat_times) and abs(time - beat_times[j]) < tolerance:
            return True
    return False


def compute_beat_phase(time: float, beat_times: np.ndarray) -> float:
    """
    Position of *time* inside its beat interval, in [0.0, 1.0].

    Before the first beat the phase ramps from 0 towards the first beat;
    after the last beat it holds at 1.0.
    """
    if len(beat_times) == 0:
        return 0.0

    idx = bisect.bisect_right(beat_times, time)

    if idx == 0:
        first = float(beat_times[0])
        if first > 0.0:
            return min(time / first, 1.0)
        return 0.0

    if idx >= len(beat_times):
        return 1.0

    prev = float(beat_times[idx - 1])
    interval = float(beat_times[idx]) - prev
    if interval > 0.0:
        return (time - prev) / interval
    return 0.0


def beat_envelope(
    frame_times: np.ndarray,
    beat_times: np.ndarray,
    fps: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Decaying pulse that resets to 1.0 on every beat frame.

    The envelope starts at 0.0 and is multiplied by ``0.9 ** (10 / fps)``
    on every frame that is not on a beat (roughly 100 ms to fade).

    Returns:
        Tuple of (beat_intensity, is_beat) arrays.
    """
    decay = 0.9 ** (10.0 / fps)
    n = len(frame_times)
    intensity = np.zeros(n, dtype=np.float64)
    on_beat = np.zeros(n, dtype=bool)

    current = 0.0
    for i, t in enumerate(frame_times):
        if is_on_beat(float(t), beat_times, fps):
            on_beat[i] = True
            current = 1.0
        else:
            current *= decay
        intensity[i] = current

    return intensity, on_beat


# ---------------------------------------------------------------------------
# Polisher
# ---------------------------------------------------------------------------

class SmoothingNormalizer:
    """
    Applies bidirectional smoothing and peak normalization to raw frames.

    The smoothing factor ``s`` sets ``alpha = 1 - s``: 0.0 passes raw values
    straight through, values close to 1.0 smooth heavily.
    """

    def __init__(self, fps: int = 30, smoothing: float = 0.85):
        """
        Initialize the normalizer.

        Args:
            fps: Output frame rate.
            smoothing: Smoothing factor in [0.0, 1.0).

        Raises:
            ValueError: If fps is not positive or smoothing is out of range.
        """
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError(f"smoothing must be in [0, 1), got {smoothing}")
        self.fps = fps
        self.smoothing = smoothing

    @property
    def alpha(self) -> float:
        return 1.0 - self.smoothing

    def smooth(self, values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Return the (forward, backward) smoothed versions of *values*."""
        return ema_forward(values, self.alpha), ema_backward(values, self.alpha)

    def polish(
        self,
        raw: list[FrameFeatures],
        analysis: GlobalAnalysis,
    ) -> list[SmoothedFrame]:
        """
        Produce the final bounded frame stream.

        Args:
            raw: Pass 2 output, one record per output frame.
            analysis: Pass 1 output.

        Returns:
            SmoothedFrame list, same length and order as *raw*.
        """
        if not raw:
            return []

        n = len(raw)
        spectra = np.stack([frame.fft_bins for frame in raw]).astype(np.float32)

        flux = compute_spectral_flux(spectra)
        for frame, value in zip(raw, flux):
            frame.spectral_flux = float(value)

        # Normalization peaks
        peak_rms = max(analysis.peak_rms, EPSILON)
        peak_flux = max(float(flux.max()), EPSILON)
        centroids = np.array([frame.spectral_centroid for frame in raw], dtype=np.float64)
        max_centroid = max(float(centroids.max()), EPSILON)
        peak_bins = np.maximum(spectra.max(axis=0), EPSILON)

        # Bidirectional smoothing
        rms = np.array([frame.rms for frame in raw], dtype=np.float64)
        bass = np.array([frame.bass_sum for frame in raw], dtype=np.float64)
        mid = np.array([frame.mid_sum for frame in raw], dtype=np.float64)
        high = np.array([frame.high_sum for frame in raw], dtype=np.float64)

        fwd_bins, bwd_bins = self.smooth(spectra)
        fwd_rms, bwd_rms = self.smooth(rms)
        fwd_bass, bwd_bass = self.smooth(bass)
        fwd_mid, bwd_mid = self.smooth(mid)
        fwd_high, bwd_high = self.smooth(high)

        # Bands are scaled by the forward pass peak, not the averaged one.
        peak_bass = max(float(fwd_bass.max()), EPSILON)
        peak_mid = max(float(fwd_mid.max()), EPSILON)
        peak_high = max(float(fwd_high.max()), EPSILON)

        frame_times = np.arange(n, dtype=np.float64) / self.fps
        intensity, on_beat = beat_envelope(frame_times, analysis.beat_times, self.fps)

        frames: list[SmoothedFrame] = []
        for i in range(n):
            time = float(frame_times[i])
            bins = np.minimum((fwd_bins[i] + bwd_bins[i]) * 0.5 / peak_bins, 1.0)

            frames.append(
                SmoothedFrame(
                    fft_bins=bins.astype(np.float32),
                    bass=float(min((fwd_bass[i] + bwd_bass[i]) * 0.5 / peak_bass, 1.0)),
                    mid=float(min((fwd_mid[i] + bwd_mid[i]) * 0.5 / peak_mid, 1.0)),
                    high=float(min((fwd_high[i] + bwd_high[i]) * 0.5 / peak_high, 1.0)),
                    rms=float(min((fwd_rms[i] + bwd_rms[i]) * 0.5 / peak_rms, 1.0)),
                    spectral_centroid=float(min(centroids[i] / max_centroid, 1.0)),
                    spectral_flux=float(min(flux[i] / peak_flux, 1.0)),
                    beat_intensity=float(intensity[i]),
                    beat_phase=compute_beat_phase(time, analysis.beat_times),
                    is_beat=bool(on_beat[i]),
                    waveform=raw[i].waveform,
                    time=time,
                )
            )

        return frames
