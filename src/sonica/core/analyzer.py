"""
Global (whole-track) analysis (Pass 1).

A single sequential sweep over the full sample buffer that measures
peak levels, builds a spectral-flux onset series, picks beats with an
adaptive threshold, and estimates the tempo from the beat spacing.
"""

import logging

import numpy as np

from sonica.core.decomposer import AudioSamples
from sonica.core.features import FFT_SIZE, HOP_SIZE, GlobalAnalysis
from sonica.core.spectrum import SpectrumTransform

logger = logging.getLogger(__name__)


class GlobalAnalyzer:
    """
    Extracts track-level statistics and beat timing.

    All thresholds are exposed as class attributes so tests and callers can
    reason about them, but the defaults are what the renderer is tuned for.
    """

    # Onset picking
    LOCAL_WINDOW = 20          # flux samples on each side of the candidate
    THRESHOLD_RATIO = 1.5
    THRESHOLD_BIAS = 0.01      # keeps near-silence from producing beats
    MIN_BEAT_GAP = 0.1         # seconds

    # Tempo estimation (60-200 BPM)
    MIN_INTERVAL = 0.3
    MAX_INTERVAL = 1.0
    DEFAULT_BPM = 120.0

    def __init__(self, fft_size: int = FFT_SIZE, hop_size: int = HOP_SIZE):
        """
        Initialize the analyzer.

        Args:
            fft_size: Onset-detection window size in samples.
            hop_size: Distance between consecutive onset windows.
        """
        self.fft_size = fft_size
        self.hop_size = hop_size

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    @staticmethod
    def peak_amplitude(samples: np.ndarray) -> float:
        """Largest absolute sample value (0.0 for an empty buffer)."""
        if len(samples) == 0:
            return 0.0
        return float(np.max(np.abs(samples)))

    @staticmethod
    def peak_rms(samples: np.ndarray, sample_rate: int) -> float:
        """
        Loudest RMS over consecutive 100 ms windows.

        The trailing partial window takes part like any other.
        """
        window = max(1, sample_rate // 10)
        peak = 0.0
        for start in range(0, len(samples), window):
            chunk = samples[start:start + window].astype(np.float64)
            rms = float(np.sqrt(np.mean(chunk * chunk)))
            peak = max(peak, rms)
        return peak

    # ------------------------------------------------------------------
    # Onsets
    # ------------------------------------------------------------------

    def onset_flux(
        self,
        samples: np.ndarray,
        sample_rate: int,
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Spectral flux over full, hop-spaced analysis windows.

        Each value is the half-wave-rectified sum of magnitude increases
        against the previous window; the first window has nothing to
        compare with and scores zero.

        Returns:
            Tuple of (window_start_times, flux_values).
        """
        transform = SpectrumTransform(self.fft_size)
        times = []
        flux_values = []
        previous = None

        for pos in range(0, len(samples) - self.fft_size + 1, self.hop_size):
            magnitudes = transform.magnitudes(
                samples[pos:pos + self.fft_size].astype(np.float64)
            )
            if previous is None:
                flux = 0.0
            else:
                flux = float(np.sum(np.maximum(magnitudes - previous, 0.0)))
            times.append(pos / sample_rate)
            flux_values.append(flux)
            previous = magnitudes

        return np.asarray(times, dtype=np.float64), np.asarray(flux_values, dtype=np.float64)

    def detect_beats(
        self,
        flux_times: np.ndarray,
        flux_values: np.ndarray,
    ) -> np.ndarray:
        """
        Pick beats from a flux series with an adaptive threshold.

        A sample becomes a beat when it exceeds ``local_mean * 1.5 + 0.01``,
        is a local maximum (series ends count as open), and falls more than
        ``MIN_BEAT_GAP`` seconds after the previous beat.

        Args:
            flux_times: Timestamp of each flux sample in seconds.
            flux_values: Onset strength per sample.

        Returns:
            Strictly increasing beat times in seconds.
        """
        n = len(flux_values)
        if n == 0:
            return np.array([], dtype=np.float64)

        flux = np.asarray(flux_values, dtype=np.float64)
        cumsum = np.concatenate([[0.0], np.cumsum(flux)])
        idx = np.arange(n)
        starts = np.maximum(idx - self.LOCAL_WINDOW, 0)
        ends = np.minimum(idx + self.LOCAL_WINDOW + 1, n)
        local_mean = (cumsum[ends] - cumsum[starts]) / (ends - starts)
        thresholds = local_mean * self.THRESHOLD_RATIO + self.THRESHOLD_BIAS

        beat_times: list[float] = []
        for i in range(n):
            value = flux[i]
            if value <= thresholds[i]:
                continue

            is_peak = (i == 0 or value >= flux[i - 1]) and (
                i == n - 1 or value >= flux[i + 1]
            )
            if not is_peak:
                continue

            t = float(flux_times[i])
            if beat_times and t - beat_times[-1] <= self.MIN_BEAT_GAP:
                continue
            beat_times.append(t)

        return np.asarray(beat_times, dtype=np.float64)

    def estimate_tempo(self, beat_times: np.ndarray) -> float:
        """
        Tempo from the median plausible inter-beat interval.

        Intervals outside 0.3-1.0 s are ignored; with fewer than two beats
        or no surviving interval the default of 120 BPM is returned.
        """
        if len(beat_times) < 2:
            return self.DEFAULT_BPM

        intervals = np.diff(beat_times)
        reasonable = intervals[
            (intervals >= self.MIN_INTERVAL) & (intervals <= self.MAX_INTERVAL)
        ]
        if len(reasonable) == 0:
            return self.DEFAULT_BPM

        # Upper median: no interpolation between the two middle intervals.
        median_interval = float(np.sort(reasonable)[len(reasonable) // 2])
        return 60.0 / median_interval

    # ------------------------------------------------------------------
    # Main analysis entry point
    # ------------------------------------------------------------------

    def analyze(self, audio: AudioSamples) -> GlobalAnalysis:
        """
        Run the full global sweep.

        Args:
            audio: Decoded mono audio.

        Returns:
            GlobalAnalysis for the whole track.
        """
        samples = audio.samples
        sr = audio.sample_rate

        peak_amplitude = self.peak_amplitude(samples)
        peak_rms = self.peak_rms(samples, sr)

        flux_times, flux_values = self.onset_flux(samples, sr)
        beat_times = self.detect_beats(flux_times, flux_values)
        tempo_bpm = self.estimate_tempo(beat_times)

        logger.info(
            "Global: peak_rms=%.4f, peak_amp=%.4f, beats=%d, tempo=%.1f BPM",
            peak_rms,
            peak_amplitude,
            len(beat_times),
            tempo_bpm,
        )

        return GlobalAnalysis(
            sample_rate=sr,
            total_samples=audio.n_samples,
            duration=audio.duration,
            peak_rms=peak_rms,
            peak_amplitude=peak_amplitude,
            beat_times=beat_times,
            tempo_bpm=tempo_bpm,
        )
