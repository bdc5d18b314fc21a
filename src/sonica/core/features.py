"""
Feature records shared by the three analysis passes.

Pass 1 produces a single :class:`GlobalAnalysis`, Pass 2 one raw
:class:`FrameFeatures` per output frame, and Pass 3 the final
:class:`SmoothedFrame` stream handed to the renderer.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np


# Transform size shared by the onset sweep and the per-frame spectra.
FFT_SIZE = 2048
# Hop between onset-detection windows (Pass 1 only).
HOP_SIZE = 1024
# Length of the per-frame waveform snapshot.
WAVEFORM_POINTS = 512
# Floor used by every peak normalization.
EPSILON = 1e-10

# Seven-band split of the magnitude spectrum, in Hz.
BAND_RANGES: dict[str, tuple[float, float]] = {
    "sub_bass": (20.0, 60.0),
    "bass": (60.0, 250.0),
    "low_mid": (250.0, 500.0),
    "mid": (500.0, 2000.0),
    "upper_mid": (2000.0, 4000.0),
    "presence": (4000.0, 6000.0),
    "brilliance": (6000.0, 20000.0),
}


@dataclass(frozen=True)
class GlobalAnalysis:
    """Whole-track statistics and rhythm (Pass 1 output)."""

    sample_rate: int
    total_samples: int
    duration: float
    peak_rms: float
    peak_amplitude: float
    beat_times: np.ndarray  # seconds, strictly increasing
    tempo_bpm: float

    @property
    def n_beats(self) -> int:
        return len(self.beat_times)


@dataclass
class FrameFeatures:
    """Raw, unsmoothed features for one output frame (Pass 2 output)."""

    fft_bins: np.ndarray    # (FFT_SIZE // 2,) linear magnitudes
    sub_bass: float         # 20-60Hz
    bass: float             # 60-250Hz
    low_mid: float          # 250-500Hz
    mid: float              # 500-2000Hz
    upper_mid: float        # 2-4kHz
    presence: float         # 4-6kHz
    brilliance: float       # 6-20kHz
    rms: float
    spectral_centroid: float  # Hz
    waveform: np.ndarray    # (<= WAVEFORM_POINTS,)
    # Filled in by Pass 3, which needs the previous frame.
    spectral_flux: Optional[float] = None

    @property
    def bass_sum(self) -> float:
        return self.sub_bass + self.bass

    @property
    def mid_sum(self) -> float:
        return self.low_mid + self.mid

    @property
    def high_sum(self) -> float:
        return self.upper_mid + self.presence + self.brilliance


@dataclass(frozen=True)
class SmoothedFrame:
    """Smoothed and normalized per-frame record, ready for rendering.

    Every float field except ``time`` lies in [0.0, 1.0].
    """

    fft_bins: np.ndarray  # (FFT_SIZE // 2,) float32
    bass: float
    mid: float
    high: float
    rms: float
    spectral_centroid: float
    spectral_flux: float
    beat_intensity: float  # 1.0 on a beat, exponential decay afterwards
    beat_phase: float      # position within the current beat interval
    is_beat: bool
    waveform: np.ndarray = field(repr=False)
    time: float = 0.0
