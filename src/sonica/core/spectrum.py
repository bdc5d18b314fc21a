"""Windowed magnitude spectrum shared by the onset sweep and frame extraction."""

import numpy as np
from scipy import fft as scipy_fft
from scipy import signal as scipy_signal

from sonica.core.features import FFT_SIZE


class SpectrumTransform:
    """
    A prepared forward transform of fixed size.

    Holds the symmetric Hann window for its size.  Instances are cheap but
    are not shared between worker threads; each worker builds its own.
    """

    def __init__(self, size: int = FFT_SIZE):
        self.size = size
        self.n_bins = size // 2
        self.window = scipy_signal.windows.hann(size, sym=True)

    def magnitudes(self, segment: np.ndarray) -> np.ndarray:
        """
        Magnitude of the lower half of the spectrum of *segment*.

        Segments shorter than the transform size are windowed over their
        own span and zero-padded at the end.
        """
        buffer = np.zeros(self.size, dtype=np.float64)
        n = min(len(segment), self.size)
        buffer[:n] = segment[:n] * self.window[:n]
        spectrum = scipy_fft.rfft(buffer)
        return np.abs(spectrum[: self.n_bins])

    def bin_frequencies(self, sample_rate: int) -> np.ndarray:
        """Center frequency (Hz) of each returned bin."""
        return np.arange(self.n_bins) * (sample_rate / self.size)
