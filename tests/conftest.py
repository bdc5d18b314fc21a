"""Shared synthetic signals for the analysis tests."""

import numpy as np
import pytest

from sonica.core.decomposer import AudioSamples

TEST_SR = 22050


def make_click_train(
    sr: int = 44100,
    duration: float = 10.0,
    spacing: float = 0.5,
    first: float = 0.25,
) -> tuple[np.ndarray, list[float]]:
    """Unit impulses every *spacing* seconds, starting at *first*."""
    y = np.zeros(int(sr * duration), dtype=np.float32)
    click_times = []
    t = first
    while t < duration:
        y[int(round(t * sr))] = 1.0
        click_times.append(t)
        t += spacing
    return y, click_times


@pytest.fixture
def silence():
    """One second of digital silence at 48 kHz."""
    sr = 48000
    return AudioSamples(np.zeros(sr, dtype=np.float32), sr)


@pytest.fixture
def pure_sine():
    """Two seconds of a 1 kHz sine at 44.1 kHz, quarter scale."""
    sr = 44100
    t = np.arange(int(sr * 2.0)) / sr
    y = (0.25 * np.sin(2 * np.pi * 1000.0 * t)).astype(np.float32)
    return AudioSamples(y, sr)


@pytest.fixture
def click_train():
    """Sharp clicks exactly 0.5 s apart over 10 s."""
    y, click_times = make_click_train()
    return AudioSamples(y, 44100), click_times


@pytest.fixture
def mixed_signal():
    """Tonal bed with decaying noise bursts on a 0.5 s grid (3 s)."""
    sr = TEST_SR
    duration = 3.0
    n = int(sr * duration)
    t = np.arange(n) / sr
    rng = np.random.default_rng(0)

    y = 0.3 * np.sin(2 * np.pi * 220.0 * t) + 0.1 * np.sin(2 * np.pi * 880.0 * t)
    burst_len = int(0.05 * sr)
    envelope = np.exp(-np.linspace(0.0, 6.0, burst_len))
    for onset in np.arange(0.25, duration, 0.5):
        start = int(onset * sr)
        end = min(start + burst_len, n)
        y[start:end] += 0.8 * envelope[: end - start] * rng.standard_normal(end - start)

    return AudioSamples(y.astype(np.float32), sr)
