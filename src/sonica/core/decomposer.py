"""
Audio sample source.

Decodes an audio file into the immutable mono sample buffer that every
analysis pass reads from.  Decoding problems are fatal: they surface as
:class:`DecodeError` carrying the offending path.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import librosa
import numpy as np

logger = logging.getLogger(__name__)


class DecodeError(RuntimeError):
    """Raised when an audio file cannot be turned into samples."""


@dataclass(frozen=True)
class AudioSamples:
    """Mono floating-point samples plus their sample rate."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim != 1:
            raise ValueError(f"samples must be 1-D (mono), got shape {samples.shape}")
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @property
    def n_samples(self) -> int:
        """Total number of samples in the buffer."""
        return len(self.samples)

    @property
    def duration(self) -> float:
        """Length of the buffer in seconds."""
        return self.n_samples / self.sample_rate


class AudioDecoder:
    """
    Loads audio files as mono sample buffers.

    Multichannel sources are averaged down to one channel and the native
    sample rate is kept unless a target rate is given.
    """

    def __init__(self, sample_rate: int | None = None):
        """
        Initialize the decoder.

        Args:
            sample_rate: Target sample rate. None preserves the file's rate.
        """
        self.sample_rate = sample_rate

    def load_audio(self, audio_path: Union[str, Path]) -> AudioSamples:
        """
        Decode an audio file.

        Args:
            audio_path: Path to audio file (wav, mp3, flac, ogg).

        Returns:
            AudioSamples with the mono signal.

        Raises:
            DecodeError: If the file is missing, unreadable, or has no
                usable sample rate.
        """
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise DecodeError(f"Failed to open audio file: {audio_path}")

        try:
            y, sr = librosa.load(audio_path, sr=self.sample_rate, mono=True)
        except Exception as exc:
            raise DecodeError(f"Failed to decode audio file: {audio_path}") from exc

        if not sr or sr <= 0:
            raise DecodeError(f"Unknown sample rate in {audio_path}")

        audio = AudioSamples(samples=y, sample_rate=int(sr))
        logger.info(
            "Decoded audio: %d samples, %dHz, %.1fs",
            audio.n_samples,
            audio.sample_rate,
            audio.duration,
        )
        return audio
