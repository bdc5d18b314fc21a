"""
End-to-end audio analysis pipeline.

Decode → Pass 1 (global analysis) and Pass 2 (per-frame extraction)
running side by side → Pass 3 (smoothing and normalization) once both
have finished.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from sonica.config import AnalysisConfig
from sonica.core.analyzer import GlobalAnalyzer
from sonica.core.decomposer import AudioDecoder, AudioSamples
from sonica.core.extractor import FrameFeatureExtractor, compute_n_frames
from sonica.core.features import GlobalAnalysis, SmoothedFrame
from sonica.core.polisher import SmoothingNormalizer

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Global analysis plus the ordered frame stream for one track."""

    analysis: GlobalAnalysis
    frames: list[SmoothedFrame]
    fps: int

    @property
    def bpm(self) -> float:
        return self.analysis.tempo_bpm

    @property
    def duration(self) -> float:
        return self.analysis.duration

    @property
    def n_frames(self) -> int:
        return len(self.frames)


class AudioPipeline:
    """
    Runs the three-pass analysis on a file or an in-memory buffer.
    """

    def __init__(
        self,
        target_fps: int = 30,
        smoothing: float = 0.85,
        workers: Optional[int] = None,
        sample_rate: Optional[int] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            target_fps: Output frame rate.
            smoothing: Smoothing factor in [0, 1).
            workers: Pass 2 thread pool size (None = executor default).
            sample_rate: Resample on decode; None keeps the file's rate.

        Raises:
            ValueError: If any parameter is out of range.
        """
        self.config = AnalysisConfig(
            fps=target_fps,
            smoothing=smoothing,
            workers=workers,
        ).validate()

        self.decoder = AudioDecoder(sample_rate=sample_rate)
        self.analyzer = GlobalAnalyzer()
        self.extractor = FrameFeatureExtractor(target_fps=target_fps, workers=workers)
        self.normalizer = SmoothingNormalizer(fps=target_fps, smoothing=smoothing)

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "AudioPipeline":
        config.validate()
        return cls(
            target_fps=config.fps,
            smoothing=config.smoothing,
            workers=config.workers,
        )

    @property
    def target_fps(self) -> int:
        return self.config.fps

    def analyze(self, audio: AudioSamples) -> AnalysisResult:
        """
        Analyze an already decoded buffer.

        Args:
            audio: Mono samples and sample rate.

        Returns:
            AnalysisResult with ceil(duration * fps) frames.
        """
        n_frames = compute_n_frames(audio.n_samples, audio.sample_rate, self.target_fps)

        with ThreadPoolExecutor(max_workers=1) as executor:
            logger.info("Pass 1: Global analysis...")
            global_future = executor.submit(self.analyzer.analyze, audio)

            logger.info("Pass 2: Per-frame FFT (%d frames)...", n_frames)
            raw_frames = self.extractor.extract(audio, n_frames)

            analysis = global_future.result()

        logger.info(
            "Pass 3: Smoothing & normalization (smoothing=%.2f)...",
            self.config.smoothing,
        )
        frames = self.normalizer.polish(raw_frames, analysis)

        return AnalysisResult(analysis=analysis, frames=frames, fps=self.target_fps)

    def process(self, audio_path: Union[str, Path]) -> AnalysisResult:
        """
        Decode and analyze an audio file.

        Raises:
            DecodeError: If the file cannot be decoded.
        """
        audio = self.decoder.load_audio(audio_path)
        result = self.analyze(audio)
        logger.info(
            "Total frames: %d, Duration: %.1fs",
            result.n_frames,
            result.duration,
        )
        return result


def analyze(
    audio: AudioSamples,
    fps: int = 30,
    smoothing: float = 0.85,
) -> tuple[GlobalAnalysis, list[SmoothedFrame]]:
    """Run all three passes on *audio* and return (analysis, frames)."""
    result = AudioPipeline(target_fps=fps, smoothing=smoothing).analyze(audio)
    return result.analysis, result.frames
