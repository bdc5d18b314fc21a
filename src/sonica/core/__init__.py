"""Core audio processing modules."""

from sonica.core.analyzer import GlobalAnalyzer
from sonica.core.decomposer import AudioDecoder, AudioSamples
from sonica.core.extractor import FrameFeatureExtractor
from sonica.core.polisher import SmoothingNormalizer

__all__ = [
    "AudioDecoder",
    "AudioSamples",
    "GlobalAnalyzer",
    "FrameFeatureExtractor",
    "SmoothingNormalizer",
]
