"""Audio feature analysis engine for audio-reactive video rendering."""

from sonica.core.analyzer import GlobalAnalyzer
from sonica.core.decomposer import AudioDecoder, AudioSamples, DecodeError
from sonica.core.extractor import FrameFeatureExtractor
from sonica.core.features import FrameFeatures, GlobalAnalysis, SmoothedFrame
from sonica.core.polisher import SmoothingNormalizer
from sonica.io.exporter import ManifestExporter
from sonica.pipeline import AnalysisResult, AudioPipeline, analyze

__version__ = "0.1.0"
__all__ = [
    "AudioDecoder",
    "AudioSamples",
    "DecodeError",
    "GlobalAnalyzer",
    "FrameFeatureExtractor",
    "SmoothingNormalizer",
    "GlobalAnalysis",
    "FrameFeatures",
    "SmoothedFrame",
    "ManifestExporter",
    "AudioPipeline",
    "AnalysisResult",
    "analyze",
]
