"""Hand-off formats for renderers."""

from sonica.io.exporter import ManifestExporter
from sonica.io.uniforms import build_uniforms

__all__ = ["ManifestExporter", "build_uniforms"]
