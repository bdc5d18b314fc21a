"""Tests for manifest export and GPU uniform packing."""

import json

import numpy as np
import pytest

from sonica.io.exporter import ManifestExporter
from sonica.io.uniforms import (
    UNIFORM_DTYPE,
    build_uniforms,
    storage_buffers,
    uniforms_to_bytes,
)
from sonica.pipeline import analyze

FRAME_KEYS = {
    "frame_index", "time", "is_beat", "beat_intensity", "beat_phase",
    "bass", "mid", "high", "rms", "spectral_centroid", "spectral_flux",
    "fft_bins", "waveform",
}


@pytest.fixture
def analyzed(mixed_signal):
    analysis, frames = analyze(mixed_signal, fps=30)
    return analysis, frames


def test_metadata(analyzed):
    analysis, frames = analyzed
    manifest = ManifestExporter().build_manifest(frames, analysis, 30)
    meta = manifest["metadata"]

    assert meta["schema_version"] == "1.0"
    assert meta["fps"] == 30
    assert meta["n_frames"] == len(frames) == 90
    assert meta["n_bins"] == 1024
    assert meta["waveform_points"] == 512
    assert meta["duration"] == pytest.approx(3.0)
    assert meta["bpm"] == pytest.approx(analysis.tempo_bpm, abs=1e-4)


def test_frames_carry_all_fields(analyzed):
    analysis, frames = analyzed
    manifest = ManifestExporter().build_manifest(frames, analysis, 30)

    assert len(manifest["beats"]) == analysis.n_beats
    for i, frame in enumerate(manifest["frames"]):
        assert set(frame) == FRAME_KEYS
        assert frame["frame_index"] == i
        assert len(frame["fft_bins"]) == 1024
        assert isinstance(frame["is_beat"], bool)


def test_precision(analyzed):
    analysis, frames = analyzed
    manifest = ManifestExporter(precision=2).build_manifest(frames, analysis, 30)
    for value in manifest["frames"][10]["fft_bins"]:
        assert round(value, 2) == value


def test_empty_manifest(analyzed):
    analysis, _ = analyzed
    manifest = ManifestExporter().build_manifest([], analysis, 30)
    assert manifest["frames"] == []
    assert manifest["metadata"]["n_bins"] == 0


def test_export_json(tmp_path, analyzed):
    analysis, frames = analyzed
    path = ManifestExporter().export_json(frames, analysis, 30, tmp_path / "out.json")

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["metadata"]["n_frames"] == 90
    assert len(data["frames"]) == 90


def test_export_numpy(tmp_path, analyzed):
    analysis, frames = analyzed
    path = ManifestExporter().export_numpy(frames, analysis, 30, tmp_path / "out.npz")

    with np.load(path) as data:
        assert data["fft_bins"].shape == (90, 1024)
        assert data["waveform"].shape == (90, 512)
        assert data["is_beat"].dtype == bool
        assert int(data["n_frames"][0]) == 90
        np.testing.assert_allclose(data["rms"], [f.rms for f in frames], rtol=1e-6)
        np.testing.assert_allclose(data["frame_times"], np.arange(90) / 30)
        np.testing.assert_array_equal(data["beat_times"], analysis.beat_times)


class TestUniforms:
    def test_layout(self):
        assert UNIFORM_DTYPE.itemsize == 64

    def test_values(self, analyzed):
        analysis, frames = analyzed
        frame = frames[12]
        uniforms = build_uniforms(frame, 12, 1920, 1080, 30, analysis.duration)

        assert uniforms["resolution"].tolist() == [1920.0, 1080.0]
        assert int(uniforms["frame"]) == 12
        assert float(uniforms["time"]) == pytest.approx(12 / 30)
        assert float(uniforms["rms"]) == pytest.approx(frame.rms, rel=1e-6)
        assert float(uniforms["is_beat"]) == (1.0 if frame.is_beat else 0.0)
        assert float(uniforms["_padding"]) == 0.0

    def test_bytes(self, analyzed):
        analysis, frames = analyzed
        uniforms = build_uniforms(frames[0], 0, 640, 480, 30, analysis.duration)
        assert len(uniforms_to_bytes(uniforms)) == 64

    def test_storage_buffers(self, analyzed):
        _, frames = analyzed
        fft_bytes, wave_bytes = storage_buffers(frames[5])
        assert len(fft_bytes) == 1024 * 4
        assert len(wave_bytes) == len(frames[5].waveform) * 4
