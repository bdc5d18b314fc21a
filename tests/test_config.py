"""Tests for configuration loading and the command line entry point."""

import json
import logging

import numpy as np
import pytest
from scipy.io import wavfile

from sonica.cli import build_parser, main
from sonica.config import AnalysisConfig, load_config


class TestConfig:
    def test_defaults(self):
        config = AnalysisConfig()
        assert config.fps == 30
        assert config.smoothing == 0.85
        assert config.workers is None

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "absent.toml") == AnalysisConfig()
        assert load_config(None) == AnalysisConfig()

    def test_load_toml(self, tmp_path):
        path = tmp_path / "sonica.toml"
        path.write_text(
            "[output]\nfps = 60\n\n[audio]\nsmoothing = 0.5\nworkers = 2\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.fps == 60
        assert config.smoothing == 0.5
        assert config.workers == 2

    def test_partial_toml(self, tmp_path):
        path = tmp_path / "sonica.toml"
        path.write_text("[audio]\nsmoothing = 0\n", encoding="utf-8")
        config = load_config(path)
        assert config.fps == 30
        assert config.smoothing == 0.0

    @pytest.mark.parametrize(
        "text",
        [
            "[output]\nfps = 0\n",
            "[output]\nfps = 29.97\n",
            "[output]\nfps = true\n",
            "[audio]\nsmoothing = 1.0\n",
            "[audio]\nworkers = -1\n",
            "this is = = not toml",
        ],
    )
    def test_invalid(self, tmp_path, text):
        path = tmp_path / "bad.toml"
        path.write_text(text, encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)


@pytest.fixture
def wav_path(tmp_path, mixed_signal):
    path = tmp_path / "track.wav"
    wavfile.write(path, mixed_signal.sample_rate, np.asarray(mixed_signal.samples))
    return path


class TestCli:
    def test_parser_defaults(self):
        args = build_parser().parse_args(["song.wav"])
        assert args.fps is None
        assert args.format == "json"

    def test_writes_json_manifest(self, wav_path, tmp_path):
        output = tmp_path / "frames.json"
        code = main([str(wav_path), "-o", str(output), "--fps", "24",
                     "--config", str(tmp_path / "none.toml")])

        assert code == 0
        with open(output, encoding="utf-8") as f:
            manifest = json.load(f)
        assert manifest["metadata"]["fps"] == 24
        assert manifest["metadata"]["n_frames"] == 72

    def test_default_output_name(self, wav_path, tmp_path):
        code = main([str(wav_path), "--format", "npz",
                     "--config", str(tmp_path / "none.toml")])
        assert code == 0
        assert (tmp_path / "track_frames.npz").exists()

    def test_config_file_applied(self, wav_path, tmp_path):
        config = tmp_path / "sonica.toml"
        config.write_text("[output]\nfps = 10\n", encoding="utf-8")
        output = tmp_path / "frames.json"

        assert main([str(wav_path), "-o", str(output), "--config", str(config)]) == 0
        with open(output, encoding="utf-8") as f:
            assert json.load(f)["metadata"]["n_frames"] == 30

    def test_logs_under_module_name(self, wav_path, tmp_path, caplog):
        caplog.set_level(logging.INFO)
        output = tmp_path / "frames.json"
        assert main([str(wav_path), "-o", str(output),
                     "--config", str(tmp_path / "none.toml")]) == 0

        done = [r for r in caplog.records if r.getMessage().startswith("Done!")]
        assert [r.name for r in done] == ["sonica.cli"]

    def test_missing_audio(self, tmp_path):
        assert main([str(tmp_path / "missing.wav")]) == 1

    def test_invalid_smoothing(self, wav_path, tmp_path):
        code = main([str(wav_path), "-s", "1.5", "--config", str(tmp_path / "none.toml")])
        assert code == 2

    def test_undecodable_audio(self, tmp_path):
        path = tmp_path / "broken.wav"
        path.write_bytes(b"RIFF....nonsense")
        assert main([str(path), "--config", str(tmp_path / "none.toml")]) == 1
