"""
Analysis configuration.

Defaults match the renderer's expectations (30 fps, smoothing 0.85).
Values can come from a TOML file laid out as::

    [output]
    fps = 30

    [audio]
    smoothing = 0.85
    workers = 4
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass
class AnalysisConfig:
    """Parameters consumed by the analysis pipeline."""

    fps: int = 30
    smoothing: float = 0.85
    workers: Optional[int] = None  # Pass 2 thread pool size

    def validate(self) -> "AnalysisConfig":
        """
        Check the parameters before any analysis runs.

        Raises:
            ValueError: If fps is not a positive integer, smoothing is
                outside [0, 1), or workers is not positive.
        """
        if isinstance(self.fps, bool) or not isinstance(self.fps, int) or self.fps <= 0:
            raise ValueError(f"fps must be a positive integer, got {self.fps!r}")
        if not 0.0 <= float(self.smoothing) < 1.0:
            raise ValueError(f"smoothing must be in [0, 1), got {self.smoothing!r}")
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers!r}")
        return self


def load_config(path: Union[str, Path, None]) -> AnalysisConfig:
    """
    Load configuration from a TOML file.

    A missing path or file yields the defaults; unknown keys are ignored.

    Args:
        path: Config file location, or None.

    Returns:
        A validated AnalysisConfig.

    Raises:
        ValueError: If the file is not valid TOML or holds invalid values.
    """
    config = AnalysisConfig()
    if path is None:
        return config

    path = Path(path)
    if not path.is_file():
        return config

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid config file {path}: {exc}") from exc

    output = data.get("output", {})
    audio = data.get("audio", {})

    if "fps" in output:
        config.fps = output["fps"]
    if "smoothing" in audio:
        config.smoothing = float(audio["smoothing"])
    if "workers" in audio:
        config.workers = audio["workers"]

    return config.validate()
