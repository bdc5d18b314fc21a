"""
Command line entry point.

Analyzes an audio file and writes the per-frame manifest that drives
the renderer.
"""

import argparse
import logging
import sys
from pathlib import Path

from sonica.config import load_config
from sonica.core.decomposer import DecodeError
from sonica.io.exporter import ManifestExporter
from sonica.pipeline import AudioPipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sonica-analyze",
        description="Analyze audio into per-frame visual features",
    )

    parser.add_argument(
        "audio",
        type=Path,
        help="Input audio file (wav, mp3, flac, ogg)",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output manifest (default: <audio>_frames.json)",
    )

    parser.add_argument(
        "-f", "--fps",
        type=int,
        default=None,
        help="Frames per second (default: 30)",
    )

    parser.add_argument(
        "-s", "--smoothing",
        type=float,
        default=None,
        help="Smoothing factor 0.0-1.0, exclusive (default: 0.85)",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads for per-frame extraction (default: automatic)",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=Path("sonica.toml"),
        help="TOML config file (default: ./sonica.toml if present)",
    )

    parser.add_argument(
        "--format",
        choices=("json", "npz"),
        default="json",
        help="Manifest format (default: json)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
        if args.fps is not None:
            config.fps = args.fps
        if args.smoothing is not None:
            config.smoothing = args.smoothing
        if args.workers is not None:
            config.workers = args.workers
        pipeline = AudioPipeline.from_config(config)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    output = args.output
    if output is None:
        output = args.audio.with_name(f"{args.audio.stem}_frames.{args.format}")

    logger.info("Input: %s", args.audio)
    logger.info("Output: %s", output)

    try:
        result = pipeline.process(args.audio)
    except DecodeError as exc:
        logger.error("%s", exc)
        return 1

    exporter = ManifestExporter()
    if args.format == "npz":
        exporter.export_numpy(result.frames, result.analysis, result.fps, output)
    else:
        exporter.export_json(result.frames, result.analysis, result.fps, output)

    logger.info(
        "Done! %d frames, %.1f BPM, %d beats -> %s",
        result.n_frames,
        result.bpm,
        result.analysis.n_beats,
        output,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
