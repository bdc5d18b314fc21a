"""
Sonica analysis pipeline benchmark + determinism validation.

Usage:
    python scripts/benchmark.py [--quick]

Modes:
    default  : 60 s synthetic track, 2 warm-up + 5 timed runs per pass
    --quick  : 10 s synthetic track, 1 warm-up + 3 timed runs (CI-friendly)

Output: timing table + determinism report printed to stdout.

Determinism check: runs the full pipeline with one extraction worker and
with several, and requires the two frame streams to be bit-identical.
"""

import argparse
import os
import sys
import time
from typing import List

import numpy as np

# Make sure the installed package is on the path when run from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from sonica.core.analyzer import GlobalAnalyzer
from sonica.core.decomposer import AudioSamples
from sonica.core.extractor import FrameFeatureExtractor
from sonica.core.polisher import SmoothingNormalizer
from sonica.pipeline import AudioPipeline

_SEP = "─" * 72


def _hdr(title: str) -> None:
    print(f"\n{_SEP}")
    print(f"  {title}")
    print(_SEP)


def _timeit(fn, *args, warmup: int = 2, runs: int = 5, **kwargs) -> List[float]:
    """Run fn(*args, **kwargs), discard warmup iterations, return timed samples."""
    for _ in range(warmup):
        fn(*args, **kwargs)
    times = []
    for _ in range(runs):
        t0 = time.perf_counter()
        fn(*args, **kwargs)
        times.append(time.perf_counter() - t0)
    return times


def _stats(times: List[float]) -> str:
    arr = np.array(times)
    return f"mean={arr.mean()*1000:.1f} ms  min={arr.min()*1000:.1f} ms  max={arr.max()*1000:.1f} ms"


def _synthetic_track(duration: float, sr: int = 44100) -> AudioSamples:
    """Two sines plus noise bursts on a 120 BPM grid."""
    n = int(duration * sr)
    t = np.arange(n) / sr
    rng = np.random.RandomState(0)
    y = 0.3 * np.sin(2 * np.pi * 110.0 * t) + 0.1 * np.sin(2 * np.pi * 1760.0 * t)
    burst = int(0.04 * sr)
    env = np.exp(-np.linspace(0.0, 5.0, burst))
    for onset in np.arange(0.0, duration, 0.5):
        start = int(onset * sr)
        end = min(start + burst, n)
        y[start:end] += 0.7 * env[: end - start] * rng.randn(end - start)
    return AudioSamples(y.astype(np.float32), sr)


# ---------------------------------------------------------------------------
# Determinism helpers
# ---------------------------------------------------------------------------

def _determinism_report(audio: AudioSamples, workers: int) -> dict:
    single = AudioPipeline(workers=1).analyze(audio)
    many = AudioPipeline(workers=workers).analyze(audio)

    bins_equal = all(
        np.array_equal(a.fft_bins, b.fft_bins) for a, b in zip(single.frames, many.frames)
    )
    scalars_equal = all(
        (a.rms, a.bass, a.mid, a.high, a.spectral_flux, a.beat_intensity)
        == (b.rms, b.bass, b.mid, b.high, b.spectral_flux, b.beat_intensity)
        for a, b in zip(single.frames, many.frames)
    )
    return {
        "frames": single.n_frames == many.n_frames,
        "beats": np.array_equal(single.analysis.beat_times, many.analysis.beat_times),
        "fft_bins": bins_equal,
        "scalars": scalars_equal,
    }


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Sonica analysis benchmark")
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Use a 10 s track instead of 60 s for fast CI runs",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=os.cpu_count() or 4,
        help="Extraction threads for the parallel runs",
    )
    args = parser.parse_args()

    if args.quick:
        DURATION = 10.0
        WARMUP, RUNS = 1, 3
        label = "10 s track (quick mode)"
    else:
        DURATION = 60.0
        WARMUP, RUNS = 2, 5
        label = "60 s track (full mode)"

    print(f"\nSonica Pipeline Benchmark  :  {label}")
    print(f"Extraction workers: {args.workers}")
    print(f"Warm-up runs: {WARMUP}  |  Timed runs: {RUNS}")

    audio = _synthetic_track(DURATION)
    results = {}

    # ------------------------------------------------------------------
    # 1. Pass 1: global analysis
    # ------------------------------------------------------------------
    _hdr("1. GlobalAnalyzer.analyze")
    analyzer = GlobalAnalyzer()
    t = _timeit(analyzer.analyze, audio, warmup=WARMUP, runs=RUNS)
    results["global_analysis"] = t
    print(f"  {_stats(t)}")
    analysis = analyzer.analyze(audio)
    print(f"  beats={analysis.n_beats}  tempo={analysis.tempo_bpm:.1f} BPM")

    # ------------------------------------------------------------------
    # 2. Pass 2: per-frame extraction, serial vs threaded
    # ------------------------------------------------------------------
    _hdr("2. FrameFeatureExtractor.extract")
    serial = FrameFeatureExtractor(workers=1)
    t_serial = _timeit(serial.extract, audio, warmup=WARMUP, runs=RUNS)
    results["frame_extract_serial"] = t_serial
    print(f"  workers=1   {_stats(t_serial)}")

    threaded = FrameFeatureExtractor(workers=args.workers)
    t = _timeit(threaded.extract, audio, warmup=WARMUP, runs=RUNS)
    results["frame_extract_threaded"] = t
    print(f"  workers={args.workers:<3} {_stats(t)}")
    print(f"  Speedup: {np.mean(t_serial) / np.mean(t):.1f}×")

    # ------------------------------------------------------------------
    # 3. Pass 3: smoothing & normalization
    # ------------------------------------------------------------------
    _hdr("3. SmoothingNormalizer.polish")
    raw = threaded.extract(audio)
    normalizer = SmoothingNormalizer()
    t = _timeit(normalizer.polish, raw, analysis, warmup=WARMUP, runs=RUNS)
    results["smoothing"] = t
    print(f"  {_stats(t)}")

    # ------------------------------------------------------------------
    # 4. Full pipeline
    # ------------------------------------------------------------------
    _hdr("4. AudioPipeline.analyze")
    pipeline = AudioPipeline(workers=args.workers)
    t = _timeit(pipeline.analyze, audio, warmup=WARMUP, runs=RUNS)
    results["pipeline"] = t
    print(f"  {_stats(t)}")
    print(f"  Realtime factor: {DURATION / np.mean(t):.1f}×")

    # ------------------------------------------------------------------
    # Determinism validation
    # ------------------------------------------------------------------
    _hdr(f"Determinism validation (workers=1 vs workers={args.workers})")
    report = _determinism_report(_synthetic_track(min(DURATION, 10.0)), args.workers)
    for name, ok in report.items():
        print(f"  {name:<12} [{'PASS' if ok else 'FAIL'}]")

    if all(report.values()):
        print("\n  All determinism checks PASSED.")
    else:
        print("\n  !! DETERMINISM FAILURES DETECTED: frame order depends on scheduling !!")
        sys.exit(1)

    # ------------------------------------------------------------------
    # Summary table
    # ------------------------------------------------------------------
    _hdr("Summary")
    rows = [(name, f"{np.mean(times)*1000:.1f}") for name, times in results.items()]

    name_w = max(len(r[0]) for r in rows) + 2
    print(f"  {'Stage':<{name_w}} Time (ms, mean)")
    print(f"  {'-'*name_w} ---------------")
    for name, val in rows:
        print(f"  {name:<{name_w}} {val}")

    print(f"\n{_SEP}\n")


if __name__ == "__main__":
    main()
