"""
Per-frame uniform payloads for GPU renderers.

Packs a :class:`SmoothedFrame` into the fixed 64-byte little-endian
record a fragment shader binds as its frame uniforms.  The spectrum and
waveform arrays travel separately as plain float32 storage buffers.
"""

import numpy as np

from sonica.core.features import SmoothedFrame

UNIFORM_DTYPE = np.dtype(
    [
        ("resolution", "<f4", (2,)),
        ("time", "<f4"),
        ("frame", "<u4"),
        ("fps", "<f4"),
        ("duration", "<f4"),
        ("rms", "<f4"),
        ("spectral_centroid", "<f4"),
        ("spectral_flux", "<f4"),
        ("beat_intensity", "<f4"),
        ("beat_phase", "<f4"),
        ("is_beat", "<f4"),
        ("bass", "<f4"),
        ("mid", "<f4"),
        ("high", "<f4"),
        ("_padding", "<f4"),
    ]
)


def build_uniforms(
    frame: SmoothedFrame,
    frame_index: int,
    width: int,
    height: int,
    fps: int,
    duration: float,
) -> np.ndarray:
    """
    Build the uniform record for one output frame.

    Args:
        frame: Smoothed frame to upload.
        frame_index: Output frame number.
        width: Render width in pixels.
        height: Render height in pixels.
        fps: Output frame rate.
        duration: Track duration in seconds.

    Returns:
        A 0-d structured array of dtype :data:`UNIFORM_DTYPE`.
    """
    uniforms = np.zeros((), dtype=UNIFORM_DTYPE)
    uniforms["resolution"] = (width, height)
    uniforms["time"] = frame.time
    uniforms["frame"] = frame_index
    uniforms["fps"] = fps
    uniforms["duration"] = duration
    uniforms["rms"] = frame.rms
    uniforms["spectral_centroid"] = frame.spectral_centroid
    uniforms["spectral_flux"] = frame.spectral_flux
    uniforms["beat_intensity"] = frame.beat_intensity
    uniforms["beat_phase"] = frame.beat_phase
    uniforms["is_beat"] = 1.0 if frame.is_beat else 0.0
    uniforms["bass"] = frame.bass
    uniforms["mid"] = frame.mid
    uniforms["high"] = frame.high
    return uniforms


def uniforms_to_bytes(uniforms: np.ndarray) -> bytes:
    """Raw buffer contents for a uniform record."""
    return uniforms.tobytes()


def storage_buffers(frame: SmoothedFrame) -> tuple[bytes, bytes]:
    """(fft_bins, waveform) as float32 byte payloads."""
    return (
        np.ascontiguousarray(frame.fft_bins, dtype="<f4").tobytes(),
        np.ascontiguousarray(frame.waveform, dtype="<f4").tobytes(),
    )
