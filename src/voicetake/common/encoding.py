"""Canonical take format and helpers for inspecting WAV files on disk."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import soundfile as sf

from .errors import ConversionUnavailable


CANONICAL_SAMPLE_RATE = 44_100
CANONICAL_CHANNELS = 1
CANONICAL_SUBTYPE = "PCM_16"
CANONICAL_FORMAT = "WAV"

@dataclass(frozen=True)
class CanonicalFormat:
    sample_rate: int = CANONICAL_SAMPLE_RATE
    channels: int = CANONICAL_CHANNELS
    bit_depth: int = 16
    subtype: str = CANONICAL_SUBTYPE
    container: str = CANONICAL_FORMAT

CANONICAL = CanonicalFormat()

@dataclass(frozen=True)
class WavInfo:
    container: str
    subtype: str
    sample_rate: int
    channels: int
    frames: int

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / self.sample_rate

def describe_wav(path: str | Path) -> WavInfo:
    info = sf.info(str(path))
    return WavInfo(
        container=info.format,
        subtype=info.subtype,
        sample_rate=int(info.samplerate),
        channels=int(info.channels),
        frames=int(info.frames),
    )

def is_canonical(info: WavInfo, fmt: CanonicalFormat = CANONICAL) -> bool:
    return (
        info.container == fmt.container
        and info.subtype == fmt.subtype
        and info.sample_rate == fmt.sample_rate
        and info.channels == fmt.channels
    )

def wav_bytes_per_minute(
    channels: int = CANONICAL_CHANNELS,
    sample_rate: int = CANONICAL_SAMPLE_RATE,
    bit_depth: int = 16,
) -> int:
    bytes_per_sec = sample_rate * channels * (bit_depth // 8)
    return bytes_per_sec * 60

def human_readable_bytes(n: int) -> str:
    MiB = 1024 * 1024
    KiB = 1024
    if n >= MiB:
        return f"{n / MiB:.1f} MiB"
    if n >= KiB:
        return f"{n / KiB:.0f} KiB"
    return f"{n} B"


def pcm_to_float(block: np.ndarray) -> np.ndarray:
    """Scale float, signed or offset-binary unsigned PCM into float64 [-1, 1)."""
    if np.issubdtype(block.dtype, np.floating):
        return block.astype(np.float64, copy=False)
    if np.issubdtype(block.dtype, np.signedinteger):
        scale = float(np.iinfo(block.dtype).max) + 1.0
        return block.astype(np.float64) / scale
    if np.issubdtype(block.dtype, np.unsignedinteger):
        # Offset-binary PCM (e.g. 8-bit WAV style)
        info = np.iinfo(block.dtype)
        mid = (float(info.max) + 1.0) / 2.0
        return (block.astype(np.float64) - mid) / mid
    raise ConversionUnavailable(f"Unsupported sample type {block.dtype}")
