"""Convert native capture buffers into the canonical storage format.

The canonical format is 44.1 kHz, mono, 16-bit signed PCM. Native buffers
arrive as (frames, channels) arrays at whatever rate the device runs at; they
are downmixed, resampled by linear interpolation and requantized to int16.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .common.encoding import CANONICAL, CanonicalFormat, pcm_to_float
from .common.errors import ConversionUnavailable, FormatNegotiationFailed


_INT16_MAX = 32767


@dataclass(frozen=True)
class NativeFormat:
    sample_rate: float
    channels: int


def target_frame_count(frames: int, native_rate: float, target_rate: float) -> int:
    return int(round(frames * float(target_rate) / float(native_rate)))


class FormatConverter:
    """Stateless per-buffer converter for one native format.

    Construction fails with FormatNegotiationFailed when the native format
    cannot be mapped at all; `convert` fails with ConversionUnavailable for a
    buffer that does not match the negotiated layout.
    """

    def __init__(self, native: NativeFormat, target: CanonicalFormat = CANONICAL) -> None:
        if not native.sample_rate or native.sample_rate <= 0:
            raise FormatNegotiationFailed(
                f"Device reports an invalid sample rate ({native.sample_rate!r})"
            )
        if native.channels < 1:
            raise FormatNegotiationFailed("Device exposes no input channels")
        if target.channels != 1 or target.bit_depth != 16:
            raise FormatNegotiationFailed(
                f"No conversion to {target.channels} ch / {target.bit_depth}-bit"
            )
        self.native = native
        self.target = target

    @property
    def ratio(self) -> float:
        return self.target.sample_rate / float(self.native.sample_rate)

    def output_frames(self, frames: int) -> int:
        return target_frame_count(frames, self.native.sample_rate, self.target.sample_rate)

    def convert(self, block: np.ndarray) -> np.ndarray:
        """Return a 1-D int16 array of `output_frames(len(block))` samples."""
        arr = np.asarray(block)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise ConversionUnavailable(f"Unsupported buffer shape {arr.shape}")
        if arr.shape[1] != self.native.channels:
            raise ConversionUnavailable(
                f"Buffer has {arr.shape[1]} channels, expected {self.native.channels}"
            )
        samples = pcm_to_float(arr)
        mono = samples.mean(axis=1) if samples.shape[1] > 1 else samples[:, 0]

        n_in = mono.shape[0]
        n_out = self.output_frames(n_in)
        if n_out == 0 or n_in == 0:
            return np.zeros(0, dtype=np.int16)
        if n_out == n_in:
            resampled = mono
        elif n_in == 1:
            resampled = np.full(n_out, mono[0])
        else:
            # Sample centers of the output grid expressed in input frames
            positions = (np.arange(n_out) + 0.5) * (n_in / n_out) - 0.5
            positions = np.clip(positions, 0.0, n_in - 1)
            resampled = np.interp(positions, np.arange(n_in), mono)

        clipped = np.clip(np.nan_to_num(resampled), -1.0, 1.0)
        return np.round(clipped * _INT16_MAX).astype(np.int16)
