"""Audio capture engine for VoiceTake.

Encapsulates the sounddevice input stream, per-buffer conversion into the
canonical WAV format, and live level metering.

States are Idle -> Capturing -> Idle. Audio is written into a hidden partial
file beside the target and moved over the target when capture stops, so a
failed start never damages an earlier take and a re-record replaces it.
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np
import soundfile as sf

from . import devices
from .common.encoding import CANONICAL
from .common.errors import (
    CaptureAlreadyRunning,
    ConversionUnavailable,
    DeviceUnavailable,
    FileCreateFailed,
)
from .common.fs import partial_path
from .converter import FormatConverter, NativeFormat
from .devices import InputDevice
from .level_meter import Dispatch, LevelCell, LevelTicker, level_from_buffer


def _dbg(msg: str) -> None:
    if os.environ.get("VOICETAKE_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[recorder {ts}] {msg}", flush=True)


DeviceRef = Union[InputDevice, str, int, None]


@dataclass
class CaptureStats:
    buffers: int = 0
    frames_written: int = 0
    dropped_buffers: int = 0


@dataclass
class _CaptureSession:
    """Everything one capture owns; built by start(), consumed by stop()."""

    target: Path
    partial: Path
    device: InputDevice
    converter: FormatConverter
    outfile: sf.SoundFile
    cell: LevelCell
    stream: object = None
    started_at: float = 0.0
    stats: CaptureStats = field(default_factory=CaptureStats)

    def on_audio(self, indata: np.ndarray, frames: int, time_info, status) -> None:  # noqa: ANN001
        if status:
            _dbg(f"audio status: {status}")
        self.stats.buffers += 1
        self.cell.set(level_from_buffer(indata))
        try:
            block = self.converter.convert(indata)
        except ConversionUnavailable as e:
            self.stats.dropped_buffers += 1
            _dbg(f"dropping buffer: {e}")
            return
        if block.size == 0:
            return
        try:
            self.outfile.write(block)
        except (RuntimeError, OSError) as e:
            self.stats.dropped_buffers += 1
            _dbg(f"write failed: {e}")
            return
        self.stats.frames_written += int(block.shape[0])


def _resolve_device(device: DeviceRef) -> InputDevice:
    if device is None:
        found = devices.default_input_device()
        if found is None:
            raise DeviceUnavailable("No default input device is available")
        return found
    if isinstance(device, int):
        for d in devices.list_input_devices():
            if d.index == device:
                return d
        raise DeviceUnavailable(f"Input device #{device} not found or has no input channels")
    uid = device.uid if isinstance(device, InputDevice) else device
    found = devices.find_input_device(uid)
    if found is None:
        raise DeviceUnavailable(f"Input device {uid!r} not found or has no input channels")
    return found


class AudioRecorder:
    """Record one take at a time into a canonical WAV file.

    Usage:
      rec = AudioRecorder(on_level=print)
      rec.start(Path("recordings/sam/001_hello.wav"))
      ...
      rec.stop()
    """

    def __init__(
        self,
        *,
        blocksize: int = 4096,
        on_level: Optional[Callable[[float], None]] = None,
        level_refresh_hz: float = 60.0,
        dispatch: Optional[Dispatch] = None,
    ) -> None:
        self._blocksize = blocksize
        self._cell = LevelCell()
        self._ticker = LevelTicker(
            self._cell,
            on_level,
            rate_hz=level_refresh_hz,
            dispatch=dispatch,
            name="CaptureLevel",
        )
        self._session: Optional[_CaptureSession] = None
        self._lock = threading.Lock()
        self.last_stats: Optional[CaptureStats] = None

    # ---------- Public API ----------
    def start(self, target_path: str | Path, device: DeviceRef = None) -> None:
        with self._lock:
            if self._session is not None:
                raise CaptureAlreadyRunning("Recorder already running; stop it first")
            session = self._open_session(Path(target_path), device)
            self._session = session
        self._ticker.start()
        _dbg(f"capturing {session.device.name!r} -> {session.target}")

    def stop(self) -> Optional[Path]:
        """Tear the capture down and commit the take; no-op when idle."""
        with self._lock:
            session = self._session
            self._session = None
        if session is None:
            return None
        self._ticker.stop()
        try:
            _close_stream(session.stream)
        except Exception as e:  # noqa: BLE001
            # The samples already written are complete; keep the take
            _dbg(f"error while stopping stream: {e}")
        finally:
            session.outfile.close()
            self._cell.set(0.0)
            self._ticker.publish(0.0)
        self.last_stats = session.stats
        os.replace(session.partial, session.target)
        _dbg(
            f"committed {session.target} frames={session.stats.frames_written} "
            f"dropped={session.stats.dropped_buffers}"
        )
        return session.target

    def is_running(self) -> bool:
        return self._session is not None

    @property
    def level(self) -> float:
        return self._cell.get()

    @property
    def target(self) -> Optional[Path]:
        session = self._session
        return session.target if session is not None else None

    def elapsed_seconds(self) -> int:
        """Return elapsed recording time in whole seconds (0 if not running)."""
        session = self._session
        if session is None:
            return 0
        return max(0, int(time.time() - session.started_at))

    # ---------- Internals ----------
    def _open_session(self, target: Path, device: DeviceRef) -> _CaptureSession:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileCreateFailed(f"Cannot create {target.parent}: {e}") from e

        dev = _resolve_device(device)
        native = NativeFormat(
            sample_rate=dev.default_samplerate, channels=dev.max_input_channels
        )
        converter = FormatConverter(native)
        sd = devices.backend()

        partial = partial_path(target)
        try:
            outfile = sf.SoundFile(
                str(partial),
                mode="w",
                samplerate=CANONICAL.sample_rate,
                channels=CANONICAL.channels,
                subtype=CANONICAL.subtype,
                format=CANONICAL.container,
            )
        except (RuntimeError, OSError) as e:
            raise FileCreateFailed(f"Cannot create {target}: {e}") from e

        session = _CaptureSession(
            target=target,
            partial=partial,
            device=dev,
            converter=converter,
            outfile=outfile,
            cell=self._cell,
        )
        stream = None
        try:
            stream = sd.InputStream(
                device=dev.index,
                channels=native.channels,
                samplerate=native.sample_rate,
                blocksize=self._blocksize,
                dtype="float32",
                callback=session.on_audio,
            )
            session.stream = stream
            session.started_at = time.time()
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            if stream is not None:
                stream.close()
            outfile.close()
            partial.unlink(missing_ok=True)
            raise DeviceUnavailable(f"Cannot open {dev.name!r}: {e}") from e
        return session


def _close_stream(stream) -> None:  # noqa: ANN001
    if stream is None:
        return
    try:
        stream.stop()
    finally:
        stream.close()
