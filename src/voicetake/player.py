"""Playback engine with level metering.

At most one playback exists at a time. Natural end-of-stream invokes the
caller's completion exactly once; an explicit stop() discards it instead.
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import soundfile as sf

from . import devices
from .common.errors import DeviceUnavailable, FileUnreadable
from .level_meter import (
    Dispatch,
    LevelCell,
    LevelTicker,
    average_power_db,
    level_from_decibels,
)


def _dbg(msg: str) -> None:
    if os.environ.get("VOICETAKE_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[player {ts}] {msg}", flush=True)


def _run_in_thread(fn: Callable[[], None]) -> None:
    # Completion must not run on the PortAudio thread that reported it.
    threading.Thread(target=fn, name="PlaybackFinish", daemon=True).start()


@dataclass
class _PlaybackSession:
    path: Path
    data: np.ndarray
    samplerate: int
    cell: LevelCell
    callback_stop: type
    on_complete: Optional[Callable[[], None]] = None
    stream: object = None
    position: int = 0

    @property
    def duration(self) -> float:
        return self.data.shape[0] / float(self.samplerate)

    def on_audio(self, outdata: np.ndarray, frames: int, time_info, status) -> None:  # noqa: ANN001
        if status:
            _dbg(f"audio status: {status}")
        chunk = self.data[self.position : self.position + frames]
        n = chunk.shape[0]
        outdata[:n] = chunk
        if n < frames:
            outdata[n:] = 0
        self.position += n
        self.cell.set(level_from_decibels(average_power_db(chunk)))
        if n < frames:
            raise self.callback_stop()


class AudioPlayer:
    """Play a stored take while publishing its level.

    Usage:
      player = AudioPlayer(on_level=meter.set)
      player.play(path, on_complete=lambda: print("done"))
      ...
      player.stop()
    """

    def __init__(
        self,
        *,
        on_level: Optional[Callable[[float], None]] = None,
        level_refresh_hz: float = 60.0,
        dispatch: Optional[Dispatch] = None,
        blocksize: int = 1024,
    ) -> None:
        self._blocksize = blocksize
        self._cell = LevelCell()
        self._ticker = LevelTicker(
            self._cell,
            on_level,
            rate_hz=level_refresh_hz,
            dispatch=dispatch,
            name="PlaybackLevel",
        )
        self._dispatch_finish = dispatch or _run_in_thread
        self._session: Optional[_PlaybackSession] = None
        self._lock = threading.Lock()

    # ---------- Public API ----------
    def play(
        self, path: str | Path, on_complete: Optional[Callable[[], None]] = None
    ) -> None:
        self.stop()
        p = Path(path)
        try:
            data, samplerate = sf.read(str(p), dtype="float32", always_2d=True)
        except (RuntimeError, OSError) as e:
            raise FileUnreadable(f"Cannot decode {p}: {e}") from e

        sd = devices.backend()
        session = _PlaybackSession(
            path=p,
            data=data,
            samplerate=int(samplerate),
            cell=self._cell,
            callback_stop=sd.CallbackStop,
            on_complete=on_complete,
        )
        with self._lock:
            self._session = session
        stream = None
        try:
            stream = sd.OutputStream(
                samplerate=session.samplerate,
                channels=int(data.shape[1]),
                dtype="float32",
                blocksize=self._blocksize,
                callback=session.on_audio,
                finished_callback=lambda: self._on_finished(session),
            )
            session.stream = stream
            self._ticker.start()
            _dbg(f"playing {p} ({session.duration:.2f}s)")
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            with self._lock:
                if self._session is session:
                    self._session = None
            self._ticker.stop()
            if stream is not None:
                stream.close()
            self._cell.set(0.0)
            raise DeviceUnavailable(f"Cannot open output device: {e}") from e

    def stop(self) -> None:
        """Halt playback without firing the pending completion; no-op when idle."""
        with self._lock:
            session = self._session
            self._session = None
        if session is None:
            return
        session.on_complete = None
        self._teardown(session)
        _dbg(f"stopped {session.path}")

    def is_playing(self) -> bool:
        return self._session is not None

    @property
    def level(self) -> float:
        return self._cell.get()

    # ---------- Internals ----------
    def _on_finished(self, session: _PlaybackSession) -> None:
        self._dispatch_finish(lambda: self._finish(session))

    def _finish(self, session: _PlaybackSession) -> None:
        with self._lock:
            if self._session is not session:
                # Explicitly stopped or superseded by a newer play()
                return
            self._session = None
        self._teardown(session)
        callback = session.on_complete
        session.on_complete = None
        _dbg(f"finished {session.path}")
        if callback is not None:
            callback()

    def _teardown(self, session: _PlaybackSession) -> None:
        self._ticker.stop()
        stream = session.stream
        session.stream = None
        try:
            if stream is not None:
                stream.stop()
        finally:
            if stream is not None:
                stream.close()
            self._cell.set(0.0)
            self._ticker.publish(0.0)
