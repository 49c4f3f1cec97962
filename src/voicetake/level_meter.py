"""Loudness metering shared by the capture and playback paths.

Levels are normalized to 0.0-1.0. The audio thread stores the latest value in
a `LevelCell`; a `LevelTicker` republishes it at a fixed rate so the UI refresh
rate does not depend on how often the hardware delivers buffers.
"""

from __future__ import annotations

import math
import os
import threading
import time
from typing import Callable, Optional

import numpy as np

from .common.encoding import pcm_to_float
from .common.errors import ConversionUnavailable


MIN_DB = -60.0
# Floor used when converting silence to decibels
_RMS_FLOOR = 1e-6
# What an idle meter reports as average power
SILENCE_DB = -160.0

Dispatch = Callable[[Callable[[], None]], None]


def _dbg(msg: str) -> None:
    if os.environ.get("VOICETAKE_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[level {ts}] {msg}", flush=True)


def _first_channel(buffer: np.ndarray) -> np.ndarray:
    arr = np.asarray(buffer)
    if arr.ndim == 2:
        arr = arr[:, 0] if arr.shape[1] else arr.reshape(-1)
    elif arr.ndim != 1:
        arr = arr.reshape(-1)
    try:
        return pcm_to_float(arr)
    except ConversionUnavailable:
        # Unmeterable sample type reads as silence
        return np.zeros(0, dtype=np.float64)


def rms(buffer: np.ndarray) -> float:
    """Root-mean-square of the first channel (0.0 for an empty buffer)."""
    samples = _first_channel(buffer)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples))))


def level_from_buffer(buffer: np.ndarray) -> float:
    """Map first-channel RMS from [-60 dB, 0 dB] onto [0, 1]."""
    db = 20.0 * math.log10(max(rms(buffer), _RMS_FLOOR))
    db = max(MIN_DB, db)
    return max(0.0, min(1.0, (db - MIN_DB) / -MIN_DB))


def average_power_db(buffer: np.ndarray) -> float:
    """Average power of the first channel in dBFS, SILENCE_DB when silent."""
    value = rms(buffer)
    if value <= 0.0:
        return SILENCE_DB
    return max(SILENCE_DB, 20.0 * math.log10(value))


def level_from_decibels(db: float) -> float:
    """Linear 0-1 level for a dBFS value, as used by the playback meter."""
    return max(0.0, min(1.0, 10.0 ** (db / 20.0)))


class LevelCell:
    """Latest meter value, shared between the audio thread and the ticker."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0.0

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def get(self) -> float:
        with self._lock:
            return self._value


def call_inline(fn: Callable[[], None]) -> None:
    fn()


class LevelTicker:
    """Publish a LevelCell's value to `on_level` every 1/rate_hz seconds.

    `dispatch` moves each publication onto the caller's control thread (for
    Tk this is `lambda fn: root.after(0, fn)`); by default it runs inline on
    the ticker thread.
    """

    def __init__(
        self,
        cell: LevelCell,
        on_level: Optional[Callable[[float], None]] = None,
        *,
        rate_hz: float = 60.0,
        dispatch: Optional[Dispatch] = None,
        name: str = "LevelTicker",
    ) -> None:
        if rate_hz <= 0:
            raise ValueError("rate_hz must be positive")
        self._cell = cell
        self._on_level = on_level
        self._interval = 1.0 / rate_hz
        self._dispatch = dispatch or call_inline
        self._name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval(self) -> float:
        return self._interval

    def is_running(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        if self._thread is not None:
            return
        # One Event per run; a thread that outlives stop()'s join keeps its own
        stop_event = threading.Event()
        self._stop = stop_event
        self._thread = threading.Thread(
            target=self._run, args=(stop_event,), name=self._name, daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        t = self._thread
        self._thread = None
        if t is None:
            return
        self._stop.set()
        if t is not threading.current_thread():
            t.join(timeout=1.0)
            if t.is_alive():
                _dbg(f"{self._name} still busy after stop; left to exit on its own")

    def publish(self, value: float) -> None:
        if self._on_level is None:
            return
        cb = self._on_level
        self._dispatch(lambda: cb(value))

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            self.publish(self._cell.get())
