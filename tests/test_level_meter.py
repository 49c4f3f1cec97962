import math
import threading
import time

import numpy as np
import pytest

from voicetake.level_meter import (
    SILENCE_DB,
    LevelCell,
    LevelTicker,
    average_power_db,
    level_from_buffer,
    level_from_decibels,
)


def test_silence_maps_to_zero() -> None:
    assert level_from_buffer(np.zeros((1024, 1), dtype=np.float32)) == 0.0
    assert level_from_buffer(np.zeros(0, dtype=np.float32)) == 0.0


def test_full_scale_sine_is_close_to_one(make_sine) -> None:
    buf = make_sine(4410, 44_100, amplitude=1.0)
    # RMS of a full-scale sine is -3 dB
    assert level_from_buffer(buf) == pytest.approx(1.0 - 3.0103 / 60.0, abs=1e-3)
    assert level_from_buffer(np.ones(256)) == pytest.approx(1.0)


def test_level_is_monotonic_in_amplitude(make_sine) -> None:
    levels = [
        level_from_buffer(make_sine(2048, 48_000, amplitude=a))
        for a in (0.0, 0.0005, 0.001, 0.01, 0.1, 0.5, 1.0)
    ]
    assert levels == sorted(levels)
    assert levels[1] == 0.0  # below -60 dB clamps to the floor


def test_only_first_channel_is_metered(make_sine) -> None:
    buf = np.zeros((1000, 2), dtype=np.float32)
    buf[:, 1] = 1.0
    assert level_from_buffer(buf) == 0.0


def test_int16_buffers_are_scaled() -> None:
    buf = np.full(500, 16384, dtype=np.int16)
    assert level_from_buffer(buf) == pytest.approx(1.0 - 6.0206 / 60.0, abs=1e-3)


def test_unsigned_pcm_is_offset_binary() -> None:
    assert level_from_buffer(np.full(512, 128, dtype=np.uint8)) == 0.0
    loud = np.tile(np.array([0, 255], dtype=np.uint8), 256)
    assert level_from_buffer(loud) == pytest.approx(1.0, abs=1e-3)


def test_unsupported_sample_type_reads_as_silence() -> None:
    assert level_from_buffer(np.ones(16, dtype=np.complex64)) == 0.0


def test_playback_conversion_from_decibels(make_sine) -> None:
    assert level_from_decibels(0.0) == 1.0
    assert level_from_decibels(12.0) == 1.0
    assert level_from_decibels(-20.0) == pytest.approx(0.1)
    assert level_from_decibels(SILENCE_DB) == pytest.approx(0.0, abs=1e-7)
    assert average_power_db(np.zeros(10)) == SILENCE_DB
    db = average_power_db(make_sine(4410, 44_100, amplitude=0.5))
    assert level_from_decibels(db) == pytest.approx(0.5 / math.sqrt(2), abs=1e-3)


def test_ticker_publishes_latest_value_through_dispatch() -> None:
    cell = LevelCell()
    cell.set(0.42)
    seen: list[float] = []
    got = threading.Event()
    dispatched: list[int] = []

    def on_level(v: float) -> None:
        seen.append(v)
        got.set()

    def dispatch(fn):
        dispatched.append(1)
        fn()

    ticker = LevelTicker(cell, on_level, rate_hz=200, dispatch=dispatch)
    ticker.start()
    try:
        assert got.wait(2.0)
    finally:
        ticker.stop()
    assert not ticker.is_running()
    assert seen and all(v == pytest.approx(0.42) for v in seen)
    assert len(dispatched) >= len(seen)


def test_ticker_rejects_nonpositive_rate() -> None:
    with pytest.raises(ValueError):
        LevelTicker(LevelCell(), rate_hz=0)


def test_ticker_stop_when_idle_is_noop() -> None:
    ticker = LevelTicker(LevelCell())
    ticker.stop()
    assert ticker.interval == pytest.approx(1 / 60)


def test_restart_after_slow_dispatch_leaves_one_publisher() -> None:
    gate = threading.Event()
    entered = threading.Event()
    lock = threading.Lock()
    publishers: set[int] = set()

    def dispatch(fn):
        entered.set()
        gate.wait(5.0)
        with lock:
            publishers.add(threading.get_ident())
        fn()

    ticker = LevelTicker(
        LevelCell(), lambda v: None, rate_hz=200, dispatch=dispatch, name="SlowLevel"
    )
    ticker.start()
    try:
        assert entered.wait(2.0)
        # The first thread is stuck in dispatch, so stop() gives up on the join
        ticker.stop()
        ticker.start()
        gate.set()
        time.sleep(0.2)
        with lock:
            publishers.clear()
        time.sleep(0.2)
        live = [t for t in threading.enumerate() if t.name == "SlowLevel"]
        assert len(live) == 1
        with lock:
            assert len(publishers) == 1
    finally:
        gate.set()
        ticker.stop()
