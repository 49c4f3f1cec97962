"""Shared fixtures: a fake sounddevice backend standing in for PortAudio."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from voicetake import devices


class FakePortAudioError(Exception):
    pass


class FakeCallbackStop(Exception):
    pass


def _device(index, name, inputs, outputs, samplerate, hostapi=0):
    return {
        "index": index,
        "name": name,
        "hostapi": hostapi,
        "max_input_channels": inputs,
        "max_output_channels": outputs,
        "default_samplerate": samplerate,
    }


class _Default:
    def __init__(self) -> None:
        self.device = [0, 1]


class FakeInputStream:
    def __init__(self, backend, *, device, channels, samplerate, blocksize, dtype, callback):
        self.backend = backend
        self.device = device
        self.channels = channels
        self.samplerate = samplerate
        self.blocksize = blocksize
        self.dtype = dtype
        self.callback = callback
        self.started = False
        self.stopped = False
        self.closed = False
        backend.input_streams.append(self)

    def start(self) -> None:
        if self.backend.fail_start:
            raise FakePortAudioError("device busy")
        self.started = True
        # Deliver the queued hardware buffers as the audio thread would
        for block in self.backend.input_blocks:
            self.callback(block, len(block), None, None)

    def stop(self) -> None:
        self.stopped = True

    def close(self) -> None:
        self.closed = True


class FakeOutputStream:
    def __init__(
        self, backend, *, samplerate, channels, dtype, blocksize, callback, finished_callback
    ):
        self.backend = backend
        self.samplerate = samplerate
        self.channels = channels
        self.blocksize = blocksize
        self.callback = callback
        self.finished_callback = finished_callback
        self.started = False
        self.finished = False
        self.closed = False
        self.played: list[np.ndarray] = []
        backend.output_streams.append(self)

    def start(self) -> None:
        self.started = True
        if not self.backend.defer_playback:
            while not self.finished:
                self.step()

    def step(self) -> None:
        """Run one audio callback; finish the stream when it signals the end."""
        out = np.zeros((self.blocksize, self.channels), dtype=np.float32)
        try:
            self.callback(out, self.blocksize, None, None)
        except FakeCallbackStop:
            self.played.append(out.copy())
            self._finish()
            return
        self.played.append(out.copy())

    def _finish(self) -> None:
        if self.finished:
            return
        self.finished = True
        self.finished_callback()

    def stop(self) -> None:
        if self.started:
            self._finish()

    def close(self) -> None:
        self.closed = True


class FakeSoundDevice:
    PortAudioError = FakePortAudioError
    CallbackStop = FakeCallbackStop

    def __init__(self) -> None:
        self.devices = [
            _device(0, "Built-in Microphone", 1, 0, 48_000.0),
            _device(1, "Built-in Output", 0, 2, 44_100.0),
            _device(2, "USB Interface", 2, 2, 96_000.0),
        ]
        self.hostapis = [{"name": "Core Audio"}]
        self.default = _Default()
        self.input_blocks: list[np.ndarray] = []
        self.input_streams: list[FakeInputStream] = []
        self.output_streams: list[FakeOutputStream] = []
        self.fail_start = False
        self.defer_playback = False

    def query_devices(self, kind=None):  # noqa: ANN001
        if kind == "input":
            return self.devices[self.default.device[0]]
        return list(self.devices)

    def query_hostapis(self):
        return tuple(self.hostapis)

    def InputStream(self, **kwargs):  # noqa: N802
        return FakeInputStream(self, **kwargs)

    def OutputStream(self, **kwargs):  # noqa: N802
        return FakeOutputStream(self, **kwargs)


def sine(frames: int, samplerate: float, channels: int = 1, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(frames) / samplerate
    wave = (amplitude * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
    return np.repeat(wave[:, None], channels, axis=1)


@pytest.fixture
def fake_sd(monkeypatch) -> FakeSoundDevice:
    backend = FakeSoundDevice()
    monkeypatch.setattr(devices, "backend", lambda: backend)
    return backend


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    (tmp_path / "transcripts").mkdir()
    return tmp_path


@pytest.fixture
def make_sine():
    return sine
