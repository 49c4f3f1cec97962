"""Input device catalog.

Devices are enumerated fresh on every call; nothing is cached across
hardware changes. Query failures yield an empty catalog rather than an error.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Optional, Sequence


def _dbg(msg: str) -> None:
    if os.environ.get("VOICETAKE_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[devices {ts}] {msg}", flush=True)


def backend():  # noqa: ANN201
    """Return the sounddevice module, imported on first use.

    Importing sounddevice loads PortAudio, which may be missing on headless
    machines; keeping the import here lets the rest of the package load.
    """
    import sounddevice as sd

    return sd


@dataclass(frozen=True)
class InputDevice:
    index: int
    name: str
    uid: str
    max_input_channels: int
    default_samplerate: float


def _device_uid(info: dict, hostapis: Sequence[dict]) -> str:
    # PortAudio indices shift when hardware changes; host API + name does not.
    api = ""
    try:
        api = str(hostapis[int(info.get("hostapi", -1))]["name"])
    except (IndexError, KeyError, TypeError, ValueError):
        pass
    name = str(info.get("name", ""))
    return f"{api}:{name}" if api else name


def list_input_devices() -> list[InputDevice]:
    """Return input-capable devices in platform enumeration order."""
    try:
        sd = backend()
        devs = sd.query_devices()
        hostapis = sd.query_hostapis()
    except Exception as e:  # noqa: BLE001
        _dbg(f"device query failed: {e}")
        return []

    out: list[InputDevice] = []
    for i, d in enumerate(devs):
        channels = int(d.get("max_input_channels", 0) or 0)
        if channels <= 0:
            continue
        out.append(
            InputDevice(
                index=int(d.get("index", i)),
                name=str(d.get("name", "Unknown Device")),
                uid=_device_uid(d, hostapis),
                max_input_channels=channels,
                default_samplerate=float(d.get("default_samplerate", 0.0) or 0.0),
            )
        )
    return out


def _default_input_index() -> Optional[int]:
    sd = backend()
    dev = sd.default.device
    try:
        idx = dev[0]
    except (TypeError, IndexError):
        idx = dev
    if idx is not None and int(idx) >= 0:
        return int(idx)
    # No explicit default configured; ask PortAudio for its own.
    info = sd.query_devices(kind="input")
    idx = info.get("index")
    return int(idx) if idx is not None else None


def default_input_device() -> Optional[InputDevice]:
    """Resolve the platform's default input within the current catalog."""
    try:
        idx = _default_input_index()
    except Exception as e:  # noqa: BLE001
        _dbg(f"default input lookup failed: {e}")
        return None
    if idx is None:
        return None
    for d in list_input_devices():
        if d.index == idx:
            return d
    return None


def find_input_device(uid: str) -> Optional[InputDevice]:
    for d in list_input_devices():
        if d.uid == uid:
            return d
    return None
