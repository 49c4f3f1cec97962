"""Settings persistence for VoiceTake.

Remembers the working directory, voice and input device between launches.
Stored as JSON; `VOICETAKE_SETTINGS_PATH` points it elsewhere (a file, or a
directory that will hold settings.json).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import json
import os
import sys
import time
from pathlib import Path


APP_NAME = "VoiceTake"
SETTINGS_FILENAME = "settings.json"


def _dbg(msg: str) -> None:
    if os.environ.get("VOICETAKE_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[settings {ts}] {msg}", flush=True)


@dataclass
class Settings:
    # Working directory holding transcripts/ and recordings/
    root_dir: str = ""
    voice_name: str = ""

    # Input device, by catalog uid; empty means the platform default
    device_uid: str = ""
    blocksize: int = 4096

    # Level meter refresh rate while recording or playing
    level_refresh_hz: int = 60

    # External archiver used for ZIP export
    archive_cmd: str = "zip"

    window_geometry: str = ""


def _platform_config_dir() -> Path:
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    if sys.platform.startswith("win"):
        return Path(os.environ.get("APPDATA", home / "AppData" / "Roaming")) / APP_NAME
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return (Path(xdg) if xdg else home / ".config") / APP_NAME.lower()


def get_settings_path() -> Path:
    override = os.environ.get("VOICETAKE_SETTINGS_PATH")
    if not override:
        return _platform_config_dir() / SETTINGS_FILENAME
    p = Path(override).expanduser()
    return p if p.suffix else p / SETTINGS_FILENAME


def _from_mapping(raw: dict) -> Settings:
    s = Settings()
    for f in fields(Settings):
        value = raw.get(f.name)
        # Hand-edited files may carry wrong types; keep the default then
        if value is not None and type(value) is type(getattr(s, f.name)):  # noqa: E721
            setattr(s, f.name, value)
    return s


def load_settings() -> Settings:
    path = get_settings_path()
    if not path.is_file():
        return Settings()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _dbg(f"ignoring unreadable {path}: {e}")
        return Settings()
    if not isinstance(raw, dict):
        _dbg(f"ignoring {path}: expected a JSON object")
        return Settings()
    return _from_mapping(raw)


def save_settings(s: Settings) -> bool:
    """Write settings; return False (and log) when the file cannot be written."""
    path = get_settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(s), indent=2), encoding="utf-8")
    except OSError as e:
        _dbg(f"failed to save {path}: {e}")
        return False
    return True
