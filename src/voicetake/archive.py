"""ZIP export of a voice's recordings through an external archiver."""

from __future__ import annotations

import os
import shlex
import subprocess
import time
from pathlib import Path
from typing import Sequence

from .binder import RECORDINGS_DIRNAME


def _dbg(msg: str) -> None:
    if os.environ.get("VOICETAKE_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[archive {ts}] {msg}", flush=True)


def default_archive_name(voice: str) -> str:
    return f"{voice}_recordings.zip"


def _run_archiver(cmd: list[str], cwd: Path) -> int:
    try:
        proc = subprocess.run(
            cmd, cwd=str(cwd), stdout=subprocess.PIPE, stderr=subprocess.PIPE
        )
    except OSError as e:
        _dbg(f"archiver failed to launch: {e}")
        return 127
    if proc.returncode != 0:
        _dbg(
            f"archiver rc={proc.returncode}: "
            f"{proc.stderr.decode('utf-8', errors='ignore').strip()}"
        )
    return proc.returncode


def export_voice_archive(
    root: str | Path,
    voice: str,
    destination: str | Path,
    cmd: str | Sequence[str] = "zip",
) -> int:
    """Zip recordings/<voice>/ into `destination`; return the archiver's status.

    The archive stores paths relative to recordings/, so it unpacks to a single
    <voice>/ folder. A missing voice folder or archiver is a nonzero status.
    """
    recordings = Path(root) / RECORDINGS_DIRNAME
    if not (recordings / voice).is_dir():
        _dbg(f"nothing to export for voice {voice!r}")
        return 1
    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.unlink(missing_ok=True)
    parts = shlex.split(cmd) if isinstance(cmd, str) else list(cmd)
    if not parts:
        parts = ["zip"]
    return _run_archiver(parts + ["-r", "-q", str(dest), voice], recordings)
