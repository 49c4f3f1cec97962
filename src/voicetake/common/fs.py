"""Filesystem helpers for VoiceTake.

Prompt names become file names, so they are sanitized here; text files are
written through a temp sibling so a crash never leaves half a transcript.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path


_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_name(name: str) -> str:
    """Replace every character outside [A-Za-z0-9_-] with an underscore.

    Examples:
    - "Hello World" -> "Hello_World"
    - "café.v2" -> "caf__v2"
    """
    return _UNSAFE.sub("_", name)


def ensure_dir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def sorted_text_files(directory: str | Path) -> list[Path]:
    """Return the .txt files directly under `directory`, ordered by filename."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    files = [
        p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".txt"
    ]
    return sorted(files, key=lambda p: p.name)


def write_text_atomic(path: str | Path, text: str) -> Path:
    """Write UTF-8 `text` to `path`, replacing any existing file in one step."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=p.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        os.replace(tmp, p)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return p


def partial_path(target: str | Path) -> Path:
    """Hidden sibling a capture writes into before it is committed to `target`."""
    p = Path(target)
    return p.with_name(f".{p.name}.part")
