"""Prompt catalog backed by <root>/transcripts/*.txt."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .common.errors import ValidationFailed
from .common.fs import ensure_dir, sanitize_name, sorted_text_files, write_text_atomic


TRANSCRIPTS_DIRNAME = "transcripts"


@dataclass(frozen=True)
class Prompt:
    filename: str
    text: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False)

    @property
    def base_name(self) -> str:
        return Path(self.filename).stem


class TranscriptCatalog:
    """Reads prompts in filename order; that order defines each prompt's index."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    @property
    def transcripts_dir(self) -> Path:
        return self.root / TRANSCRIPTS_DIRNAME

    def prompt_files(self) -> list[Path]:
        return sorted_text_files(self.transcripts_dir)

    def load(self) -> list[Prompt]:
        """Return every prompt, creating the transcripts folder if missing."""
        ensure_dir(self.transcripts_dir)
        return [
            Prompt(filename=p.name, text=p.read_text(encoding="utf-8").strip())
            for p in self.prompt_files()
        ]

    def index_of(self, prompt: Prompt) -> Optional[int]:
        """Position of `prompt` in the current on-disk ordering, or None."""
        try:
            files = self.prompt_files()
        except OSError:
            return None
        for i, p in enumerate(files):
            if p.name == prompt.filename:
                return i
        return None

    def add(self, name: str, text: str) -> Prompt:
        """Write a new prompt file and return it.

        The catalog holds no in-memory list: the returned prompt's index only
        settles once the catalog is loaded again, since indices follow sorted
        filenames rather than insertion order.
        """
        if not name or not name.strip():
            raise ValidationFailed("Prompt name must not be empty")
        if not text or not text.strip():
            raise ValidationFailed("Prompt text must not be empty")
        filename = f"{sanitize_name(name)}.txt"
        write_text_atomic(self.transcripts_dir / filename, text)
        return Prompt(filename=filename, text=text)
