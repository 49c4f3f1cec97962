"""Map (prompt, voice) pairs to recording paths and recorded status.

Nothing is cached: every call looks at the filesystem as it is right now.

Layout under the working directory:
  recordings/<voice>/NNN_<base>.wav   canonical take, NNN = 1-based index
  recordings/<voice>/NNN_<base>.txt   transcript text copied at stop time
  recordings/<voice>/ref.wav          reference voice sample
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .common.fs import write_text_atomic
from .transcripts import Prompt, TranscriptCatalog


RECORDINGS_DIRNAME = "recordings"
REFERENCE_FILENAME = "ref.wav"


def indexed_stem(index: int, base_name: str) -> str:
    """'002_hello' for the prompt at zero-based position 1."""
    return f"{index + 1:03d}_{base_name}"


class RecordingBinder:
    def __init__(self, root: str | Path, catalog: TranscriptCatalog | None = None) -> None:
        self.root = Path(root)
        self.catalog = catalog or TranscriptCatalog(self.root)

    @property
    def recordings_dir(self) -> Path:
        return self.root / RECORDINGS_DIRNAME

    def voice_dir(self, voice: str) -> Path:
        return self.recordings_dir / voice

    def _stem(self, prompt: Prompt) -> str:
        index = self.catalog.index_of(prompt)
        if index is None:
            # Prompt vanished from disk; "000_" keeps it out of the numbered range
            return f"000_{prompt.base_name}"
        return indexed_stem(index, prompt.base_name)

    def recording_path(self, prompt: Prompt, voice: str) -> Path:
        return self.voice_dir(voice) / f"{self._stem(prompt)}.wav"

    def transcript_copy_path(self, prompt: Prompt, voice: str) -> Path:
        return self.voice_dir(voice) / f"{self._stem(prompt)}.txt"

    def reference_path(self, voice: str) -> Path:
        return self.voice_dir(voice) / REFERENCE_FILENAME

    def has_reference(self, voice: str) -> bool:
        return self.reference_path(voice).is_file()

    def find_recording(self, prompt: Prompt, voice: str) -> Optional[Path]:
        """Locate the take for `prompt` under the current or an older naming scheme.

        Checked in order: the indexed name, then `<base>.wav`, then any .wav
        whose stem contains the base name (both case-insensitive). First match wins.
        The reference sample is never treated as a take.
        """
        canonical = self.recording_path(prompt, voice)
        if canonical.is_file():
            return canonical
        folder = self.voice_dir(voice)
        if not folder.is_dir():
            return None
        base = prompt.base_name.lower()
        wavs = sorted(
            (
                p
                for p in folder.iterdir()
                if p.is_file()
                and p.suffix.lower() == ".wav"
                and p.name != REFERENCE_FILENAME
            ),
            key=lambda p: p.name,
        )
        for p in wavs:
            if p.name.lower() == f"{base}.wav":
                return p
        for p in wavs:
            if base in p.stem.lower():
                return p
        return None

    def is_recorded(self, prompt: Prompt, voice: str) -> bool:
        return self.find_recording(prompt, voice) is not None

    def recorded_flags(self, prompts: list[Prompt], voice: str) -> list[bool]:
        return [self.is_recorded(p, voice) for p in prompts]

    def save_transcript_copy(self, prompt: Prompt, voice: str) -> Path:
        """Persist the exact prompt text beside its recording."""
        return write_text_atomic(self.transcript_copy_path(prompt, voice), prompt.text)
