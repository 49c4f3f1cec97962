"""Recording session: the state the presentation layer drives and renders.

Ties the prompt catalog, the binder and the two audio engines together for
one (working directory, voice) pair.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Callable, Optional

from .binder import RecordingBinder
from .common.encoding import WavInfo, describe_wav, is_canonical
from .common.errors import CaptureAlreadyRunning, FileUnreadable, ValidationFailed
from .common.fs import sanitize_name
from .player import AudioPlayer
from .recorder import AudioRecorder, DeviceRef
from .transcripts import Prompt, TranscriptCatalog


def _dbg(msg: str) -> None:
    if os.environ.get("VOICETAKE_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[session {ts}] {msg}", flush=True)


def normalize_voice_name(voice: str) -> str:
    voice = (voice or "").strip()
    if not voice:
        raise ValidationFailed("Voice name must not be empty")
    return sanitize_name(voice)


class RecordingSession:
    def __init__(
        self,
        root: str | Path,
        voice: str,
        *,
        recorder: Optional[AudioRecorder] = None,
        player: Optional[AudioPlayer] = None,
    ) -> None:
        self.root = Path(root)
        self.voice = normalize_voice_name(voice)
        self.catalog = TranscriptCatalog(self.root)
        self.binder = RecordingBinder(self.root, self.catalog)
        self.recorder = recorder or AudioRecorder()
        self.player = player or AudioPlayer()
        self.device: DeviceRef = None

        self.prompts: list[Prompt] = []
        self.recorded: list[bool] = []
        self.current_index = 0
        self.is_recording = False
        self.is_recording_reference = False
        self.is_playing = False
        self._recording_prompt: Optional[Prompt] = None
        self.last_take: Optional[WavInfo] = None

    # ---- Catalog ----
    def load(self) -> list[Prompt]:
        self.prompts = self.catalog.load()
        self.recorded = self.binder.recorded_flags(self.prompts, self.voice)
        self.current_index = min(self.current_index, max(0, len(self.prompts) - 1))
        _dbg(f"loaded {len(self.prompts)} prompts, {self.recorded_count} recorded")
        return self.prompts

    def add_prompt(self, name: str, text: str) -> Prompt:
        """Add a prompt file and select it.

        It is appended to the working list; its recording index follows sorted
        filename order, so `load()` may later move it.
        """
        prompt = self.catalog.add(name, text)
        self.prompts.append(prompt)
        self.recorded.append(self.binder.is_recorded(prompt, self.voice))
        self.current_index = len(self.prompts) - 1
        return prompt

    @property
    def current(self) -> Optional[Prompt]:
        if 0 <= self.current_index < len(self.prompts):
            return self.prompts[self.current_index]
        return None

    @property
    def current_recorded(self) -> bool:
        if 0 <= self.current_index < len(self.recorded):
            return self.recorded[self.current_index]
        return False

    @property
    def progress_text(self) -> str:
        if not self.prompts:
            return "No transcripts"
        return f"{self.current_index + 1} of {len(self.prompts)}"

    @property
    def recorded_count(self) -> int:
        return sum(1 for r in self.recorded if r)

    @property
    def all_recorded(self) -> bool:
        return bool(self.recorded) and all(self.recorded)

    @property
    def busy(self) -> bool:
        return self.is_recording or self.is_recording_reference

    def go_next(self) -> None:
        if self.current_index < len(self.prompts) - 1:
            self.current_index += 1

    def go_previous(self) -> None:
        if self.current_index > 0:
            self.current_index -= 1

    def select_device(self, uid: Optional[str]) -> None:
        self.device = uid or None

    # ---- Prompt takes ----
    def current_recording_path(self) -> Optional[Path]:
        prompt = self.current
        if prompt is None:
            return None
        return self.binder.recording_path(prompt, self.voice)

    def start_recording(self) -> Path:
        prompt = self.current
        if prompt is None:
            raise ValidationFailed("No transcript selected")
        if self.busy:
            raise CaptureAlreadyRunning("A recording is already in progress")
        self.stop_playing()
        target = self.binder.recording_path(prompt, self.voice)
        self.recorder.start(target, self.device)
        self._recording_prompt = prompt
        self.is_recording = True
        return target

    def stop_recording(self) -> Optional[Path]:
        """Commit the take, copy its transcript and refresh recorded state."""
        if not self.is_recording:
            return None
        prompt = self._recording_prompt
        self._recording_prompt = None
        self.is_recording = False
        path = self.recorder.stop()
        if path is None or prompt is None:
            return path
        self.binder.save_transcript_copy(prompt, self.voice)
        self.last_take = self._inspect_take(path)
        idx = next((i for i, p in enumerate(self.prompts) if p.id == prompt.id), None)
        if idx is not None:
            self.recorded[idx] = self.binder.is_recorded(prompt, self.voice)
        return path

    def _inspect_take(self, path: Path) -> Optional[WavInfo]:
        try:
            info = describe_wav(path)
        except (RuntimeError, OSError) as e:
            _dbg(f"cannot inspect {path.name}: {e}")
            return None
        stats = self.recorder.last_stats
        if stats is not None and stats.dropped_buffers:
            _dbg(f"{path.name}: {stats.dropped_buffers} of {stats.buffers} buffers dropped")
        if not is_canonical(info):
            _dbg(f"{path.name} is {info.subtype} {info.sample_rate} Hz x{info.channels}")
        return info

    def play_recording(self, on_complete: Optional[Callable[[], None]] = None) -> Path:
        prompt = self.current
        if prompt is None:
            raise ValidationFailed("No transcript selected")
        path = self.binder.find_recording(prompt, self.voice)
        if path is None:
            raise FileUnreadable("No recording found")
        self._play(path, on_complete)
        return path

    # ---- Reference voice ----
    @property
    def has_reference(self) -> bool:
        return self.binder.has_reference(self.voice)

    def start_reference(self) -> Path:
        if self.busy:
            raise CaptureAlreadyRunning("A recording is already in progress")
        self.stop_playing()
        target = self.binder.reference_path(self.voice)
        self.recorder.start(target, self.device)
        self.is_recording_reference = True
        return target

    def stop_reference(self) -> Optional[Path]:
        if not self.is_recording_reference:
            return None
        self.is_recording_reference = False
        return self.recorder.stop()

    def play_reference(self, on_complete: Optional[Callable[[], None]] = None) -> Path:
        path = self.binder.reference_path(self.voice)
        if not path.is_file():
            raise FileUnreadable("No reference recording found")
        self._play(path, on_complete)
        return path

    # ---- Playback ----
    def _play(self, path: Path, on_complete: Optional[Callable[[], None]]) -> None:
        if self.busy:
            raise CaptureAlreadyRunning("Stop recording before playing")

        def _done() -> None:
            self.is_playing = False
            if on_complete is not None:
                on_complete()

        self.is_playing = True
        try:
            self.player.play(path, _done)
        except Exception:
            self.is_playing = False
            raise

    def stop_playing(self) -> None:
        self.player.stop()
        self.is_playing = False

    def close(self) -> None:
        self.stop_playing()
        if self.is_recording:
            self.stop_recording()
        elif self.is_recording_reference:
            self.stop_reference()
