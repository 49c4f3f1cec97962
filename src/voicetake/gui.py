"""Tkinter front-end for VoiceTake.

Two screens: a setup screen (working directory, voice, input device) and the
recording screen that walks through the prompts one by one.
"""

from __future__ import annotations

import os
import time
import tkinter as tk
from tkinter import ttk, filedialog, messagebox
from pathlib import Path
from typing import Callable, Optional

from .archive import default_archive_name, export_voice_archive
from .common.encoding import human_readable_bytes, wav_bytes_per_minute
from .common.settings import Settings, load_settings, save_settings
from .devices import InputDevice, default_input_device, list_input_devices
from .player import AudioPlayer
from .recorder import AudioRecorder
from .session import RecordingSession


DEFAULT_DEVICE_LABEL = "System default"


def _dbg(msg: str) -> None:
    if os.environ.get("VOICETAKE_DEBUG") == "1":
        ts = time.strftime("%H:%M:%S")
        print(f"[gui {ts}] {msg}", flush=True)


def format_elapsed(secs: int) -> str:
    mm = secs // 60
    ss = secs % 60
    return f"{mm:02d}:{ss:02d}"


def device_labels(devs: list[InputDevice]) -> list[str]:
    """Combobox labels; duplicate names get their channel count appended."""
    names = [d.name for d in devs]
    labels = []
    for d in devs:
        if names.count(d.name) > 1:
            labels.append(f"{d.name} ({d.max_input_channels} ch, #{d.index})")
        else:
            labels.append(d.name)
    return [DEFAULT_DEVICE_LABEL] + labels


class VoiceTakeApp(tk.Tk):
    def __init__(self) -> None:
        super().__init__()
        self.title("VoiceTake")
        self.resizable(True, True)

        self._settings: Settings = load_settings()
        self._devices: list[InputDevice] = []
        self._session: Optional[RecordingSession] = None
        self._timer_job: Optional[str] = None

        dispatch: Callable[[Callable[[], None]], None] = lambda fn: self.after(0, fn)
        self._recorder = AudioRecorder(
            blocksize=self._settings.blocksize,
            on_level=self._on_level,
            level_refresh_hz=self._settings.level_refresh_hz,
            dispatch=dispatch,
        )
        self._player = AudioPlayer(
            on_level=self._on_level,
            level_refresh_hz=self._settings.level_refresh_hz,
            dispatch=dispatch,
        )

        self.setup_frame = ttk.Frame(self)
        self.record_frame = ttk.Frame(self)
        self._build_setup(self.setup_frame)
        self._build_recording(self.record_frame)
        self.setup_frame.pack(fill="both", expand=True)
        self._refresh_devices()

        if self._settings.window_geometry:
            self.geometry(self._settings.window_geometry)
        else:
            self.minsize(640, 520)
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    # ------- Setup screen -------
    def _build_setup(self, root: ttk.Frame) -> None:
        pad = {"padx": 8, "pady": 6}
        ttk.Label(root, text="VoiceTake", font=("Helvetica", 20, "bold")).pack(**pad)

        dir_frame = ttk.LabelFrame(root, text="Working Directory")
        dir_frame.pack(fill="x", **pad)
        self.var_root = tk.StringVar(value=self._settings.root_dir)
        ttk.Entry(dir_frame, textvariable=self.var_root).pack(
            side="left", fill="x", expand=True, padx=8, pady=8
        )
        ttk.Button(dir_frame, text="Choose…", command=self._browse_root).pack(
            side="right", padx=8, pady=8
        )

        voice_frame = ttk.LabelFrame(root, text="Voice Name")
        voice_frame.pack(fill="x", **pad)
        self.var_voice = tk.StringVar(value=self._settings.voice_name)
        ttk.Entry(voice_frame, textvariable=self.var_voice).pack(
            fill="x", padx=8, pady=8
        )

        dev_frame = ttk.LabelFrame(root, text="Input Device")
        dev_frame.pack(fill="x", **pad)
        self.device_var = tk.StringVar(value=DEFAULT_DEVICE_LABEL)
        self.device_cb = ttk.Combobox(
            dev_frame, textvariable=self.device_var, state="readonly"
        )
        self.device_cb.pack(side="left", fill="x", expand=True, padx=8, pady=8)
        ttk.Button(dev_frame, text="Refresh", command=self._refresh_devices).pack(
            side="right", padx=8, pady=8
        )

        self.var_layout_hint = tk.StringVar(value="")
        ttk.Label(root, textvariable=self.var_layout_hint, foreground="gray").pack(**pad)
        self.var_voice.trace_add("write", lambda *_a: self._update_layout_hint())
        self._update_layout_hint()

        ttk.Button(
            root, text="Start Recording Session", command=self._start_session
        ).pack(fill="x", padx=8, pady=16)

    def _update_layout_hint(self) -> None:
        voice = self.var_voice.get().strip() or "{voice_name}"
        self.var_layout_hint.set(
            f"Transcripts are read from transcripts/; recordings go to recordings/{voice}/\n"
            f"Takes use about {human_readable_bytes(wav_bytes_per_minute())} per minute"
        )

    def _browse_root(self) -> None:
        d = filedialog.askdirectory(
            initialdir=self.var_root.get() or str(Path.cwd()),
            mustexist=True,
            title="Select the directory containing the 'transcripts' folder",
        )
        if d:
            self.var_root.set(d)

    def _refresh_devices(self) -> None:
        self._devices = list_input_devices()
        labels = device_labels(self._devices)
        self.device_cb["values"] = labels
        uid = self._settings.device_uid
        selected = DEFAULT_DEVICE_LABEL
        for d, label in zip(self._devices, labels[1:]):
            if d.uid == uid:
                selected = label
        self.device_cb.set(selected)
        default = default_input_device()
        _dbg(
            f"{len(self._devices)} input devices; default="
            f"{default.name if default else 'none'}"
        )

    def _selected_device_uid(self) -> str:
        label = self.device_var.get()
        labels = device_labels(self._devices)[1:]
        for d, candidate in zip(self._devices, labels):
            if candidate == label:
                return d.uid
        return ""

    def _start_session(self) -> None:
        root = self.var_root.get().strip()
        if not root or not Path(root).expanduser().is_dir():
            messagebox.showerror("No directory", "Please choose a working directory.")
            return
        try:
            session = RecordingSession(
                Path(root).expanduser(),
                self.var_voice.get(),
                recorder=self._recorder,
                player=self._player,
            )
            session.select_device(self._selected_device_uid())
            session.load()
        except Exception as e:  # noqa: BLE001
            messagebox.showerror("Failed to load transcripts", str(e))
            return
        self._session = session
        self._settings.root_dir = str(session.root)
        self._settings.voice_name = session.voice
        self._settings.device_uid = self._selected_device_uid()
        save_settings(self._settings)

        self.setup_frame.pack_forget()
        self.record_frame.pack(fill="both", expand=True)
        self._refresh_view()

    # ------- Recording screen -------
    def _build_recording(self, root: ttk.Frame) -> None:
        pad = {"padx": 8, "pady": 6}
        style = ttk.Style(self)
        style.configure("Record.TButton", font=("Helvetica", 14), padding=8)

        header = ttk.Frame(root)
        header.pack(fill="x", **pad)
        self.var_voice_label = tk.StringVar(value="")
        self.var_progress = tk.StringVar(value="")
        self.var_recorded = tk.StringVar(value="")
        ttk.Label(header, textvariable=self.var_voice_label, font=("Helvetica", 13, "bold")).pack(
            side="left"
        )
        ttk.Label(header, textvariable=self.var_progress).pack(side="left", padx=12)
        self.btn_add = ttk.Button(header, text="+ Add", command=self._open_add_dialog)
        self.btn_add.pack(side="right")
        self.btn_play_ref = ttk.Button(header, text="▶ Ref", command=self._toggle_reference_playback)
        self.btn_play_ref.pack(side="right", padx=4)
        self.btn_ref = ttk.Button(header, text="Ref Voice", command=self._toggle_reference)
        self.btn_ref.pack(side="right", padx=4)
        self.status_dot = tk.Label(header, text="●", fg="gray")
        self.status_dot.pack(side="right")
        ttk.Label(header, textvariable=self.var_recorded).pack(side="right", padx=4)

        body = ttk.Frame(root)
        body.pack(fill="both", expand=True, **pad)
        self.var_filename = tk.StringVar(value="")
        ttk.Label(body, textvariable=self.var_filename, foreground="gray").pack(anchor="w")
        self.txt_prompt = tk.Text(body, wrap="word", height=8, font=("Helvetica", 18))
        self.txt_prompt.pack(fill="both", expand=True, pady=(4, 0))
        self.txt_prompt.configure(state="disabled")

        meter = ttk.Frame(root)
        meter.pack(fill="x", **pad)
        self.level_var = tk.DoubleVar(value=0.0)
        ttk.Progressbar(meter, variable=self.level_var, maximum=100.0).pack(
            side="left", fill="x", expand=True
        )
        self.var_elapsed = tk.StringVar(value="00:00")
        ttk.Label(meter, textvariable=self.var_elapsed, width=6).pack(side="right", padx=6)

        controls = ttk.Frame(root)
        controls.pack(**pad)
        self.btn_play = ttk.Button(controls, text="▶ Play", command=self._toggle_playback)
        self.btn_play.grid(row=0, column=0, padx=12)
        self.btn_record = ttk.Button(
            controls, text="🔴 Record", style="Record.TButton", command=self._toggle_recording
        )
        self.btn_record.grid(row=0, column=1, padx=12)
        self.btn_prev = ttk.Button(controls, text="◀ Previous", command=self._go_previous)
        self.btn_prev.grid(row=1, column=0, padx=12, pady=6)
        self.btn_next = ttk.Button(controls, text="Next ▶", command=self._go_next)
        self.btn_next.grid(row=1, column=1, padx=12, pady=6)

        footer = ttk.Frame(root)
        footer.pack(fill="x", **pad)
        self.btn_zip = ttk.Button(footer, text="Download ZIP", command=self._export_zip)
        self.btn_zip.pack(side="left")
        self.btn_exit = ttk.Button(footer, text="Finish & Exit", command=self._on_close)
        self.btn_exit.pack(side="right")
        self.status_var = tk.StringVar(value="")
        ttk.Label(footer, textvariable=self.status_var).pack(side="left", padx=12)

        self.bind("<Left>", lambda _e: self._go_previous())
        self.bind("<Right>", lambda _e: self._go_next())

    def _refresh_view(self) -> None:
        s = self._session
        if s is None:
            return
        self.var_voice_label.set(f"Voice: {s.voice}")
        self.var_progress.set(f"Progress: {s.progress_text}")
        self.var_recorded.set(f"{s.recorded_count} recorded")
        self.status_dot.configure(fg="green" if s.current_recorded else "gray")

        prompt = s.current
        self.var_filename.set(prompt.filename if prompt else "")
        self.txt_prompt.configure(state="normal")
        self.txt_prompt.delete("1.0", tk.END)
        self.txt_prompt.insert("1.0", prompt.text if prompt else "No transcripts found")
        self.txt_prompt.configure(state="disabled")

        recording = s.is_recording
        busy = s.busy
        self.btn_record.configure(text="⏹ Stop Recording" if recording else "🔴 Record")
        self.btn_play.configure(text="⏹ Stop" if s.is_playing else "▶ Play")
        self.btn_ref.configure(text="⏹ Stop" if s.is_recording_reference else "Ref Voice")
        self.btn_play_ref.configure(text="⏹ Ref" if s.is_playing else "▶ Ref")

        _set_enabled(self.btn_record, prompt is not None and not s.is_playing and not s.is_recording_reference)
        _set_enabled(self.btn_play, s.current_recorded and not busy)
        _set_enabled(self.btn_prev, s.current_index > 0 and not busy)
        _set_enabled(self.btn_next, s.current_index < len(s.prompts) - 1 and not busy)
        _set_enabled(self.btn_ref, not recording and not s.is_playing)
        _set_enabled(self.btn_play_ref, s.has_reference and not busy)
        _set_enabled(self.btn_zip, not busy)
        _set_enabled(self.btn_add, not busy)
        if s.all_recorded:
            self.status_var.set("All transcripts recorded")

    def _on_level(self, value: float) -> None:
        self.level_var.set(value * 100.0)

    def _schedule_timer(self) -> None:
        self.var_elapsed.set(format_elapsed(self._recorder.elapsed_seconds()))
        self._timer_job = self.after(1000, self._schedule_timer)

    def _cancel_timer(self) -> None:
        if self._timer_job is not None:
            self.after_cancel(self._timer_job)
            self._timer_job = None
        self.var_elapsed.set("00:00")

    def _go_previous(self) -> None:
        if self._session is None or self._session.busy:
            return
        self._session.stop_playing()
        self._session.go_previous()
        self._refresh_view()

    def _go_next(self) -> None:
        if self._session is None or self._session.busy:
            return
        self._session.stop_playing()
        self._session.go_next()
        self._refresh_view()

    def _toggle_recording(self) -> None:
        s = self._session
        if s is None:
            return
        if s.is_recording:
            try:
                path = s.stop_recording()
                take = s.last_take
                if path and take is not None:
                    self.status_var.set(f"Saved {path.name} ({take.duration:.1f} s)")
                else:
                    self.status_var.set(f"Saved {path.name}" if path else "")
            except Exception as e:  # noqa: BLE001
                messagebox.showerror("Failed to save recording", str(e))
            finally:
                self._cancel_timer()
        else:
            try:
                s.start_recording()
            except Exception as e:  # noqa: BLE001
                messagebox.showerror("Failed to start recording", str(e))
                return
            self.status_var.set("Recording…")
            self._schedule_timer()
        self._refresh_view()

    def _toggle_reference(self) -> None:
        s = self._session
        if s is None:
            return
        if s.is_recording_reference:
            try:
                s.stop_reference()
                self.status_var.set("Reference saved")
            except Exception as e:  # noqa: BLE001
                messagebox.showerror("Failed to save reference", str(e))
            finally:
                self._cancel_timer()
        else:
            try:
                s.start_reference()
            except Exception as e:  # noqa: BLE001
                messagebox.showerror("Failed to start recording", str(e))
                return
            self.status_var.set("Recording reference…")
            self._schedule_timer()
        self._refresh_view()

    def _toggle_playback(self) -> None:
        self._toggle_play(lambda s: s.play_recording(self._refresh_view))

    def _toggle_reference_playback(self) -> None:
        self._toggle_play(lambda s: s.play_reference(self._refresh_view))

    def _toggle_play(self, start: Callable[[RecordingSession], object]) -> None:
        s = self._session
        if s is None:
            return
        if s.is_playing:
            s.stop_playing()
        else:
            try:
                start(s)
            except Exception as e:  # noqa: BLE001
                messagebox.showerror("Failed to play", str(e))
        self._refresh_view()

    def _open_add_dialog(self) -> None:
        dlg = tk.Toplevel(self)
        dlg.title("Add Transcript")
        dlg.transient(self)
        ttk.Label(dlg, text="Name:").grid(row=0, column=0, sticky="w", padx=8, pady=6)
        var_name = tk.StringVar(value="")
        ttk.Entry(dlg, textvariable=var_name, width=40).grid(
            row=0, column=1, sticky="we", padx=8, pady=6
        )
        ttk.Label(dlg, text="Text:").grid(row=1, column=0, sticky="nw", padx=8, pady=6)
        txt = tk.Text(dlg, wrap="word", width=50, height=8)
        txt.grid(row=1, column=1, sticky="nsew", padx=8, pady=6)
        dlg.columnconfigure(1, weight=1)
        dlg.rowconfigure(1, weight=1)

        def _add() -> None:
            s = self._session
            if s is None:
                return
            try:
                s.add_prompt(var_name.get(), txt.get("1.0", tk.END).strip())
            except Exception as e:  # noqa: BLE001
                messagebox.showerror("Failed to add transcript", str(e), parent=dlg)
                return
            dlg.destroy()
            self._refresh_view()

        buttons = ttk.Frame(dlg)
        buttons.grid(row=2, column=0, columnspan=2, sticky="e", padx=8, pady=8)
        ttk.Button(buttons, text="Cancel", command=dlg.destroy).pack(side="right")
        ttk.Button(buttons, text="Add", command=_add).pack(side="right", padx=6)

    def _export_zip(self) -> None:
        s = self._session
        if s is None:
            return
        dest = filedialog.asksaveasfilename(
            defaultextension=".zip",
            initialfile=default_archive_name(s.voice),
            filetypes=[("ZIP archive", "*.zip")],
        )
        if not dest:
            return
        rc = export_voice_archive(s.root, s.voice, dest, cmd=self._settings.archive_cmd)
        if rc == 0:
            self.status_var.set(f"Exported {Path(dest).name}")
        else:
            messagebox.showerror("Export failed", f"Archiver exited with status {rc}.")

    def _on_close(self) -> None:
        try:
            self._settings.window_geometry = self.winfo_geometry()
            save_settings(self._settings)
        except Exception as e:  # noqa: BLE001
            _dbg(f"failed to save settings: {e}")
        try:
            if self._session is not None:
                self._session.close()
            else:
                self._player.stop()
                self._recorder.stop()
        except Exception as e:  # noqa: BLE001
            _dbg(f"error while closing: {e}")
        self.destroy()


def _set_enabled(widget: ttk.Widget, enabled: bool) -> None:
    widget.state(["!disabled"] if enabled else ["disabled"])


def main() -> None:
    app = VoiceTakeApp()
    app.mainloop()


if __name__ == "__main__":
    main()
