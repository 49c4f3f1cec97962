import shutil
import zipfile
from pathlib import Path

import pytest

from voicetake import archive
from voicetake.archive import default_archive_name, export_voice_archive


def _voice(root: Path) -> None:
    folder = root / "recordings" / "sam"
    folder.mkdir(parents=True)
    (folder / "001_hello.wav").write_bytes(b"RIFF")
    (folder / "001_hello.txt").write_text("Hello there")


def test_default_archive_name() -> None:
    assert default_archive_name("sam") == "sam_recordings.zip"


def test_invokes_archiver_from_recordings_dir(tmp_path: Path, monkeypatch) -> None:
    _voice(tmp_path)
    captured = {}

    def fake_run(cmd, cwd):
        captured["cmd"] = cmd
        captured["cwd"] = cwd
        return 0

    monkeypatch.setattr(archive, "_run_archiver", fake_run)
    dest = tmp_path / "out" / "sam.zip"
    assert export_voice_archive(tmp_path, "sam", dest, cmd="zip") == 0
    assert captured["cwd"] == tmp_path / "recordings"
    assert captured["cmd"] == ["zip", "-r", "-q", str(dest.resolve()), "sam"]
    assert dest.parent.is_dir()


def test_missing_voice_is_a_failure_status(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(archive, "_run_archiver", lambda *a: pytest.fail("should not run"))
    assert export_voice_archive(tmp_path, "nobody", tmp_path / "x.zip") != 0


def test_missing_archiver_is_a_failure_status(tmp_path: Path) -> None:
    _voice(tmp_path)
    rc = export_voice_archive(tmp_path, "sam", tmp_path / "x.zip", cmd="no-such-archiver-xyz")
    assert rc != 0


@pytest.mark.skipif(shutil.which("zip") is None, reason="zip not installed")
def test_real_zip_contains_voice_folder(tmp_path: Path) -> None:
    _voice(tmp_path)
    dest = tmp_path / "sam.zip"
    assert export_voice_archive(tmp_path, "sam", dest) == 0
    with zipfile.ZipFile(dest) as zf:
        names = set(zf.namelist())
    assert "sam/001_hello.wav" in names
    assert "sam/001_hello.txt" in names
