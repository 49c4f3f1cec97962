import json
from pathlib import Path

from voicetake.common.settings import load_settings, save_settings, Settings


def test_settings_load_defaults_and_roundtrip(tmp_path: Path, monkeypatch) -> None:
    # Direct settings file to temp location
    settings_file = tmp_path / "settings.json"
    monkeypatch.setenv("VOICETAKE_SETTINGS_PATH", str(settings_file))

    s = load_settings()
    # Defaults
    assert isinstance(s, Settings)
    assert s.blocksize == 4096
    assert s.level_refresh_hz == 60

    # Modify and save
    s.root_dir = str(tmp_path)
    s.voice_name = "sam"
    s.device_uid = "Core Audio:USB Interface"
    assert save_settings(s)

    # Reload and verify persistence
    s2 = load_settings()
    assert s2.root_dir == str(tmp_path)
    assert s2.voice_name == "sam"
    assert s2.device_uid == "Core Audio:USB Interface"

    # Check file contents are valid JSON
    data = json.loads(settings_file.read_text())
    assert data["voice_name"] == "sam"


def test_unknown_keys_are_ignored(tmp_path: Path, monkeypatch) -> None:
    settings_file = tmp_path / "settings.json"
    monkeypatch.setenv("VOICETAKE_SETTINGS_PATH", str(settings_file))

    # Write a file with extra keys and wrong-typed values
    settings_file.write_text(
        json.dumps(
            {
                "voice_name": "alice",
                "unknown_key": 123,
                "blocksize": "large",  # wrong type; should fallback to default
            }
        )
    )

    s = load_settings()
    assert s.voice_name == "alice"
    assert s.blocksize == 4096


def test_directory_override_and_corrupt_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("VOICETAKE_SETTINGS_PATH", str(tmp_path / "cfg"))
    path = tmp_path / "cfg" / "settings.json"
    path.parent.mkdir()
    path.write_text("{not json")
    assert load_settings() == Settings()


def test_save_failure_is_reported(tmp_path: Path, monkeypatch, capsys) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    monkeypatch.setenv("VOICETAKE_SETTINGS_PATH", str(blocker / "settings.json"))
    monkeypatch.setenv("VOICETAKE_DEBUG", "1")

    assert save_settings(Settings(voice_name="sam")) is False
    assert "failed to save" in capsys.readouterr().out
    assert load_settings() == Settings()
