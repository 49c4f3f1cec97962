from pathlib import Path

from voicetake.common.fs import (
    partial_path,
    sanitize_name,
    sorted_text_files,
    write_text_atomic,
)


def test_sanitize_name_replaces_unsafe_characters() -> None:
    assert sanitize_name("hello-world_01") == "hello-world_01"
    assert sanitize_name("Hello World") == "Hello_World"
    assert sanitize_name("a/b.c") == "a_b_c"
    assert sanitize_name("café") == "caf_"


def test_sorted_text_files_is_lexicographic(tmp_path: Path) -> None:
    for name in ("10.txt", "2.txt", "1.txt", "x.wav"):
        (tmp_path / name).write_text("")
    assert [p.name for p in sorted_text_files(tmp_path)] == ["1.txt", "10.txt", "2.txt"]
    assert sorted_text_files(tmp_path / "missing") == []


def test_write_text_atomic_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "deep" / "note.txt"
    write_text_atomic(target, "first")
    write_text_atomic(target, "second\n")
    assert target.read_text(encoding="utf-8") == "second\n"
    assert [p.name for p in target.parent.iterdir()] == ["note.txt"]


def test_partial_path_is_hidden_sibling(tmp_path: Path) -> None:
    p = partial_path(tmp_path / "001_a.wav")
    assert p.parent == tmp_path
    assert p.name == ".001_a.wav.part"
    assert p.suffix != ".wav"
