from __future__ import annotations

from pathlib import Path

import pytest

from memmap_doc.utils.fs import atomic_write, ensure_directory, list_files_with_suffix


def test_atomic_write_replaces_content_without_leaving_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "out.json"
    atomic_write(target, "first")
    atomic_write(target, b"second")

    assert target.read_text(encoding="utf-8") == "second"
    assert [path.name for path in tmp_path.iterdir()] == ["out.json"]


def test_atomic_write_requires_an_existing_parent(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        atomic_write(tmp_path / "missing" / "out.json", "data")


def test_ensure_directory_is_idempotent(tmp_path: Path) -> None:
    created = ensure_directory(tmp_path / "a" / "b")

    assert created.is_dir()
    assert ensure_directory(created) == created


def test_list_files_with_suffix_is_sorted_and_non_recursive(tmp_path: Path) -> None:
    for name in ("b.yaml", "a.JSON", "notes.txt", "c.toml"):
        (tmp_path / name).write_text("", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "d.json").write_text("", encoding="utf-8")
    (tmp_path / "dir.json").mkdir()

    found = list_files_with_suffix(tmp_path, {".json", ".yaml", ".toml"})

    assert [path.name for path in found] == ["a.JSON", "b.yaml", "c.toml"]


def test_list_files_with_suffix_rejects_non_directories(tmp_path: Path) -> None:
    source = tmp_path / "file.json"
    source.write_text("", encoding="utf-8")

    with pytest.raises(NotADirectoryError):
        list_files_with_suffix(source, {".json"})
