"""
memmap-doc — filesystem utilities

File: src/memmap_doc/utils/fs.py

Purpose
- Provide small filesystem helpers for document output and discovery.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step.
- Source discovery is non-recursive and returns files in sorted name order.

Non-functional requirements
- Standard library only and cross-platform behavior where feasible.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from collections.abc import Collection
from pathlib import Path

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_write",
    "ensure_directory",
    "list_files_with_suffix",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``.

    The write strategy is:
    1. create temp file in the same directory,
    2. write + flush + fsync file data,
    3. replace target via ``os.replace``.
    """

    target = Path(path)
    target_parent = target.parent.resolve(strict=True)
    if not target_parent.is_dir():
        raise NotADirectoryError(f"{target_parent!s} is not a directory")

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)

    try:
        mode = "wb" if isinstance(data, bytes) else "w"
        file_encoding = None if isinstance(data, bytes) else encoding
        with os.fdopen(fd, mode, encoding=file_encoding) as file_handle:
            file_handle.write(data)
            file_handle.flush()
            os.fsync(file_handle.fileno())

        os.replace(temp_path, target)
        _fsync_directory(target_parent)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` (and parents) if needed and return it resolved."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory.resolve()


def list_files_with_suffix(directory: PathLike, suffixes: Collection[str]) -> list[Path]:
    """Return regular files directly inside ``directory`` whose suffix is in ``suffixes``."""

    wanted = {suffix.lower() for suffix in suffixes}
    root = Path(directory)
    if not root.is_dir():
        raise NotADirectoryError(f"{root!s} is not a directory")
    return sorted(
        (entry for entry in root.iterdir() if entry.is_file() and entry.suffix.lower() in wanted),
        key=lambda entry: entry.name,
    )


def _fsync_directory(path: Path) -> None:
    """
    Best-effort directory fsync for metadata durability after ``os.replace``.

    Some platforms/filesystems do not support fsync on directories.
    """

    if os.name == "nt":
        return

    flags = os.O_RDONLY
    if hasattr(os, "O_DIRECTORY"):
        flags |= os.O_DIRECTORY

    try:
        dir_fd = os.open(path, flags)
    except OSError:
        return

    try:
        os.fsync(dir_fd)
    except OSError:
        return
    finally:
        os.close(dir_fd)
