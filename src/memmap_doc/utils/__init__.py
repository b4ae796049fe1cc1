"""Utility exports for filesystem helpers."""

from memmap_doc.utils.fs import atomic_write, ensure_directory, list_files_with_suffix

__all__ = ["atomic_write", "ensure_directory", "list_files_with_suffix"]
