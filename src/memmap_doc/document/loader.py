"""
memmap-doc — document loading and saving.

File: src/memmap_doc/document/loader.py

Purpose
- Read and write memory-map documents as JSON, YAML or TOML.

Functional requirements
- Encoding is chosen from the file suffix unless given explicitly.
- Syntax and I/O failures raise ``DocumentLoadError``; shape failures surface as
  ``DecodeError`` from the model layer.
- Output keeps model key order and is written atomically.

Non-functional requirements
- No elaboration happens here; callers decide when to elaborate.
"""

from __future__ import annotations

import json
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import tomli_w
import yaml

from memmap_doc.constants import (
    DEFAULT_JSON_INDENT,
    DOCUMENT_SUFFIXES,
    READABLE_FORMATS,
    WRITABLE_FORMATS,
)
from memmap_doc.domain.models import MemoryMap
from memmap_doc.utils.fs import atomic_write

_YAML_WIDTH = 120


class DocumentLoadError(ValueError):
    """Raised when a document cannot be read, parsed or encoded."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


def detect_format(path: str | Path) -> str:
    """Return the encoding implied by ``path``'s suffix."""

    suffix = Path(path).suffix.lower()
    try:
        return DOCUMENT_SUFFIXES[suffix]
    except KeyError:
        known = ", ".join(sorted(DOCUMENT_SUFFIXES))
        raise DocumentLoadError(
            f"{path}: unsupported document suffix {suffix or '<none>'!r}; expected one of: {known}",
            path=Path(path),
        ) from None


def parse_text(text: str, fmt: str, *, source: str = "<string>") -> object:
    """Parse ``text`` in encoding ``fmt`` into plain Python containers."""

    if fmt == "json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise DocumentLoadError(f"{source}: invalid JSON ({exc})") from exc
    if fmt == "yaml":
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise DocumentLoadError(f"{source}: invalid YAML ({exc})") from exc
    if fmt == "toml":
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise DocumentLoadError(f"{source}: invalid TOML ({exc})") from exc
    raise DocumentLoadError(
        f"{source}: unsupported input format {fmt!r}; expected one of: {', '.join(READABLE_FORMATS)}"
    )


def read_payload(path: str | Path, fmt: str | None = None) -> object:
    """Read and parse ``path`` without decoding it into models."""

    source = Path(path)
    resolved_format = fmt if fmt is not None else detect_format(source)
    try:
        text = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentLoadError(f"unable to read document {source}: {exc}", path=source) from exc
    return parse_text(text, resolved_format, source=str(source))


def is_memory_map_payload(payload: object) -> bool:
    """True for parsed documents that look like a memory map (top-level ``protocol`` key)."""

    return isinstance(payload, Mapping) and "protocol" in payload


def loads_document(text: str, fmt: str = "json") -> MemoryMap:
    """Decode a memory map from in-memory ``text``."""

    return MemoryMap.from_dict(_as_root(parse_text(text, fmt), "<string>"))


def load_document(
    path: str | Path,
    fmt: str | None = None,
    *,
    logger: Any | None = None,
) -> MemoryMap:
    """Load and decode the memory map stored at ``path``."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    source = Path(path)
    payload = read_payload(source, fmt)
    document = MemoryMap.from_dict(_as_root(payload, str(source)))
    log.debug(
        "document_loaded",
        path=str(source),
        format=fmt or detect_format(source),
        root=document.root.name,
    )
    return document


def dumps_document(
    document: MemoryMap,
    fmt: str = "json",
    *,
    indent: int = DEFAULT_JSON_INDENT,
) -> str:
    """Encode ``document`` as text, always newline terminated."""

    payload = document.to_dict()
    if fmt == "json":
        rendered = json.dumps(payload, indent=indent, ensure_ascii=False)
    elif fmt == "yaml":
        rendered = yaml.safe_dump(
            payload,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=False,
            width=_YAML_WIDTH,
        )
    elif fmt == "toml":
        rendered = tomli_w.dumps(payload)
    else:
        raise DocumentLoadError(
            f"unsupported output format {fmt!r}; expected one of: {', '.join(WRITABLE_FORMATS)}"
        )
    if not rendered.endswith("\n"):
        rendered = rendered + "\n"
    return rendered


def save_document(
    document: MemoryMap,
    path: str | Path,
    fmt: str | None = None,
    *,
    indent: int = DEFAULT_JSON_INDENT,
    logger: Any | None = None,
) -> Path:
    """Encode ``document`` and write it atomically to ``path``; returns the path written."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    destination = Path(path)
    resolved_format = fmt if fmt is not None else detect_format(destination)
    rendered = dumps_document(document, resolved_format, indent=indent)
    try:
        atomic_write(destination, rendered)
    except OSError as exc:
        raise DocumentLoadError(
            f"unable to write document {destination}: {exc}", path=destination
        ) from exc
    log.debug("document_saved", path=str(destination), format=resolved_format)
    return destination


def _as_root(payload: object, source: str) -> Mapping[str, object]:
    if not isinstance(payload, Mapping):
        raise DocumentLoadError(
            f"{source}: document root must be an object, got {type(payload).__name__}"
        )
    return payload


__all__ = [
    "DocumentLoadError",
    "detect_format",
    "dumps_document",
    "is_memory_map_payload",
    "load_document",
    "loads_document",
    "parse_text",
    "read_payload",
    "save_document",
]
