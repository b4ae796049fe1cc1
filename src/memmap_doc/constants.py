"""Stable constants shared across the memmap-doc layers."""

from __future__ import annotations

from typing import Final

# Configuration discovery.
CONFIG_SCHEMA_VERSION: Final[int] = 1
DEFAULT_CONFIG_FILE: Final[str] = "memmap.toml"
ENV_PREFIX: Final[str] = "MEMMAP_"

# Document encodings, keyed by file suffix.
DOCUMENT_SUFFIXES: Final[dict[str, str]] = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
}
READABLE_FORMATS: Final[tuple[str, ...]] = ("json", "yaml", "toml")
WRITABLE_FORMATS: Final[tuple[str, ...]] = ("json", "yaml", "toml")

# Output defaults.
DEFAULT_OUTPUT_FORMAT: Final[str] = "json"
DEFAULT_JSON_INDENT: Final[int] = 4
DEFAULT_DOC_DIR: Final[str] = "doc"

# Logging.
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("text", "json")

JSON_SCHEMA_DIALECT: Final[str] = "https://json-schema.org/draft/2020-12/schema"

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_DOC_DIR",
    "DEFAULT_JSON_INDENT",
    "DEFAULT_OUTPUT_FORMAT",
    "DOCUMENT_SUFFIXES",
    "ENV_PREFIX",
    "JSON_SCHEMA_DIALECT",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "READABLE_FORMATS",
    "WRITABLE_FORMATS",
]
