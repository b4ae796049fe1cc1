"""
memmap-doc document layer.

File: src/memmap_doc/document/__init__.py

Purpose
- Move memory-map documents between files and models, and describe their shape as JSON Schema.
"""

from memmap_doc.document.loader import (
    DocumentLoadError,
    detect_format,
    dumps_document,
    is_memory_map_payload,
    load_document,
    loads_document,
    parse_text,
    read_payload,
    save_document,
)
from memmap_doc.document.schema import dump_memory_map_schema, memory_map_schema, object_schema

__all__ = [
    "DocumentLoadError",
    "detect_format",
    "dump_memory_map_schema",
    "dumps_document",
    "is_memory_map_payload",
    "load_document",
    "loads_document",
    "memory_map_schema",
    "object_schema",
    "parse_text",
    "read_payload",
    "save_document",
]
