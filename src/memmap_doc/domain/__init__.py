"""
memmap-doc domain package

File: src/memmap_doc/domain/__init__.py

Purpose
- Typed vocabulary of a memory map: Protocol, Field, FieldType and Value variants, Access.

What should be included in this file
- Re-export of the document models and decode-boundary validators.
- Keep the domain layer free of IO side effects.

Functional requirements
- Models decode strictly from plain mappings and re-encode symmetrically.
"""

from memmap_doc.domain.models import (
    Access,
    BitfieldType,
    DecodeError,
    EnumType,
    Field,
    FieldType,
    FloatValue,
    MemoryMap,
    Protocol,
    SetType,
    SFixedType,
    SignedType,
    SignedValue,
    StringType,
    StringValue,
    UFixedType,
    UnsignedType,
    UnsignedValue,
    Value,
)
from memmap_doc.domain.parsing import ensure_ascii, parse_address

__all__ = [
    "Access",
    "BitfieldType",
    "DecodeError",
    "EnumType",
    "Field",
    "FieldType",
    "FloatValue",
    "MemoryMap",
    "Protocol",
    "SFixedType",
    "SetType",
    "SignedType",
    "SignedValue",
    "StringType",
    "StringValue",
    "UFixedType",
    "UnsignedType",
    "UnsignedValue",
    "Value",
    "ensure_ascii",
    "parse_address",
]
