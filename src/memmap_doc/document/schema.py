"""
JSON Schema export for memory-map documents.

The schema is derived from the dataclass models: property names, wire keys and
required/optional status come from ``dataclasses.fields``; encodings that the
models handle by hand (type tags, untagged values, hex-or-integer addresses,
one-or-many ``contains``) are supplied by per-attribute hooks.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable
from typing import Any, Final

from memmap_doc.constants import DEFAULT_JSON_INDENT, JSON_SCHEMA_DIALECT
from memmap_doc.domain import parsing
from memmap_doc.domain.models import (
    FIELD_TYPE_CLASSES,
    Access,
    BitfieldType,
    EnumType,
    Field,
    Protocol,
    SetType,
)

Schema = dict[str, Any]

_DEFS: Final[str] = "#/$defs/"

# Attribute name -> document key, where they differ.
WIRE_KEYS: Final[dict[str, str]] = {
    "address_max": "addressMax",
    "data_min": "dataMin",
    "field_type": "type",
    "codes": "map",
}
READ_ONLY_ATTRIBUTES: Final[frozenset[str]] = frozenset({"range"})

_DESCRIPTIONS: Final[dict[str, str]] = {
    "address_max": "Inclusive bound on the end address: address + footprint <= addressMax.",
    "data_min": "Smallest addressable unit in bytes; every field occupies at least this much.",
    "address": "Absolute address; assigned from the running cursor when omitted.",
    "access": "Access permission; inherited from the enclosing set when omitted.",
    "contains": "Child fields of a set, as one field or an array of fields.",
    "value": "Default value; must fit the field type.",
    "range": "Representable range, filled in by elaboration.",
}


def _ref(name: str) -> Schema:
    return {"$ref": f"{_DEFS}{name}"}


def _address_schema() -> Schema:
    return {
        "oneOf": [
            {"type": "string", "pattern": "^0x[0-9A-Fa-f_]*[0-9A-Fa-f][0-9A-Fa-f_]*$"},
            {"type": "integer", "minimum": 0, "maximum": parsing.U64_MAX},
        ]
    }


def _value_schema() -> Schema:
    return {
        "anyOf": [
            {"type": "string"},
            {"type": "integer", "minimum": parsing.I64_MIN, "maximum": parsing.U64_MAX},
            {"type": "number"},
        ]
    }


def _contains_schema() -> Schema:
    return {"oneOf": [_ref("Field"), {"type": "array", "items": _ref("Field")}]}


def _type_payload_property(field_type: type[Any], attribute: str) -> Schema:
    if field_type is EnumType and attribute == "codes":
        return {"type": "object", "additionalProperties": {"type": "integer", "minimum": 0}}
    if field_type is BitfieldType and attribute == "bits":
        return {
            "oneOf": [
                {"type": "array", "items": {"type": "string"}},
                {"type": "object", "additionalProperties": {"type": "integer", "minimum": 0}},
            ]
        }
    if attribute == "length":
        return {"type": "integer", "minimum": 1}
    return {"type": "integer"}


def _field_type_variant(field_type: type[Any]) -> Schema:
    if field_type is SetType:
        return {"const": SetType.tag}
    members = dataclasses.fields(field_type)
    if len(members) == 1:
        payload = _type_payload_property(field_type, members[0].name)
    else:
        payload = {
            "type": "object",
            "properties": {
                WIRE_KEYS.get(member.name, member.name): _type_payload_property(
                    field_type, member.name
                )
                for member in members
            },
            "required": [WIRE_KEYS.get(member.name, member.name) for member in members],
            "additionalProperties": False,
        }
    return {
        "type": "object",
        "properties": {field_type.tag: payload},
        "required": [field_type.tag],
        "additionalProperties": False,
    }


_ANNOTATION_SCHEMAS: Final[dict[str, Schema]] = {
    "str": {"type": "string"},
    "int": {"type": "integer"},
    "float": {"type": "number"},
}

_PROPERTY_HOOKS: Final[dict[str, Callable[[], Schema]]] = {
    "address": _address_schema,
    "address_max": _address_schema,
    "data_min": lambda: {"type": "integer", "minimum": 1, "maximum": parsing.U8_MAX},
    "access": lambda: _ref("Access"),
    "field_type": lambda: _ref("FieldType"),
    "contains": _contains_schema,
    "value": lambda: _ref("Value"),
}


def _is_required(member: dataclasses.Field[Any]) -> bool:
    return (
        member.default is dataclasses.MISSING and member.default_factory is dataclasses.MISSING
    )


def _property_schema(member: dataclasses.Field[Any]) -> Schema:
    hook = _PROPERTY_HOOKS.get(member.name)
    if hook is not None:
        schema = hook()
    else:
        annotation = str(member.type).replace(" | None", "").strip()
        try:
            schema = dict(_ANNOTATION_SCHEMAS[annotation])
        except KeyError:
            raise TypeError(
                f"no schema mapping for attribute {member.name!r} of type {member.type!r}"
            ) from None
    if member.name in READ_ONLY_ATTRIBUTES:
        schema = {**schema, "readOnly": True}
    description = _DESCRIPTIONS.get(member.name)
    if description is not None:
        schema = {**schema, "description": description}
    return schema


def object_schema(model: type[Any], *, title: str | None = None) -> Schema:
    """Reflect a dataclass model into an object schema keyed by document keys."""

    properties: Schema = {}
    required: list[str] = []
    for member in dataclasses.fields(model):
        key = WIRE_KEYS.get(member.name, member.name)
        properties[key] = _property_schema(member)
        if _is_required(member):
            required.append(key)
    return {
        "title": title or model.__name__,
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def memory_map_schema() -> Schema:
    """Return the JSON Schema (draft 2020-12) describing a ``MemoryMap`` document."""

    root_field = object_schema(Field)
    root: Schema = {
        "$schema": JSON_SCHEMA_DIALECT,
        "title": "MemoryMap",
        "description": "Protocol constraints plus the root field, flattened into one object.",
        "type": "object",
        "properties": {"protocol": _ref("Protocol"), **root_field["properties"]},
        "required": ["protocol", *root_field["required"]],
        "additionalProperties": False,
        "$defs": {
            "Protocol": object_schema(Protocol),
            "Field": object_schema(Field),
            "FieldType": {
                "title": "FieldType",
                "oneOf": [_field_type_variant(cls) for cls in FIELD_TYPE_CLASSES],
            },
            "Value": {"title": "Value", **_value_schema()},
            "Access": {"title": "Access", "enum": [item.value for item in Access]},
        },
    }
    return root


def dump_memory_map_schema(*, indent: int = DEFAULT_JSON_INDENT) -> str:
    return json.dumps(memory_map_schema(), indent=indent, ensure_ascii=False) + "\n"


__all__ = [
    "READ_ONLY_ATTRIBUTES",
    "Schema",
    "WIRE_KEYS",
    "dump_memory_map_schema",
    "memory_map_schema",
    "object_schema",
]
