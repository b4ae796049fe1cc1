"""
memmap-doc elaboration engine.

File: src/memmap_doc/elaboration/engine.py

Purpose
- Resolve every field's address and access permission and validate declared
  default values, mutating the field tree in place.

Functional requirements
- Depth-first, pre-order walk in declaration order threading a running address
  cursor and the inherited access permission.
- Within a node, inputs (type, declared value) are read before outputs
  (access, address, range) are written.
- The first violation aborts the walk; fields already visited keep their
  resolved values.

Non-functional requirements
- No I/O and no state shared between calls.
- Decisions are logged as structured events through ``structlog``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from memmap_doc.domain.models import Access, Field, Protocol, SetType
from memmap_doc.elaboration.errors import (
    AddressOverflowError,
    ElaborationError,
    SchemaError,
)
from memmap_doc.elaboration.rules import rule_for

Extent = tuple[int, int]

EMPTY_SET_RANGE = "empty"


@dataclass(frozen=True, slots=True)
class ElaborationResult:
    """Summary of one elaboration call."""

    cursor: int
    leaf_count: int
    extent: Extent | None


@dataclass(slots=True)
class _Walk:
    protocol: Protocol
    logger: Any
    cursor: int
    leaf_count: int = 0


def elaborate(
    field: Field,
    protocol: Protocol,
    *,
    logger: Any | None = None,
) -> ElaborationResult:
    """
    Elaborate ``field`` and all of its descendants against ``protocol``.

    The cursor starts at the root's explicit address (or 0) and the inherited
    access at the root's explicit access (or ``Access.READ``). Raises an
    ``ElaborationError`` subclass on the first violation.
    """

    log = logger if logger is not None else structlog.get_logger(__name__)
    start = field.address if field.address is not None else 0
    inherited = field.access if field.access is not None else Access.READ
    walk = _Walk(protocol=protocol, logger=log, cursor=start)

    try:
        extent = _visit(field, inherited, walk)
    except ElaborationError as exc:
        log.debug(
            "elaboration_failed",
            field=exc.field_name,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        raise

    log.info(
        "elaboration_complete",
        root=field.name,
        cursor=walk.cursor,
        leaf_count=walk.leaf_count,
    )
    return ElaborationResult(cursor=walk.cursor, leaf_count=walk.leaf_count, extent=extent)


def describe_extent(extent: Extent | None) -> str:
    if extent is None:
        return EMPTY_SET_RANGE
    low, high = extent
    return f"{low:#x}..{high - 1:#x}"


def _visit(node: Field, inherited: Access, walk: _Walk) -> Extent | None:
    if isinstance(node.field_type, SetType):
        return _visit_set(node, inherited, walk)
    return _visit_leaf(node, inherited, walk)


def _visit_set(node: Field, inherited: Access, walk: _Walk) -> Extent | None:
    if node.contains is None:
        raise SchemaError(
            node.name,
            f"Schema error. Field {node.name} has type 'set', but key 'contains' was not provided",
        )
    if node.value is not None:
        walk.logger.warning("set_value_ignored", field=node.name, value=str(node.value))

    access = node.access if node.access is not None else inherited
    node.access = access
    if node.address is None:
        node.address = walk.cursor
    else:
        walk.cursor = node.address

    extent: Extent | None = None
    for child in node.children:
        extent = _merge(extent, _visit(child, access, walk))

    node.range = describe_extent(extent)
    walk.logger.debug(
        "set_elaborated",
        field=node.name,
        address=node.address,
        access=access.value,
        range=node.range,
    )
    return extent


def _visit_leaf(node: Field, inherited: Access, walk: _Walk) -> Extent:
    rule = rule_for(node.field_type)
    if node.value is not None:
        rule.check_value(node.field_type, node.value, node.name)

    if node.access is None:
        node.access = inherited

    if node.address is None:
        node.address = walk.cursor
    address = node.address

    footprint = rule.footprint(node.field_type, walk.protocol)
    if address + footprint > walk.protocol.address_max:
        raise AddressOverflowError(
            node.name,
            address=address,
            footprint=footprint,
            address_max=walk.protocol.address_max,
        )

    walk.cursor = address + footprint
    walk.leaf_count += 1
    node.range = rule.describe_range(node.field_type)
    walk.logger.debug(
        "field_placed",
        field=node.name,
        field_type=str(node.field_type),
        address=address,
        footprint=footprint,
        access=node.access.value,
    )
    return address, address + footprint


def _merge(current: Extent | None, incoming: Extent | None) -> Extent | None:
    if incoming is None:
        return current
    if current is None:
        return incoming
    return min(current[0], incoming[0]), max(current[1], incoming[1])


__all__ = ["EMPTY_SET_RANGE", "ElaborationResult", "Extent", "describe_extent", "elaborate"]
