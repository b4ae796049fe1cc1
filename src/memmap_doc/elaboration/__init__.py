"""Address assignment, access inheritance and value validation for memory maps."""

from memmap_doc.elaboration.engine import (
    EMPTY_SET_RANGE,
    ElaborationResult,
    describe_extent,
    elaborate,
)
from memmap_doc.elaboration.errors import (
    AddressOverflowError,
    ElaborationError,
    SchemaError,
    ValueRangeError,
    ValueTypeMismatchError,
)
from memmap_doc.elaboration.rules import LEAF_RULES, LeafRule, bytes_for_bits, rule_for

__all__ = [
    "AddressOverflowError",
    "EMPTY_SET_RANGE",
    "ElaborationError",
    "ElaborationResult",
    "LEAF_RULES",
    "LeafRule",
    "SchemaError",
    "ValueRangeError",
    "ValueTypeMismatchError",
    "bytes_for_bits",
    "describe_extent",
    "elaborate",
    "rule_for",
]
