"""
Per-variant size and validation rules for leaf field types.

Each leaf type maps to one ``LeafRule``: a value check, a byte footprint, and a
human readable range annotation. Rules are plain functions so every variant can
be exercised on its own.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final

from memmap_doc.domain.models import (
    BitfieldType,
    EnumType,
    FloatValue,
    Protocol,
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
from memmap_doc.elaboration.errors import ValueRangeError, ValueTypeMismatchError

# Bounds wider than this are rendered as powers of two instead of digits.
_MAX_RENDERED_BITS: Final[int] = 128
_RESERVED_BIT_NAME: Final[str] = "Reserved"


@dataclass(frozen=True, slots=True)
class LeafRule:
    check_value: Callable[[Any, Value, str], None]
    footprint: Callable[[Any, Protocol], int]
    describe_range: Callable[[Any], str]


def bytes_for_bits(bits: int, data_min: int) -> int:
    """Whole bytes needed for ``bits``, never less than the protocol granularity."""

    return max((bits + 7) // 8, data_min)


def fits_unsigned(number: int, length: int) -> bool:
    return number >= 0 and number.bit_length() <= length


def fits_signed(number: int, length: int) -> bool:
    magnitude = number if number >= 0 else ~number
    return magnitude.bit_length() <= length - 1


def ufixed_bounds(field_type: UFixedType) -> tuple[float, float]:
    return 0.0, _fixed_top(field_type.high, field_type.low)


def sfixed_bounds(field_type: SFixedType) -> tuple[float, float]:
    return -_pow2(field_type.high), _fixed_top(field_type.high, field_type.low)


# ---------------------------------------------------------------------------
# Value checks
# ---------------------------------------------------------------------------


def check_string_value(field_type: StringType, value: Value, field_name: str) -> None:
    if not isinstance(value, StringValue):
        raise _mismatch(field_name, value, field_type)
    size = len(value.text.encode("ascii"))
    if size > field_type.length:
        raise ValueRangeError(
            field_name,
            f"String value {value.text!r} is {size} bytes, longer than the "
            f"{field_type.length} bytes of field type {field_type}",
        )


def check_unsigned_value(field_type: UnsignedType, value: Value, field_name: str) -> None:
    number = _integer_value(field_type, value, field_name)
    if not fits_unsigned(number, field_type.length):
        raise _width_overflow(field_name, number, field_type)


def check_signed_value(field_type: SignedType, value: Value, field_name: str) -> None:
    number = _integer_value(field_type, value, field_name)
    if not fits_signed(number, field_type.length):
        raise _width_overflow(field_name, number, field_type)


def check_enum_value(field_type: EnumType, value: Value, field_name: str) -> None:
    if isinstance(value, StringValue):
        if value.text not in field_type.codes:
            known = ", ".join(sorted(field_type.codes)) or "<none>"
            raise ValueRangeError(
                field_name,
                f"Enum value {value.text!r} is not one of the declared names: {known}",
            )
        return
    number = _integer_value(field_type, value, field_name)
    if not fits_unsigned(number, field_type.length):
        raise _width_overflow(field_name, number, field_type)


def check_bitfield_value(field_type: BitfieldType, value: Value, field_name: str) -> None:
    number = _integer_value(field_type, value, field_name)
    if not fits_unsigned(number, field_type.length):
        raise _width_overflow(field_name, number, field_type)


def check_ufixed_value(field_type: UFixedType, value: Value, field_name: str) -> None:
    if not isinstance(value, FloatValue):
        raise _mismatch(field_name, value, field_type)
    low, high = ufixed_bounds(field_type)
    if not low <= value.number <= high:
        raise _not_representable(field_name, value.number, field_type)


def check_sfixed_value(field_type: SFixedType, value: Value, field_name: str) -> None:
    if not isinstance(value, FloatValue):
        raise _mismatch(field_name, value, field_type)
    low, high = sfixed_bounds(field_type)
    if not low <= value.number <= high:
        raise _not_representable(field_name, value.number, field_type)


def _integer_value(field_type: object, value: Value, field_name: str) -> int:
    if isinstance(value, (UnsignedValue, SignedValue)):
        return value.number
    raise _mismatch(field_name, value, field_type)


def _mismatch(field_name: str, value: Value, field_type: object) -> ValueTypeMismatchError:
    return ValueTypeMismatchError(
        field_name,
        f"Provided value {value} doesn't match the field type {field_type}",
    )


def _width_overflow(field_name: str, number: int, field_type: Any) -> ValueRangeError:
    return ValueRangeError(
        field_name,
        f"Numeric value {number} requires more than {field_type.length} bits "
        f"specified by the field type {field_type}",
    )


def _not_representable(field_name: str, number: float, field_type: object) -> ValueRangeError:
    return ValueRangeError(
        field_name,
        f"Numeric value {number!r} cannot be represented by the field type {field_type}",
    )


# ---------------------------------------------------------------------------
# Footprints
# ---------------------------------------------------------------------------


def string_footprint(field_type: StringType, protocol: Protocol) -> int:
    return field_type.length


def bit_width_footprint(field_type: Any, protocol: Protocol) -> int:
    return bytes_for_bits(field_type.bit_width, protocol.data_min)


# ---------------------------------------------------------------------------
# Range annotations
# ---------------------------------------------------------------------------


def describe_string_range(field_type: StringType) -> str:
    return f"ascii, up to {field_type.length} bytes"


def describe_unsigned_range(field_type: UnsignedType) -> str:
    return f"0..{_format_power(field_type.length, minus_one=True)}"


def describe_signed_range(field_type: SignedType) -> str:
    exponent = field_type.length - 1
    return f"-{_format_power(exponent)}..{_format_power(exponent, minus_one=True)}"


def describe_enum_range(field_type: EnumType) -> str:
    if not field_type.codes:
        return f"0..{_format_power(field_type.length, minus_one=True)}"
    ordered = sorted(field_type.codes.items(), key=lambda item: (item[1], item[0]))
    return ", ".join(f"{name}={code}" for name, code in ordered)


def describe_bitfield_range(field_type: BitfieldType) -> str:
    if isinstance(field_type.bits, tuple):
        named = list(enumerate(field_type.bits))
        parts = [f"{index}: {name}" for index, name in named]
        first_reserved = len(named)
        last = field_type.length - 1
        if first_reserved == last:
            parts.append(f"{last}: {_RESERVED_BIT_NAME}")
        elif first_reserved < last:
            parts.append(f"{first_reserved}..{last}: {_RESERVED_BIT_NAME}")
        return ", ".join(parts)
    ordered = sorted(field_type.bits.items(), key=lambda item: (item[1], item[0]))
    return ", ".join(f"{index}: {name}" for name, index in ordered)


def describe_ufixed_range(field_type: UFixedType) -> str:
    low, high = ufixed_bounds(field_type)
    return f"{_format_real(low)}..{_format_real(high)}"


def describe_sfixed_range(field_type: SFixedType) -> str:
    low, high = sfixed_bounds(field_type)
    return f"{_format_real(low)}..{_format_real(high)}"


def _format_power(exponent: int, *, minus_one: bool = False) -> str:
    if exponent <= _MAX_RENDERED_BITS:
        value = (1 << exponent) - (1 if minus_one else 0)
        return str(value)
    return f"2^{exponent}-1" if minus_one else f"2^{exponent}"


def _format_real(value: float) -> str:
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer() and abs(value) < 2.0**53:
        return str(int(value))
    return repr(value)


def _pow2(exponent: int) -> float:
    try:
        return math.ldexp(1.0, exponent)
    except OverflowError:
        return math.inf


def _fixed_top(high: int, low: int) -> float:
    # 2^high - 2^low, saturating once 2^high leaves float range.
    top = _pow2(high)
    if math.isinf(top):
        return math.inf
    return top - _pow2(low)


LEAF_RULES: Final[dict[type[Any], LeafRule]] = {
    StringType: LeafRule(check_string_value, string_footprint, describe_string_range),
    EnumType: LeafRule(check_enum_value, bit_width_footprint, describe_enum_range),
    BitfieldType: LeafRule(check_bitfield_value, bit_width_footprint, describe_bitfield_range),
    UnsignedType: LeafRule(check_unsigned_value, bit_width_footprint, describe_unsigned_range),
    SignedType: LeafRule(check_signed_value, bit_width_footprint, describe_signed_range),
    UFixedType: LeafRule(check_ufixed_value, bit_width_footprint, describe_ufixed_range),
    SFixedType: LeafRule(check_sfixed_value, bit_width_footprint, describe_sfixed_range),
}


def rule_for(field_type: object) -> LeafRule:
    try:
        return LEAF_RULES[type(field_type)]
    except KeyError:
        raise TypeError(f"no leaf rule for field type {type(field_type).__name__}") from None


__all__ = [
    "LEAF_RULES",
    "LeafRule",
    "bit_width_footprint",
    "bytes_for_bits",
    "check_bitfield_value",
    "check_enum_value",
    "check_sfixed_value",
    "check_signed_value",
    "check_string_value",
    "check_ufixed_value",
    "check_unsigned_value",
    "describe_bitfield_range",
    "describe_enum_range",
    "describe_sfixed_range",
    "describe_signed_range",
    "describe_string_range",
    "describe_ufixed_range",
    "describe_unsigned_range",
    "fits_signed",
    "fits_unsigned",
    "rule_for",
    "sfixed_bounds",
    "string_footprint",
    "ufixed_bounds",
]
