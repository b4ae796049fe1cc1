"""Pure validators used at the document decode boundary."""

from __future__ import annotations

import string
from typing import Final

U8_MAX: Final[int] = (1 << 8) - 1
U32_MAX: Final[int] = (1 << 32) - 1
U64_MAX: Final[int] = (1 << 64) - 1
I32_MIN: Final[int] = -(1 << 31)
I32_MAX: Final[int] = (1 << 31) - 1
I64_MIN: Final[int] = -(1 << 63)
I64_MAX: Final[int] = (1 << 63) - 1

HEX_PREFIX: Final[str] = "0x"
HEX_SEPARATOR: Final[str] = "_"
ADDRESS_EXPECTATION: Final[str] = '"0x" prefixed hex string or u64'

_HEX_DIGITS: Final[frozenset[str]] = frozenset(string.hexdigits)

__all__ = [
    "ADDRESS_EXPECTATION",
    "HEX_PREFIX",
    "HEX_SEPARATOR",
    "I32_MAX",
    "I32_MIN",
    "I64_MAX",
    "I64_MIN",
    "U32_MAX",
    "U64_MAX",
    "U8_MAX",
    "ensure_ascii",
    "format_address",
    "parse_address",
]


def parse_address(value: object) -> int:
    """
    Parse an address-like value into an unsigned 64-bit integer.

    Accepts a bare non-negative integer or a ``0x`` prefixed hex string whose
    digits may be grouped with ``_`` for readability (``0xFFFF_FFFF``).
    """

    if isinstance(value, bool):
        raise ValueError(f"invalid type: boolean `{value}`, expected {ADDRESS_EXPECTATION}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"invalid value: integer `{value}`, expected {ADDRESS_EXPECTATION}")
        if value > U64_MAX:
            raise ValueError(f"invalid value: integer `{value}` does not fit in u64")
        return value
    if isinstance(value, str):
        if value.startswith(HEX_PREFIX):
            digits = value[len(HEX_PREFIX) :].replace(HEX_SEPARATOR, "")
            if digits and all(char in _HEX_DIGITS for char in digits):
                parsed = int(digits, 16)
                if parsed <= U64_MAX:
                    return parsed
        raise ValueError(f'invalid value: string "{value}", expected {ADDRESS_EXPECTATION}')
    raise ValueError(f"invalid type: {type(value).__name__}, expected {ADDRESS_EXPECTATION}")


def ensure_ascii(value: str) -> str:
    """Return ``value`` unchanged when it only holds ASCII characters."""

    if not value.isascii():
        raise ValueError(f"string {value} contains non-ascii characters")
    return value


def format_address(value: int) -> str:
    return f"{value:#x}"
