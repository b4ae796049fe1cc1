"""Typed failures raised while elaborating a memory map."""

from __future__ import annotations


class ElaborationError(ValueError):
    """Base class for every terminal elaboration failure."""

    def __init__(self, field_name: str, message: str) -> None:
        self.field_name = field_name
        super().__init__(message)


class SchemaError(ElaborationError):
    """Structural contract violated, e.g. a ``set`` declared without ``contains``."""


class ValueTypeMismatchError(ElaborationError):
    """A default value's variant does not belong to the field type's family."""


class ValueRangeError(ElaborationError):
    """A default value does not fit the declared width, length or fixed-point range."""


class AddressOverflowError(ElaborationError):
    """A field's resolved address plus footprint exceeds the protocol maximum address."""

    def __init__(
        self,
        field_name: str,
        *,
        address: int,
        footprint: int,
        address_max: int,
    ) -> None:
        self.address = address
        self.footprint = footprint
        self.address_max = address_max
        super().__init__(
            field_name,
            f"Field {field_name} with address {address} and length {footprint} would "
            f"overflow the protocol maximum address {address_max}",
        )


__all__ = [
    "AddressOverflowError",
    "ElaborationError",
    "SchemaError",
    "ValueRangeError",
    "ValueTypeMismatchError",
]
