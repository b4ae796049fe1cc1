"""Dataclass memory-map models with strict decoding and canonical encoding."""

from __future__ import annotations

import json
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, NoReturn, TypeVar

from memmap_doc.domain import parsing

if TYPE_CHECKING:
    from memmap_doc.elaboration.engine import ElaborationResult

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TModel = TypeVar("TModel", bound="CanonicalModel")

_MAX_TEXT = 8192

_FIELD_REQUIRED_KEYS = frozenset({"name", "type"})
_FIELD_OPTIONAL_KEYS = frozenset(
    {"address", "access", "contains", "value", "unit", "min", "max", "range"}
)


class DecodeError(ValueError):
    """Raised when a document value does not match the declared model shape."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class Access(StrEnum):
    READ = "r"
    WRITE = "w"
    READ_WRITE = "rw"


class CanonicalModel:
    """Mixin for dict/json encoding of document models."""

    def to_dict(self) -> dict[str, JSONValue]:
        _fail(self.__class__.__name__, "to_dict is not implemented for this model type")

    def to_json(self, *, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls: type[TModel], raw: str) -> TModel:
        if not isinstance(raw, str):
            _fail(cls.__name__, f"expected JSON string, got {type(raw).__name__}")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            _fail(cls.__name__, f"invalid JSON: {exc}")
        if not isinstance(parsed, dict):
            _fail(cls.__name__, "JSON root must be an object")
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls: type[TModel], data: Mapping[str, object]) -> TModel:
        _fail(cls.__name__, "from_dict is not implemented for this model type")


def _fail(path: str, message: str) -> NoReturn:
    raise DecodeError(path, message)


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str] | frozenset[str],
    optional: set[str] | frozenset[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = set(required) | set(optional or ())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_str(
    value: object,
    path: str,
    *,
    min_len: int = 1,
    max_len: int = _MAX_TEXT,
) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    if len(value) < min_len:
        _fail(path, f"must be at least {min_len} character(s)")
    if len(value) > max_len:
        _fail(path, f"must be <= {max_len} characters")
    return value


def _as_int(
    value: object,
    path: str,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        _fail(path, f"must be >= {minimum}")
    if maximum is not None and value > maximum:
        _fail(path, f"must be <= {maximum}")
    return value


def _as_float(value: object, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        _fail(path, f"expected number, got {type(value).__name__}")
    parsed = float(value)
    if not math.isfinite(parsed):
        _fail(path, "must be finite")
    return parsed


def _as_address(value: object, path: str) -> int:
    try:
        return parsing.parse_address(value)
    except ValueError as exc:
        _fail(path, str(exc))


def _as_access(value: object, path: str) -> Access:
    if isinstance(value, Access):
        return value
    if not isinstance(value, str):
        _fail(path, f"expected string enum value, got {type(value).__name__}")
    try:
        return Access(value)
    except ValueError:
        allowed = ", ".join(item.value for item in Access)
        _fail(path, f"invalid value {value!r}; expected one of: {allowed}")


# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SetType:
    """Group of other fields, typically a contiguous block of registers."""

    tag: ClassVar[str] = "set"

    def to_wire(self) -> JSONValue:
        return self.tag

    def __str__(self) -> str:
        return "set"


@dataclass(frozen=True, slots=True)
class StringType:
    """Fixed-length ASCII string; ``length`` is in bytes."""

    tag: ClassVar[str] = "string"
    length: int

    @property
    def bit_width(self) -> int:
        return self.length * 8

    @classmethod
    def from_wire(cls, payload: object, path: str) -> StringType:
        return cls(length=_as_int(payload, path, minimum=1, maximum=parsing.U64_MAX))

    def to_wire(self) -> JSONValue:
        return {self.tag: self.length}

    def __str__(self) -> str:
        return f"string({self.length} downto 1)"


@dataclass(frozen=True, slots=True)
class EnumType:
    """Named integer codes over ``length`` bits."""

    tag: ClassVar[str] = "enum"
    length: int
    codes: dict[str, int] = field(default_factory=dict)

    @property
    def bit_width(self) -> int:
        return self.length

    @classmethod
    def from_wire(cls, payload: object, path: str) -> EnumType:
        parsed = _expect_object(payload, path, required={"length", "map"})
        raw_map = parsed["map"]
        if not isinstance(raw_map, Mapping):
            _fail(f"{path}.map", f"expected object, got {type(raw_map).__name__}")
        codes: dict[str, int] = {}
        for name, code in raw_map.items():
            key = _as_str(name, f"{path}.map.<key>")
            codes[key] = _as_int(code, f"{path}.map.{key}", minimum=0, maximum=parsing.U32_MAX)
        return cls(
            length=_as_int(parsed["length"], f"{path}.length", minimum=1, maximum=parsing.U32_MAX),
            codes=codes,
        )

    def to_wire(self) -> JSONValue:
        return {self.tag: {"length": self.length, "map": dict(self.codes)}}

    def __str__(self) -> str:
        return f"enum({self.length - 1} downto 0)"


@dataclass(frozen=True, slots=True)
class BitfieldType:
    """
    Bitfield with named indices.

    ``bits`` is either a tuple of names counted from bit 0 (unlisted high bits
    are reserved) or a mapping of names to explicit bit indices.
    """

    tag: ClassVar[str] = "bitfield"
    length: int
    bits: tuple[str, ...] | dict[str, int] = ()

    @property
    def bit_width(self) -> int:
        return self.length

    @property
    def is_contiguous(self) -> bool:
        return isinstance(self.bits, tuple)

    @classmethod
    def from_wire(cls, payload: object, path: str) -> BitfieldType:
        parsed = _expect_object(payload, path, required={"length", "bits"})
        raw_bits = parsed["bits"]
        bits: tuple[str, ...] | dict[str, int]
        if isinstance(raw_bits, (list, tuple)):
            bits = tuple(
                _as_str(item, f"{path}.bits[{index}]") for index, item in enumerate(raw_bits)
            )
        elif isinstance(raw_bits, Mapping):
            discrete: dict[str, int] = {}
            for name, index in raw_bits.items():
                key = _as_str(name, f"{path}.bits.<key>")
                discrete[key] = _as_int(
                    index, f"{path}.bits.{key}", minimum=0, maximum=parsing.U64_MAX
                )
            bits = discrete
        else:
            _fail(f"{path}.bits", f"expected array or object, got {type(raw_bits).__name__}")
        return cls(
            length=_as_int(parsed["length"], f"{path}.length", minimum=1, maximum=parsing.U32_MAX),
            bits=bits,
        )

    def to_wire(self) -> JSONValue:
        bits: JSONValue = list(self.bits) if isinstance(self.bits, tuple) else dict(self.bits)
        return {self.tag: {"length": self.length, "bits": bits}}

    def __str__(self) -> str:
        return f"bitfield({self.length - 1} downto 0)"


@dataclass(frozen=True, slots=True)
class UnsignedType:
    tag: ClassVar[str] = "unsigned"
    length: int

    @property
    def bit_width(self) -> int:
        return self.length

    @classmethod
    def from_wire(cls, payload: object, path: str) -> UnsignedType:
        return cls(length=_as_int(payload, path, minimum=1, maximum=parsing.U32_MAX))

    def to_wire(self) -> JSONValue:
        return {self.tag: self.length}

    def __str__(self) -> str:
        return f"unsigned({self.length - 1} downto 0)"


@dataclass(frozen=True, slots=True)
class SignedType:
    tag: ClassVar[str] = "signed"
    length: int

    @property
    def bit_width(self) -> int:
        return self.length

    @classmethod
    def from_wire(cls, payload: object, path: str) -> SignedType:
        return cls(length=_as_int(payload, path, minimum=1, maximum=parsing.U32_MAX))

    def to_wire(self) -> JSONValue:
        return {self.tag: self.length}

    def __str__(self) -> str:
        return f"signed({self.length - 1} downto 0)"


def _fixed_bounds(payload: object, path: str) -> tuple[int, int]:
    parsed = _expect_object(payload, path, required={"high", "low"})
    high = _as_int(parsed["high"], f"{path}.high", minimum=parsing.I32_MIN, maximum=parsing.I32_MAX)
    low = _as_int(parsed["low"], f"{path}.low", minimum=parsing.I32_MIN, maximum=parsing.I32_MAX)
    if high < low:
        _fail(path, f"high ({high}) must be >= low ({low})")
    return high, low


@dataclass(frozen=True, slots=True)
class UFixedType:
    """
    Unsigned fixed point, ``ufixed(high downto low)``.

    The binary point sits ``low`` places from the least significant digit, so
    ``high=11, low=-4`` has a resolution of 2^-4.
    """

    tag: ClassVar[str] = "ufixed"
    high: int
    low: int

    @property
    def bit_width(self) -> int:
        return self.high - self.low + 1

    @classmethod
    def from_wire(cls, payload: object, path: str) -> UFixedType:
        high, low = _fixed_bounds(payload, path)
        return cls(high=high, low=low)

    def to_wire(self) -> JSONValue:
        return {self.tag: {"high": self.high, "low": self.low}}

    def __str__(self) -> str:
        return f"ufixed({self.high} downto {self.low})"


@dataclass(frozen=True, slots=True)
class SFixedType:
    """Signed (two's complement) fixed point, ``sfixed(high downto low)``."""

    tag: ClassVar[str] = "sfixed"
    high: int
    low: int

    @property
    def bit_width(self) -> int:
        return self.high - self.low + 1

    @classmethod
    def from_wire(cls, payload: object, path: str) -> SFixedType:
        high, low = _fixed_bounds(payload, path)
        return cls(high=high, low=low)

    def to_wire(self) -> JSONValue:
        return {self.tag: {"high": self.high, "low": self.low}}

    def __str__(self) -> str:
        return f"sfixed({self.high} downto {self.low})"


FieldType = (
    SetType
    | StringType
    | EnumType
    | BitfieldType
    | UnsignedType
    | SignedType
    | UFixedType
    | SFixedType
)
LeafType = StringType | EnumType | BitfieldType | UnsignedType | SignedType | UFixedType | SFixedType

FIELD_TYPE_CLASSES: tuple[type[Any], ...] = (
    SetType,
    StringType,
    EnumType,
    BitfieldType,
    UnsignedType,
    SignedType,
    UFixedType,
    SFixedType,
)
_PARAMETERIZED_TYPES: dict[str, type[Any]] = {
    cls.tag: cls for cls in FIELD_TYPE_CLASSES if cls is not SetType
}


def _as_field_type(value: object, path: str) -> FieldType:
    allowed = ", ".join(cls.tag for cls in FIELD_TYPE_CLASSES)
    if isinstance(value, str):
        if value == SetType.tag:
            return SetType()
        if value in _PARAMETERIZED_TYPES:
            _fail(path, f"type {value!r} requires parameters")
        _fail(path, f"unknown variant {value!r}; expected one of: {allowed}")
    if not isinstance(value, Mapping):
        _fail(path, f"expected string or object, got {type(value).__name__}")
    if len(value) != 1:
        _fail(path, f"expected exactly one type tag, got {sorted(str(key) for key in value)}")

    ((tag, payload),) = value.items()
    if tag == SetType.tag:
        _fail(path, "type 'set' takes no parameters")
    variant = _PARAMETERIZED_TYPES.get(tag) if isinstance(tag, str) else None
    if variant is None:
        _fail(path, f"unknown variant {tag!r}; expected one of: {allowed}")
    decoded: FieldType = variant.from_wire(payload, f"{path}.{tag}")
    return decoded


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StringValue:
    text: str

    def to_wire(self) -> JSONValue:
        return self.text

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class UnsignedValue:
    number: int

    def to_wire(self) -> JSONValue:
        return self.number

    def __str__(self) -> str:
        return str(self.number)


@dataclass(frozen=True, slots=True)
class SignedValue:
    number: int

    def to_wire(self) -> JSONValue:
        return self.number

    def __str__(self) -> str:
        return str(self.number)


@dataclass(frozen=True, slots=True)
class FloatValue:
    number: float

    def to_wire(self) -> JSONValue:
        return self.number

    def __str__(self) -> str:
        return repr(self.number)


Value = StringValue | UnsignedValue | SignedValue | FloatValue
IntegerValue = UnsignedValue | SignedValue


def _as_value(value: object, path: str) -> Value:
    if isinstance(value, bool):
        _fail(path, "expected string, integer or float, got bool")
    if isinstance(value, str):
        try:
            return StringValue(parsing.ensure_ascii(value))
        except ValueError as exc:
            _fail(path, str(exc))
    if isinstance(value, int):
        if value >= 0:
            if value > parsing.U64_MAX:
                _fail(path, f"integer {value} does not fit in u64")
            return UnsignedValue(value)
        if value < parsing.I64_MIN:
            _fail(path, f"integer {value} does not fit in i64")
        return SignedValue(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            _fail(path, "float values must be finite")
        return FloatValue(value)
    _fail(path, f"expected string, integer or float, got {type(value).__name__}")


# ---------------------------------------------------------------------------
# Document models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Protocol(CanonicalModel):
    """Address-space and granularity constraints for one memory map."""

    address_max: int
    data_min: int
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "address_max", _as_address(self.address_max, "Protocol.addressMax")
        )
        object.__setattr__(
            self,
            "data_min",
            _as_int(self.data_min, "Protocol.dataMin", minimum=1, maximum=parsing.U8_MAX),
        )
        if self.name is not None:
            object.__setattr__(self, "name", _as_str(self.name, "Protocol.name", min_len=0))

    @classmethod
    def from_dict(cls, data: Mapping[str, object], path: str = "Protocol") -> Protocol:
        parsed = _expect_object(
            data,
            path,
            required={"addressMax", "dataMin"},
            optional={"name"},
        )
        raw_name = parsed.get("name")
        return cls(
            name=None if raw_name is None else _as_str(raw_name, f"{path}.name", min_len=0),
            address_max=_as_address(parsed["addressMax"], f"{path}.addressMax"),
            data_min=_as_int(
                parsed["dataMin"], f"{path}.dataMin", minimum=1, maximum=parsing.U8_MAX
            ),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {}
        if self.name is not None:
            out["name"] = self.name
        out["addressMax"] = self.address_max
        out["dataMin"] = self.data_min
        return out


@dataclass(slots=True)
class Field(CanonicalModel):
    """
    One node of the register tree.

    ``address``, ``access`` and ``range`` are filled in place by elaboration;
    ``contains`` keeps the single-object or list shape it was declared with.
    """

    name: str
    field_type: FieldType
    address: int | None = None
    access: Access | None = None
    contains: Field | tuple[Field, ...] | None = None
    value: Value | None = None
    unit: str | None = None
    min: float | None = None
    max: float | None = None
    range: str | None = None

    def __post_init__(self) -> None:
        self.name = _as_str(self.name, "Field.name")
        if not isinstance(self.field_type, FIELD_TYPE_CLASSES):
            _fail("Field.type", f"expected a field type, got {type(self.field_type).__name__}")
        if self.address is not None:
            self.address = _as_address(self.address, "Field.address")
        if self.access is not None:
            self.access = _as_access(self.access, "Field.access")
        if isinstance(self.contains, list):
            self.contains = tuple(self.contains)

    @property
    def is_set(self) -> bool:
        return isinstance(self.field_type, SetType)

    @property
    def children(self) -> tuple[Field, ...]:
        if self.contains is None:
            return ()
        if isinstance(self.contains, Field):
            return (self.contains,)
        return self.contains

    def walk(self) -> Iterator[Field]:
        """Yield this field and every descendant in declaration (pre-)order."""

        yield self
        for child in self.children:
            yield from child.walk()

    @classmethod
    def from_dict(cls, data: Mapping[str, object], path: str = "Field") -> Field:
        parsed = _expect_object(
            data,
            path,
            required=_FIELD_REQUIRED_KEYS,
            optional=_FIELD_OPTIONAL_KEYS,
        )
        field_type = _as_field_type(parsed["type"], f"{path}.type")

        contains: Field | tuple[Field, ...] | None = None
        raw_contains = parsed.get("contains")
        if raw_contains is not None:
            if not isinstance(field_type, SetType):
                _fail(f"{path}.contains", "only valid for fields of type 'set'")
            contains = _as_contains(raw_contains, f"{path}.contains")

        raw_address = parsed.get("address")
        raw_access = parsed.get("access")
        raw_value = parsed.get("value")
        raw_unit = parsed.get("unit")
        raw_min = parsed.get("min")
        raw_max = parsed.get("max")

        return cls(
            name=_as_str(parsed["name"], f"{path}.name"),
            field_type=field_type,
            address=None if raw_address is None else _as_address(raw_address, f"{path}.address"),
            access=None if raw_access is None else _as_access(raw_access, f"{path}.access"),
            contains=contains,
            value=None if raw_value is None else _as_value(raw_value, f"{path}.value"),
            unit=None if raw_unit is None else _as_str(raw_unit, f"{path}.unit", min_len=0),
            min=None if raw_min is None else _as_float(raw_min, f"{path}.min"),
            max=None if raw_max is None else _as_float(raw_max, f"{path}.max"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {"name": self.name}
        if self.address is not None:
            out["address"] = self.address
        if self.access is not None:
            out["access"] = self.access.value
        out["type"] = self.field_type.to_wire()
        if isinstance(self.contains, Field):
            out["contains"] = self.contains.to_dict()
        elif self.contains is not None:
            out["contains"] = [child.to_dict() for child in self.contains]
        if self.value is not None:
            out["value"] = self.value.to_wire()
        if self.unit is not None:
            out["unit"] = self.unit
        if self.min is not None:
            out["min"] = self.min
        if self.max is not None:
            out["max"] = self.max
        if self.range is not None:
            out["range"] = self.range
        return out


def _as_contains(value: object, path: str) -> Field | tuple[Field, ...]:
    if isinstance(value, Mapping):
        return Field.from_dict(value, path)
    if isinstance(value, (list, tuple)):
        return tuple(Field.from_dict(item, f"{path}[{index}]") for index, item in enumerate(value))
    _fail(path, f"expected a field object or an array of field objects, got {type(value).__name__}")


@dataclass(slots=True)
class MemoryMap(CanonicalModel):
    """Document root: protocol constraints plus the root field flattened alongside."""

    protocol: Protocol
    root: Field

    @classmethod
    def from_dict(cls, data: Mapping[str, object], path: str = "MemoryMap") -> MemoryMap:
        if not isinstance(data, Mapping):
            _fail(path, f"expected object, got {type(data).__name__}")
        if "protocol" not in data:
            _fail(path, "missing required fields: ['protocol']")
        protocol_path = f"{path}.protocol"
        protocol = Protocol.from_dict(_as_mapping(data["protocol"], protocol_path), protocol_path)
        root_payload = {key: item for key, item in data.items() if key != "protocol"}
        return cls(protocol=protocol, root=Field.from_dict(root_payload, path))

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {"protocol": self.protocol.to_dict()}
        out.update(self.root.to_dict())
        return out

    def elaborate(self, *, logger: Any | None = None) -> ElaborationResult:
        """Resolve addresses, access and ranges of the whole tree in place."""

        from memmap_doc.elaboration.engine import elaborate

        return elaborate(self.root, self.protocol, logger=logger)


def _as_mapping(value: object, path: str) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    return value


__all__ = [
    "Access",
    "BitfieldType",
    "CanonicalModel",
    "DecodeError",
    "EnumType",
    "FIELD_TYPE_CLASSES",
    "Field",
    "FieldType",
    "FloatValue",
    "IntegerValue",
    "JSONValue",
    "LeafType",
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
]
