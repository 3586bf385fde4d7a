"""Data type definitions for parsed Avro schemas.

This module provides the closed set of schema variants avroreg works with:
primitives, records, enums, arrays, maps, unions and fixed types, plus a
by-name `Reference` used when a named type is reused or refers to itself.
The compatibility checker dispatches over these classes instead of probing
raw JSON.

Example:
    >>> import avroreg.types as atypes
    >>>
    >>> order = atypes.Record(
    ...     name="com.shop.Order",
    ...     fields=(
    ...         atypes.Field(name="id", type=atypes.Primitive("long")),
    ...         atypes.Field(
    ...             name="currency",
    ...             type=atypes.Primitive("string"),
    ...             default="USD",
    ...         ),
    ...     ),
    ... )
    >>> str(order)
    "record com.shop.Order(id: long, currency: string = 'USD')"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import enum
from typing import Any

from .exceptions import TypeDefinitionError


__all__ = [
    "SchemaKind",
    "AvroType",
    "NamedType",
    "Primitive",
    "Field",
    "Record",
    "Enum",
    "Array",
    "Map",
    "Union",
    "Fixed",
    "Reference",
    "NO_DEFAULT",
    "PRIMITIVE_TYPES",
]


PRIMITIVE_TYPES = frozenset(
    {"null", "boolean", "int", "long", "float", "double", "bytes", "string"}
)

FIELD_ORDERS = frozenset({"ascending", "descending", "ignore"})


class _NoDefault:
    """Marker for a field without a default, since `None` is a valid default."""

    _instance: _NoDefault | None = None

    def __new__(cls) -> _NoDefault:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_DEFAULT"

    def __bool__(self) -> bool:
        return False


NO_DEFAULT: Any = _NoDefault()


class SchemaKind(str, enum.Enum):
    """Discriminator for the schema variants."""

    PRIMITIVE = "primitive"
    RECORD = "record"
    ENUM = "enum"
    ARRAY = "array"
    MAP = "map"
    UNION = "union"
    FIXED = "fixed"
    REFERENCE = "reference"


def _validate_fullname(name: str, kind: str) -> None:
    if not isinstance(name, str) or not name:
        raise TypeDefinitionError(f"{kind} 'name' must be a non-empty string.")
    for part in name.split("."):
        if not part or not (part[0].isalpha() or part[0] == "_"):
            raise TypeDefinitionError(f"Invalid {kind} name: {name!r}.")
        if not all(ch.isalnum() or ch == "_" for ch in part):
            raise TypeDefinitionError(f"Invalid {kind} name: {name!r}.")


class AvroType(ABC):
    """Abstract base class for all schema variants."""

    @property
    @abstractmethod
    def kind(self) -> SchemaKind:
        """The variant discriminator."""

    @property
    def type_name(self) -> str:
        """Short name used in diagnostics, e.g. `long` or `record Order`."""
        return self.kind.value

    def __str__(self) -> str:
        return self.type_name


class NamedType(AvroType):
    """Mixin for variants that define a (fully qualified) name."""

    name: str
    aliases: tuple[str, ...]

    @property
    def type_name(self) -> str:
        return f"{self.kind.value} {self.name}"

    def matches_name(self, other: str) -> bool:
        """True if `other` is this type's name or one of its aliases."""
        return other == self.name or other in self.aliases


@dataclass(frozen=True)
class Primitive(AvroType):
    """Avro primitive type with an optional logical type annotation.

    Args:
        name: One of null, boolean, int, long, float, double, bytes, string.
        logical_type: Optional logical type such as `date` or `decimal`.
        precision: Decimal precision, only meaningful for `decimal`.
        scale: Decimal scale, only meaningful for `decimal`.

    Raises:
        TypeDefinitionError: If `name` is not a primitive type name.
    """

    name: str
    logical_type: str | None = None
    precision: int | None = None
    scale: int | None = None

    def __post_init__(self):
        if self.name not in PRIMITIVE_TYPES:
            raise TypeDefinitionError(
                f"Primitive type must be one of {', '.join(sorted(PRIMITIVE_TYPES))}, "
                f"not {self.name!r}."
            )

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.PRIMITIVE

    @property
    def type_name(self) -> str:
        if self.logical_type:
            return f"{self.name}({self.logical_type})"
        return self.name


@dataclass(frozen=True)
class Field:
    """A named record field.

    `default` is `NO_DEFAULT` when the field declares none; an explicit JSON
    `null` default is stored as `None`.
    """

    name: str
    type: AvroType
    default: Any = NO_DEFAULT
    aliases: tuple[str, ...] = ()
    doc: str | None = field(default=None, compare=False)
    order: str = "ascending"

    def __post_init__(self):
        _validate_fullname(self.name, "Field")
        if "." in self.name:
            raise TypeDefinitionError(
                f"Field name {self.name!r} must not be namespace-qualified."
            )
        if self.order not in FIELD_ORDERS:
            raise TypeDefinitionError(
                f"Field 'order' must be one of ascending, descending, ignore, "
                f"not {self.order!r}."
            )

    @property
    def has_default(self) -> bool:
        """True if the field declares a default value."""
        return self.default is not NO_DEFAULT

    def matches_name(self, other: str) -> bool:
        return other == self.name or other in self.aliases

    def __str__(self) -> str:
        suffix = f" = {self.default!r}" if self.has_default else ""
        return f"{self.name}: {self.type}{suffix}"


@dataclass(frozen=True)
class Record(NamedType):
    """Avro record: an ordered list of named fields.

    Raises:
        TypeDefinitionError: If the name is invalid or field names repeat.
    """

    name: str
    fields: tuple[Field, ...]
    aliases: tuple[str, ...] = ()
    doc: str | None = field(default=None, compare=False)

    def __post_init__(self):
        _validate_fullname(self.name, "Record")
        seen: set[str] = set()
        for f in self.fields:
            if f.name in seen:
                raise TypeDefinitionError(
                    f"Duplicate field name {f.name!r} in record {self.name!r}."
                )
            seen.add(f.name)

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.RECORD

    @property
    def field_names(self) -> list[str]:
        """Field names in declaration order."""
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Field | None:
        """Return the field called `name`, or None."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def find_field_for(self, other: Field) -> Field | None:
        """Match `other` by name, then by `other`'s aliases."""
        exact = self.get_field(other.name)
        if exact is not None:
            return exact
        for alias in other.aliases:
            aliased = self.get_field(alias)
            if aliased is not None:
                return aliased
        return None

    def __str__(self) -> str:
        inner = ", ".join(str(f) for f in self.fields)
        return f"record {self.name}({inner})"


@dataclass(frozen=True)
class Enum(NamedType):
    """Avro enum with an optional fallback `default` symbol.

    A reader enum with a `default` can read symbols it does not know; those
    resolve to the default. Without one, unknown symbols are unreadable.

    Raises:
        TypeDefinitionError: If symbols repeat or `default` is not a symbol.
    """

    name: str
    symbols: tuple[str, ...]
    default: str | None = None
    aliases: tuple[str, ...] = ()
    doc: str | None = field(default=None, compare=False)

    def __post_init__(self):
        _validate_fullname(self.name, "Enum")
        if len(set(self.symbols)) != len(self.symbols):
            raise TypeDefinitionError(f"Duplicate symbols in enum {self.name!r}.")
        for symbol in self.symbols:
            if "." in symbol:
                raise TypeDefinitionError(f"Invalid enum symbol: {symbol!r}.")
            _validate_fullname(symbol, "Enum symbol")
        if self.default is not None and self.default not in self.symbols:
            raise TypeDefinitionError(
                f"Enum default {self.default!r} is not a symbol of {self.name!r}."
            )

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.ENUM

    def __str__(self) -> str:
        return f"enum {self.name}({', '.join(self.symbols)})"


@dataclass(frozen=True)
class Fixed(NamedType):
    """Avro fixed-size byte sequence."""

    name: str
    size: int
    aliases: tuple[str, ...] = ()
    logical_type: str | None = None
    precision: int | None = None
    scale: int | None = None

    def __post_init__(self):
        _validate_fullname(self.name, "Fixed")
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size < 0:
            raise TypeDefinitionError(
                f"Fixed 'size' must be a non-negative integer, not {self.size!r}."
            )

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.FIXED

    def __str__(self) -> str:
        return f"fixed {self.name}(size={self.size})"


@dataclass(frozen=True)
class Array(AvroType):
    """Avro array of `items`."""

    items: AvroType

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.ARRAY

    def __str__(self) -> str:
        return f"array<{self.items}>"


@dataclass(frozen=True)
class Map(AvroType):
    """Avro map from string keys to `values`."""

    values: AvroType

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.MAP

    def __str__(self) -> str:
        return f"map<{self.values}>"


@dataclass(frozen=True)
class Reference(AvroType):
    """A use of a named type by its full name.

    The first definition of a named type is stored inline; later uses and
    recursive self-references are `Reference`s resolved through
    `ParsedSchema.resolve`.
    """

    name: str

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.REFERENCE

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Union(AvroType):
    """Avro union of branch types.

    Raises:
        TypeDefinitionError: If the union is empty, nests another union, or
            repeats an unnamed type or a name.
    """

    branches: tuple[AvroType, ...]

    def __post_init__(self):
        if not self.branches:
            raise TypeDefinitionError("Union must declare at least one branch.")
        seen: set[str] = set()
        for branch in self.branches:
            if isinstance(branch, Union):
                raise TypeDefinitionError("Unions may not immediately contain unions.")
            key = _union_branch_key(branch)
            if key in seen:
                raise TypeDefinitionError(f"Duplicate type {key!r} in union.")
            seen.add(key)

    @property
    def kind(self) -> SchemaKind:
        return SchemaKind.UNION

    @property
    def is_nullable(self) -> bool:
        """True if one of the branches is `null`."""
        return any(
            isinstance(b, Primitive) and b.name == "null" for b in self.branches
        )

    def __str__(self) -> str:
        return f"union[{', '.join(str(b) for b in self.branches)}]"


def _union_branch_key(branch: AvroType) -> str:
    if isinstance(branch, (Record, Enum, Fixed, Reference)):
        return branch.name
    if isinstance(branch, Primitive):
        return branch.name
    return branch.kind.value
