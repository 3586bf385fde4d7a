"""Compatibility checking between two versions of a schema.

Compatibility is decided with Avro schema resolution: a transition is
FORWARD-safe when data written with the old schema can be read with the new
one, BACKWARD-safe when data written with the new schema can be read with the
old one, and FULL when both hold.

Instead of a bare boolean, every check returns a `CompatibilityResult` that
lists each violation with the rule it broke and where in the schema it sits.

Example:
    >>> from avroreg.loaders import parse_schema
    >>> old = parse_schema('''
    ... {"type": "record", "name": "Order", "fields": [
    ...   {"name": "id", "type": "int"},
    ...   {"name": "amount", "type": "float"}]}
    ... ''')
    >>> new = parse_schema('''
    ... {"type": "record", "name": "Order", "fields": [
    ...   {"name": "id", "type": "int"}]}
    ... ''')
    >>> result = check_compatibility(old, new, CompatibilityLevel.BACKWARD)
    >>> result.is_compatible
    False
    >>> result.issues[0].field
    'amount'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import singledispatchmethod
from typing import TYPE_CHECKING

from .exceptions import InvalidCompatibilityLevelError
from . import types as atypes

if TYPE_CHECKING:
    from .schema import ParsedSchema


# Writer type -> reader types that can read it.
PROMOTIONS: dict[str, frozenset[str]] = {
    "int": frozenset({"long", "float", "double"}),
    "long": frozenset({"float", "double"}),
    "float": frozenset({"double"}),
    "string": frozenset({"bytes"}),
    "bytes": frozenset({"string"}),
}


class CompatibilityLevel(str, Enum):
    """Compatibility policy attached to a subject."""

    NONE = "NONE"
    BACKWARD = "BACKWARD"
    FORWARD = "FORWARD"
    FULL = "FULL"

    @classmethod
    def coerce(cls, value: CompatibilityLevel | str) -> CompatibilityLevel:
        """Return `value` as a level, accepting names case-insensitively.

        Raises:
            InvalidCompatibilityLevelError: If `value` is not a known level.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise InvalidCompatibilityLevelError(
            f"Unknown compatibility level: {value!r}.",
            suggestions=[f"Use one of {', '.join(level.value for level in cls)}"],
        )

    @property
    def directions(self) -> tuple[CompatibilityLevel, ...]:
        """The single-direction checks this level is made of."""
        if self is CompatibilityLevel.FULL:
            return (CompatibilityLevel.FORWARD, CompatibilityLevel.BACKWARD)
        if self is CompatibilityLevel.NONE:
            return ()
        return (self,)


class CompatibilityRule(str, Enum):
    """The resolution rule a violation breaks."""

    READER_FIELD_MISSING_DEFAULT = "READER_FIELD_MISSING_DEFAULT"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    NAME_MISMATCH = "NAME_MISMATCH"
    FIXED_SIZE_MISMATCH = "FIXED_SIZE_MISMATCH"
    MISSING_ENUM_SYMBOLS = "MISSING_ENUM_SYMBOLS"
    MISSING_UNION_BRANCH = "MISSING_UNION_BRANCH"


@dataclass(frozen=True)
class CompatibilityIssue:
    """One compatibility violation.

    Args:
        rule: The rule that was violated.
        direction: FORWARD (new reads old) or BACKWARD (old reads new).
        path: Location in the reader schema, e.g. `/fields/address/fields/zip`.
        message: Human-readable explanation.
        field: Name of the innermost field involved, if any.
        symbols: Enum symbols the reader cannot read, if any.
        reader_type: Description of the reading type.
        writer_type: Description of the writing type.
    """

    rule: CompatibilityRule
    direction: CompatibilityLevel
    path: str
    message: str
    field: str | None = None
    symbols: tuple[str, ...] = ()
    reader_type: str | None = None
    writer_type: str | None = None

    def __str__(self) -> str:
        location = self.path or "/"
        return f"[{self.direction.value}] {self.rule.value} at {location}: {self.message}"


@dataclass(frozen=True)
class CompatibilityResult:
    """Outcome of a compatibility check."""

    level: CompatibilityLevel
    issues: tuple[CompatibilityIssue, ...] = ()

    @property
    def is_compatible(self) -> bool:
        return not self.issues

    @property
    def messages(self) -> list[str]:
        return [str(issue) for issue in self.issues]

    @property
    def fields(self) -> set[str]:
        """Names of the fields involved in any violation."""
        return {issue.field for issue in self.issues if issue.field is not None}

    def __bool__(self) -> bool:
        return self.is_compatible


def check_compatibility(
    old: ParsedSchema | None,
    new: ParsedSchema,
    level: CompatibilityLevel | str,
) -> CompatibilityResult:
    """Decide whether replacing `old` with `new` satisfies `level`.

    Args:
        old: The latest registered schema, or None for a brand-new subject.
        new: The candidate schema.
        level: The policy to enforce.

    Returns:
        A `CompatibilityResult`; compatible when there is no prior schema,
        when the canonical forms are identical, or when `level` is NONE.
    """
    level = CompatibilityLevel.coerce(level)
    if old is None or old.canonical == new.canonical:
        return CompatibilityResult(level=level)

    issues: list[CompatibilityIssue] = []
    for direction in level.directions:
        issues.extend(SchemaResolver.for_direction(old, new, direction).resolve())
    return CompatibilityResult(level=level, issues=tuple(issues))


class SchemaResolver:
    """Checks whether data written with `writer` can be read with `reader`.

    The resolver walks both schemas in parallel following Avro's resolution
    rules and collects every violation rather than stopping at the first.
    A (reader, writer) pair already being resolved is not entered again, so
    recursive named types terminate.
    """

    def __init__(
        self,
        reader: ParsedSchema,
        writer: ParsedSchema,
        direction: CompatibilityLevel,
        *,
        reader_label: str = "reader",
        writer_label: str = "writer",
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.direction = direction
        self.reader_label = reader_label
        self.writer_label = writer_label
        self._issues: list[CompatibilityIssue] = []
        self._in_progress: set[tuple[int, int]] = set()

    @classmethod
    def for_direction(
        cls, old: ParsedSchema, new: ParsedSchema, direction: CompatibilityLevel
    ) -> SchemaResolver:
        """Build the resolver for one direction of an old -> new transition."""
        if direction is CompatibilityLevel.FORWARD:
            return cls(new, old, direction, reader_label="new", writer_label="old")
        if direction is CompatibilityLevel.BACKWARD:
            return cls(old, new, direction, reader_label="old", writer_label="new")
        raise InvalidCompatibilityLevelError(
            f"Direction must be FORWARD or BACKWARD, not {direction.value}."
        )

    def resolve(self) -> list[CompatibilityIssue]:
        """Return every violation found; empty when the writer is readable."""
        self._issues = []
        self._in_progress = set()
        self._check(self.reader.root, self.writer.root, path="", field=None)
        return list(self._issues)

    # ---- Traversal ---------------------------------------------------------------
    def _check(
        self,
        reader_type: atypes.AvroType,
        writer_type: atypes.AvroType,
        *,
        path: str,
        field: str | None,
    ) -> None:
        reader_type = self.reader.resolve(reader_type)
        writer_type = self.writer.resolve(writer_type)

        # Only pairs still being resolved are skipped, so a named type reused
        # at another path is checked there too.
        key = (id(reader_type), id(writer_type))
        if key in self._in_progress:
            return
        self._in_progress.add(key)
        try:
            if isinstance(writer_type, atypes.Union):
                # Every branch the writer may have chosen must be readable.
                for branch in writer_type.branches:
                    self._check(reader_type, branch, path=path, field=field)
            else:
                self._read(reader_type, writer_type, path, field)
        finally:
            self._in_progress.discard(key)

    def _check_isolated(
        self,
        reader_type: atypes.AvroType,
        writer_type: atypes.AvroType,
        path: str,
        field: str | None,
    ) -> list[CompatibilityIssue]:
        """Run a check in isolation and return its issues without keeping them."""
        saved_issues, saved_in_progress = self._issues, self._in_progress
        self._issues, self._in_progress = [], set(saved_in_progress)
        try:
            self._check(reader_type, writer_type, path=path, field=field)
            return self._issues
        finally:
            self._issues, self._in_progress = saved_issues, saved_in_progress

    @singledispatchmethod
    def _read(
        self,
        reader_type: atypes.AvroType,
        writer_type: atypes.AvroType,
        path: str,
        field: str | None,
    ) -> None:
        raise TypeError(f"Cannot resolve reader type: {type(reader_type).__name__}.")

    @_read.register(atypes.Primitive)
    def _(self, reader_type: atypes.Primitive, writer_type, path, field) -> None:
        if isinstance(writer_type, atypes.Primitive) and (
            writer_type.name == reader_type.name
            or reader_type.name in PROMOTIONS.get(writer_type.name, ())
        ):
            return
        self._type_mismatch(reader_type, writer_type, path, field)

    @_read.register(atypes.Record)
    def _(self, reader_type: atypes.Record, writer_type, path, field) -> None:
        if not isinstance(writer_type, atypes.Record):
            self._type_mismatch(reader_type, writer_type, path, field)
            return
        if not self._names_match(reader_type, writer_type, path, field):
            return

        for reader_field in reader_type.fields:
            field_path = f"{path}/fields/{reader_field.name}"
            writer_field = writer_type.find_field_for(reader_field)
            if writer_field is None:
                if not reader_field.has_default:
                    self._add(
                        CompatibilityRule.READER_FIELD_MISSING_DEFAULT,
                        field_path,
                        f"Field {reader_field.name!r} of record {reader_type.name!r} "
                        f"has no default in the {self.reader_label} schema and is "
                        f"missing from the {self.writer_label} schema.",
                        field=reader_field.name,
                        reader_type=str(reader_field.type),
                    )
                continue
            self._check(
                reader_field.type, writer_field.type, path=field_path, field=reader_field.name
            )

    @_read.register(atypes.Enum)
    def _(self, reader_type: atypes.Enum, writer_type, path, field) -> None:
        if not isinstance(writer_type, atypes.Enum):
            self._type_mismatch(reader_type, writer_type, path, field)
            return
        if not self._names_match(reader_type, writer_type, path, field):
            return
        missing = tuple(s for s in writer_type.symbols if s not in reader_type.symbols)
        if missing and reader_type.default is None:
            self._add(
                CompatibilityRule.MISSING_ENUM_SYMBOLS,
                path,
                f"Enum {reader_type.name!r} in the {self.reader_label} schema lacks "
                f"symbol(s) {', '.join(missing)} used by the {self.writer_label} "
                "schema and declares no default symbol.",
                field=field,
                symbols=missing,
                reader_type=str(reader_type),
                writer_type=str(writer_type),
            )

    @_read.register(atypes.Fixed)
    def _(self, reader_type: atypes.Fixed, writer_type, path, field) -> None:
        if not isinstance(writer_type, atypes.Fixed):
            self._type_mismatch(reader_type, writer_type, path, field)
            return
        if not self._names_match(reader_type, writer_type, path, field):
            return
        if reader_type.size != writer_type.size:
            self._add(
                CompatibilityRule.FIXED_SIZE_MISMATCH,
                path,
                f"Fixed {reader_type.name!r} has size {reader_type.size} in the "
                f"{self.reader_label} schema but {writer_type.size} in the "
                f"{self.writer_label} schema.",
                field=field,
                reader_type=str(reader_type),
                writer_type=str(writer_type),
            )

    @_read.register(atypes.Array)
    def _(self, reader_type: atypes.Array, writer_type, path, field) -> None:
        if not isinstance(writer_type, atypes.Array):
            self._type_mismatch(reader_type, writer_type, path, field)
            return
        self._check(reader_type.items, writer_type.items, path=f"{path}/items", field=field)

    @_read.register(atypes.Map)
    def _(self, reader_type: atypes.Map, writer_type, path, field) -> None:
        if not isinstance(writer_type, atypes.Map):
            self._type_mismatch(reader_type, writer_type, path, field)
            return
        self._check(
            reader_type.values, writer_type.values, path=f"{path}/values", field=field
        )

    @_read.register(atypes.Union)
    def _(self, reader_type: atypes.Union, writer_type, path, field) -> None:
        for branch in reader_type.branches:
            if not self._check_isolated(branch, writer_type, path, field):
                return
        self._add(
            CompatibilityRule.MISSING_UNION_BRANCH,
            path,
            f"No branch of {reader_type} in the {self.reader_label} schema can read "
            f"{self.writer_label} type {writer_type.type_name}.",
            field=field,
            reader_type=str(reader_type),
            writer_type=str(writer_type),
        )

    # ---- Helpers -----------------------------------------------------------------
    def _names_match(
        self,
        reader_type: atypes.NamedType,
        writer_type: atypes.NamedType,
        path: str,
        field: str | None,
    ) -> bool:
        if reader_type.matches_name(writer_type.name):
            return True
        self._add(
            CompatibilityRule.NAME_MISMATCH,
            path,
            f"{reader_type.type_name} in the {self.reader_label} schema cannot read "
            f"{writer_type.type_name} from the {self.writer_label} schema.",
            field=field,
            reader_type=reader_type.type_name,
            writer_type=writer_type.type_name,
        )
        return False

    def _type_mismatch(
        self,
        reader_type: atypes.AvroType,
        writer_type: atypes.AvroType,
        path: str,
        field: str | None,
    ) -> None:
        subject = f"Field {field!r}" if field else "Schema"
        self._add(
            CompatibilityRule.TYPE_MISMATCH,
            path,
            f"{subject} has type {writer_type.type_name} in the {self.writer_label} "
            f"schema, which cannot be read as {reader_type.type_name} by the "
            f"{self.reader_label} schema.",
            field=field,
            reader_type=reader_type.type_name,
            writer_type=writer_type.type_name,
        )

    def _add(
        self,
        rule: CompatibilityRule,
        path: str,
        message: str,
        **details,
    ) -> None:
        self._issues.append(
            CompatibilityIssue(
                rule=rule, direction=self.direction, path=path, message=message, **details
            )
        )
