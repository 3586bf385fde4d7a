"""Core schema data structures for avroreg.

This module defines the parsed representation of a schema handed to the
registry by the parser, and the immutable record the registry keeps for each
registered version.

Example:
    >>> from avroreg.loaders import parse_schema
    >>> parsed = parse_schema('''
    ... {"type": "record", "name": "Order",
    ...  "fields": [{"name": "id", "type": "long"}]}
    ... ''')
    >>> parsed.kind
    <SchemaKind.RECORD: 'record'>
    >>> [f.name for f in parsed.fields]
    ['id']
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from .exceptions import TypeDefinitionError, UnknownTypeError
from . import types as atypes


@dataclass(frozen=True)
class SchemaReference:
    """A named pointer from one schema to a registered version of another subject.

    The registry does not own referenced schemas; it only checks that the
    subject/version exists when the referencing schema is registered, and
    makes the referenced named types visible to the parser.

    Example:
        >>> SchemaReference(name="com.shop.Address", subject="address", version=1)
        SchemaReference(name='com.shop.Address', subject='address', version=1)
    """

    name: str
    subject: str
    version: int

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise TypeDefinitionError("Reference 'name' must be a non-empty string.")
        if not isinstance(self.subject, str) or not self.subject:
            raise TypeDefinitionError("Reference 'subject' must be a non-empty string.")
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise TypeDefinitionError("Reference 'version' must be an integer.")

    def __str__(self) -> str:
        return f"{self.name}={self.subject}@{self.version}"


@dataclass(frozen=True)
class ParsedSchema:
    """A validated, canonicalized Avro schema.

    Args:
        root: The top-level schema variant.
        named_types: Every named type visible to this schema by full name,
            including types imported through references.
        canonical: Canonical JSON form, stable under whitespace, key order
            and documentation changes.
        definition: The decoded schema JSON as submitted.
        dependencies: Parsed schemas this one imports named types from.
    """

    root: atypes.AvroType
    named_types: Mapping[str, atypes.NamedType]
    canonical: str
    definition: Any = field(default=None, compare=False, repr=False)
    dependencies: tuple[ParsedSchema, ...] = field(
        default=(), compare=False, repr=False
    )

    def __post_init__(self):
        object.__setattr__(self, "named_types", MappingProxyType(dict(self.named_types)))

    @property
    def kind(self) -> atypes.SchemaKind:
        """Variant discriminator of the (resolved) top-level schema."""
        return self.resolve(self.root).kind

    def resolve(self, avro_type: atypes.AvroType) -> atypes.AvroType:
        """Dereference `Reference`s to the named type they point to.

        Raises:
            UnknownTypeError: If the name is not defined for this schema.
        """
        if isinstance(avro_type, atypes.Reference):
            try:
                return self.named_types[avro_type.name]
            except KeyError:
                raise UnknownTypeError(
                    f"Type {avro_type.name!r} is not defined in this schema."
                ) from None
        return avro_type

    @property
    def fields(self) -> tuple[atypes.Field, ...]:
        """Fields of a record schema; empty for every other kind."""
        root = self.resolve(self.root)
        if isinstance(root, atypes.Record):
            return root.fields
        return ()

    @property
    def symbols(self) -> tuple[str, ...]:
        """Symbols of an enum schema; empty for every other kind."""
        root = self.resolve(self.root)
        if isinstance(root, atypes.Enum):
            return root.symbols
        return ()

    @property
    def name(self) -> str | None:
        """Full name of a named top-level schema."""
        root = self.resolve(self.root)
        if isinstance(root, atypes.NamedType):
            return root.name
        return None

    def get_field(self, name: str) -> atypes.Field | None:
        root = self.resolve(self.root)
        if isinstance(root, atypes.Record):
            return root.get_field(name)
        return None

    def __str__(self) -> str:
        return str(self.root)


@dataclass(frozen=True)
class SchemaRecord:
    """One registered, immutable schema version.

    Args:
        id: Registry-wide unique schema id, never reused.
        subject: Subject this version belongs to.
        version: 1-based position in the subject's ledger.
        schema_source: The submitted schema text, verbatim.
        parsed: Parsed schema, owned by this record and never mutated.
        fingerprint: Content identifier of the canonical form.
        created_at: Registration timestamp.
        references: Schemas this version depends on.
    """

    id: int
    subject: str
    version: int
    schema_source: str
    parsed: ParsedSchema = field(repr=False)
    fingerprint: str
    created_at: datetime
    references: tuple[SchemaReference, ...] = ()

    @property
    def canonical(self) -> str:
        return self.parsed.canonical

    @property
    def kind(self) -> atypes.SchemaKind:
        return self.parsed.kind

    def __str__(self) -> str:
        details = [
            f"id={self.id}",
            f"fingerprint={self.fingerprint[:16]}",
            f"created_at={self.created_at.isoformat()}",
        ]
        if self.references:
            details.append(f"references=[{', '.join(map(str, self.references))}]")
        body = textwrap.indent(",\n".join(details), "  ")
        return f"schema {self.subject}(version={self.version})(\n{body}\n)"
