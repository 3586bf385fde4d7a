"""Entry points for parsing Avro schemas.

- `parse_schema`: Parse schema source text (JSON or YAML).
- `from_dict`: Parse an already-decoded schema definition.

Both return a validated immutable `ParsedSchema`.
"""

from __future__ import annotations

from typing import Any, Sequence

from ..schema import ParsedSchema
from .avro_loader import AvroSchemaParser
from .base import BaseSchemaParser

__all__ = [
    "parse_schema",
    "from_dict",
    "AvroSchemaParser",
    "BaseSchemaParser",
]


def parse_schema(source: str, references: Sequence[ParsedSchema] = ()) -> ParsedSchema:
    """Parse schema source text.

    Args:
        source: Avro schema as JSON or YAML text.
        references: Parsed schemas whose named types `source` may use.

    Returns:
        A validated immutable `ParsedSchema` instance.

    Example:
        >>> parsed = parse_schema('{"type": "enum", "name": "Suit", "symbols": ["HEARTS"]}')
        >>> parsed.symbols
        ('HEARTS',)
    """
    return AvroSchemaParser().parse(source, references)


def from_dict(definition: Any, references: Sequence[ParsedSchema] = ()) -> ParsedSchema:
    """Parse a decoded schema definition (dict, list or type-name string).

    Example:
        >>> parsed = from_dict({"type": "array", "items": "string"})
        >>> parsed.kind
        <SchemaKind.ARRAY: 'array'>
    """
    return AvroSchemaParser().parse_definition(definition, references)
