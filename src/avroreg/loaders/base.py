"""Base parser interface for `ParsedSchema` instances."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ..schema import ParsedSchema


class BaseSchemaParser(ABC):
    """Abstract base class for schema parsers consumed by the registry.

    Subclasses must implement `parse`, which turns schema source text into a
    `ParsedSchema` or raises `SchemaParseError`. A parser exposes the kind,
    the canonical form and the structural accessors the compatibility
    checker needs; it never encodes or decodes payloads.
    """

    @abstractmethod
    def parse(
        self, source: str, references: Sequence[ParsedSchema] = ()
    ) -> ParsedSchema:
        """Parse `source`, resolving named types imported from `references`.

        Returns:
            A validated immutable `ParsedSchema` instance.

        Raises:
            SchemaParseError: If `source` is not a valid schema.
        """
        ...
