"""Parses Avro schema source text into a `ParsedSchema`."""

from __future__ import annotations

import copy
import json
from typing import TYPE_CHECKING, Any, Sequence

import yaml
from fastavro.schema import parse_schema as fastavro_parse_schema

from ..exceptions import SchemaParseError
from ..schema import ParsedSchema
from ..serializers import TypeDeserializer, TypeSerializer
from .base import BaseSchemaParser

if TYPE_CHECKING:
    from .. import types as atypes


class AvroSchemaParser(BaseSchemaParser):
    """Parses Avro schemas written as JSON (`.avsc`) or as YAML.

    Parsing runs in three steps: the source is decoded with
    `json.loads`, falling back to `yaml.safe_load` for sources that are not
    JSON, the decoded structure is turned into the typed variant model, and
    `fastavro` validates the Avro rules the model does not cover, such as
    defaults matching their field types.
    """

    def __init__(self, *, validate_with_fastavro: bool = True) -> None:
        """Initializes the parser.

        Args:
            validate_with_fastavro: Run `fastavro.schema.parse_schema` on the
                decoded definition. Defaults to True.
        """
        self.validate_with_fastavro = validate_with_fastavro
        self._serializer = TypeSerializer()

    def parse(
        self, source: str, references: Sequence[ParsedSchema] = ()
    ) -> ParsedSchema:
        """Parses the source and builds the schema.

        Returns:
            A `ParsedSchema` instance.

        Raises:
            SchemaParseError: If the source cannot be decoded, or does not
                describe a valid Avro schema.
        """
        definition = self._decode(source)
        return self.parse_definition(definition, references)

    def parse_definition(
        self, definition: Any, references: Sequence[ParsedSchema] = ()
    ) -> ParsedSchema:
        """Builds a `ParsedSchema` from already-decoded schema JSON."""
        known_types: dict[str, atypes.NamedType] = {}
        for reference in references:
            known_types.update(reference.named_types)

        deserializer = TypeDeserializer(known_types=known_types)
        root = deserializer.deserialize(definition)

        if self.validate_with_fastavro:
            self._validate(definition, references)

        try:
            canonical = self._serializer.canonical_form(root)
        except (TypeError, ValueError) as e:
            raise SchemaParseError(
                f"Schema contains a value that cannot be represented as JSON: {e}"
            ) from e

        return ParsedSchema(
            root=root,
            named_types=deserializer.named_types,
            canonical=canonical,
            definition=definition,
            dependencies=tuple(references),
        )

    def _decode(self, source: str) -> Any:
        if not isinstance(source, str):
            raise SchemaParseError(
                f"Schema source must be a string, not {type(source).__name__}."
            )
        if not source.strip():
            raise SchemaParseError("Schema source is empty.")
        try:
            definition = json.loads(source)
        except json.JSONDecodeError:
            # YAML 1.1 reads JSON numbers such as 1e10 as strings.
            try:
                definition = yaml.safe_load(source)
            except yaml.YAMLError as e:
                raise SchemaParseError(
                    f"Schema source is not valid JSON or YAML: {e}"
                ) from e
        if definition is None:
            raise SchemaParseError("Schema source did not contain a schema.")
        return definition

    def _validate(self, definition: Any, references: Sequence[ParsedSchema]) -> None:
        named_schemas: dict[str, Any] = {}
        seen: set[int] = set()
        for reference in references:
            self._register_dependency(reference, named_schemas, seen)
        try:
            fastavro_parse_schema(copy.deepcopy(definition), named_schemas=named_schemas)
        except Exception as e:
            raise SchemaParseError(f"Invalid Avro schema: {e}") from e

    def _register_dependency(
        self, schema: ParsedSchema, named_schemas: dict[str, Any], seen: set[int]
    ) -> None:
        if id(schema) in seen or schema.definition is None:
            return
        seen.add(id(schema))
        for dependency in schema.dependencies:
            self._register_dependency(dependency, named_schemas, seen)
        try:
            fastavro_parse_schema(copy.deepcopy(schema.definition), named_schemas=named_schemas)
        except Exception as e:
            raise SchemaParseError(f"Referenced schema {schema.name!r} is invalid: {e}") from e
