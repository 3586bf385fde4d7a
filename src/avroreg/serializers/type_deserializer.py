"""Type deserialization helpers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Callable, Mapping as TypingMapping

from ..exceptions import TypeDefinitionError, UnknownTypeError
from .. import types as atypes

TypeParser = Callable[[str, Mapping[str, Any], str | None], atypes.AvroType]


class TypeDeserializer:
    """Parse decoded Avro schema JSON into `AvroType` instances.

    A deserializer instance tracks the named types defined so far, so it is
    meant for a single schema. Named types imported through references are
    passed in as `known_types` and are only ever referred to by name.
    """

    def __init__(
        self,
        *,
        known_types: TypingMapping[str, atypes.NamedType] | None = None,
        type_parsers: TypingMapping[str, TypeParser] | None = None,
    ) -> None:
        self._known_types: dict[str, atypes.NamedType] = dict(known_types or {})
        self._named_types: dict[str, atypes.NamedType] = {}
        self._defining: set[str] = set()
        self._type_parsers: dict[str, TypeParser] = (
            dict(type_parsers) if type_parsers is not None else {}
        )
        if not self._type_parsers:
            self._register_default_parsers()

    @property
    def named_types(self) -> dict[str, atypes.NamedType]:
        """Named types visible to the schema, imported ones included."""
        return {**self._known_types, **self._named_types}

    def register_parser(self, type_name: str, parser: TypeParser) -> None:
        """Register a parser callable for a complex type name."""
        self._type_parsers[type_name] = parser

    def deserialize(self, definition: Any) -> atypes.AvroType:
        """Parse a complete schema definition."""
        return self._parse(definition, namespace=None)

    # ---- Helpers -----------------------------------------------------------------
    def _register_default_parsers(self) -> None:
        self.register_parser("record", self._parse_record_type)
        self.register_parser("error", self._parse_record_type)
        self.register_parser("enum", self._parse_enum_type)
        self.register_parser("fixed", self._parse_fixed_type)
        self.register_parser("array", self._parse_array_type)
        self.register_parser("map", self._parse_map_type)

    def _parse(self, definition: Any, namespace: str | None) -> atypes.AvroType:
        if isinstance(definition, str):
            return self._parse_name(definition, namespace)
        if isinstance(definition, list):
            return atypes.Union(
                branches=tuple(self._parse(branch, namespace) for branch in definition)
            )
        if isinstance(definition, Mapping):
            return self._parse_object(definition, namespace)
        raise TypeDefinitionError(
            f"Schema must be a string, an object or an array, "
            f"not {type(definition).__name__}."
        )

    def _parse_name(self, name: str, namespace: str | None) -> atypes.AvroType:
        if name in atypes.PRIMITIVE_TYPES:
            return atypes.Primitive(name)
        return atypes.Reference(self._resolve_name(name, namespace))

    def _parse_object(
        self, definition: Mapping[str, Any], namespace: str | None
    ) -> atypes.AvroType:
        if "type" not in definition:
            raise TypeDefinitionError("Schema object is missing the 'type' attribute.")
        type_name = definition["type"]
        if not isinstance(type_name, str):
            # {"type": {...}} and {"type": [...]} wrap another schema.
            return self._parse(type_name, namespace)

        if type_name in atypes.PRIMITIVE_TYPES:
            return atypes.Primitive(
                type_name,
                logical_type=self._optional_str(definition, "logicalType"),
                precision=self._optional_int(definition, "precision"),
                scale=self._optional_int(definition, "scale"),
            )
        if (parser := self._type_parsers.get(type_name)) is not None:
            return parser(type_name, definition, namespace)
        return atypes.Reference(self._resolve_name(type_name, namespace))

    def _parse_record_type(
        self, type_name: str, definition: Mapping[str, Any], namespace: str | None
    ) -> atypes.Record:
        fullname, record_namespace = self._fullname(definition, namespace, type_name)
        raw_fields = definition.get("fields")
        if not isinstance(raw_fields, Sequence) or isinstance(raw_fields, str):
            raise TypeDefinitionError(f"Record {fullname!r} must declare a 'fields' array.")

        self._begin_definition(fullname)
        fields = tuple(
            self._parse_field(raw_field, record_namespace, fullname)
            for raw_field in raw_fields
        )
        record = atypes.Record(
            name=fullname,
            fields=fields,
            aliases=self._aliases(definition, record_namespace),
            doc=self._optional_str(definition, "doc"),
        )
        return self._end_definition(record)

    def _parse_field(
        self, raw_field: Any, namespace: str | None, record_name: str
    ) -> atypes.Field:
        if not isinstance(raw_field, Mapping):
            raise TypeDefinitionError(
                f"Fields of record {record_name!r} must be objects."
            )
        name = raw_field.get("name")
        if not isinstance(name, str):
            raise TypeDefinitionError(
                f"Field of record {record_name!r} is missing a string 'name'."
            )
        if "type" not in raw_field:
            raise TypeDefinitionError(
                f"Field {name!r} of record {record_name!r} is missing its 'type'."
            )
        aliases = raw_field.get("aliases", [])
        if not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases):
            raise TypeDefinitionError(f"Field {name!r} 'aliases' must be a list of strings.")
        return atypes.Field(
            name=name,
            type=self._parse(raw_field["type"], namespace),
            default=raw_field.get("default", atypes.NO_DEFAULT),
            aliases=tuple(aliases),
            doc=self._optional_str(raw_field, "doc"),
            order=raw_field.get("order", "ascending"),
        )

    def _parse_enum_type(
        self, type_name: str, definition: Mapping[str, Any], namespace: str | None
    ) -> atypes.Enum:
        fullname, enum_namespace = self._fullname(definition, namespace, type_name)
        symbols = definition.get("symbols")
        if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
            raise TypeDefinitionError(
                f"Enum {fullname!r} must declare 'symbols' as a list of strings."
            )
        self._begin_definition(fullname)
        enum_type = atypes.Enum(
            name=fullname,
            symbols=tuple(symbols),
            default=self._optional_str(definition, "default"),
            aliases=self._aliases(definition, enum_namespace),
            doc=self._optional_str(definition, "doc"),
        )
        return self._end_definition(enum_type)

    def _parse_fixed_type(
        self, type_name: str, definition: Mapping[str, Any], namespace: str | None
    ) -> atypes.Fixed:
        fullname, fixed_namespace = self._fullname(definition, namespace, type_name)
        if "size" not in definition:
            raise TypeDefinitionError(f"Fixed {fullname!r} must declare a 'size'.")
        self._begin_definition(fullname)
        fixed = atypes.Fixed(
            name=fullname,
            size=definition["size"],
            aliases=self._aliases(definition, fixed_namespace),
            logical_type=self._optional_str(definition, "logicalType"),
            precision=self._optional_int(definition, "precision"),
            scale=self._optional_int(definition, "scale"),
        )
        return self._end_definition(fixed)

    def _parse_array_type(
        self, type_name: str, definition: Mapping[str, Any], namespace: str | None
    ) -> atypes.Array:
        if "items" not in definition:
            raise TypeDefinitionError("Array schema must declare 'items'.")
        return atypes.Array(items=self._parse(definition["items"], namespace))

    def _parse_map_type(
        self, type_name: str, definition: Mapping[str, Any], namespace: str | None
    ) -> atypes.Map:
        if "values" not in definition:
            raise TypeDefinitionError("Map schema must declare 'values'.")
        return atypes.Map(values=self._parse(definition["values"], namespace))

    # ---- Names -------------------------------------------------------------------
    def _fullname(
        self, definition: Mapping[str, Any], namespace: str | None, type_name: str
    ) -> tuple[str, str | None]:
        name = definition.get("name")
        if not isinstance(name, str) or not name:
            raise TypeDefinitionError(f"Named type '{type_name}' requires a 'name'.")
        if "." in name:
            own_namespace, _, _ = name.rpartition(".")
            return name, own_namespace
        own_namespace = definition.get("namespace", namespace)
        if own_namespace is not None and not isinstance(own_namespace, str):
            raise TypeDefinitionError(f"'namespace' of {name!r} must be a string.")
        if own_namespace:
            return f"{own_namespace}.{name}", own_namespace
        return name, None

    def _aliases(
        self, definition: Mapping[str, Any], namespace: str | None
    ) -> tuple[str, ...]:
        aliases = definition.get("aliases", [])
        if not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases):
            raise TypeDefinitionError("'aliases' must be a list of strings.")
        return tuple(
            alias if "." in alias or not namespace else f"{namespace}.{alias}"
            for alias in aliases
        )

    def _resolve_name(self, name: str, namespace: str | None) -> str:
        candidates = [name] if "." in name or not namespace else [f"{namespace}.{name}", name]
        for candidate in candidates:
            if (
                candidate in self._defining
                or candidate in self._named_types
                or candidate in self._known_types
            ):
                return candidate
        raise UnknownTypeError(
            f"Unknown type: {name!r}.",
            suggestions=[
                "Define the named type before using it",
                "Add a schema reference to the subject that defines it",
            ],
        )

    def _begin_definition(self, fullname: str) -> None:
        if (
            fullname in self._defining
            or fullname in self._named_types
            or fullname in self._known_types
        ):
            raise TypeDefinitionError(f"Named type {fullname!r} is defined more than once.")
        self._defining.add(fullname)

    def _end_definition(self, named_type: atypes.NamedType) -> Any:
        self._defining.discard(named_type.name)
        self._named_types[named_type.name] = named_type
        return named_type

    # ---- Attributes --------------------------------------------------------------
    def _optional_str(self, definition: Mapping[str, Any], key: str) -> str | None:
        value = definition.get(key)
        if value is not None and not isinstance(value, str):
            raise TypeDefinitionError(f"'{key}' must be a string when specified.")
        return value

    def _optional_int(self, definition: Mapping[str, Any], key: str) -> int | None:
        value = definition.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise TypeDefinitionError(f"'{key}' must be an integer when specified.")
        return value
