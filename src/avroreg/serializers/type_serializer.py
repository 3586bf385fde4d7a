"""Serialize `AvroType` instances into canonical JSON."""

from __future__ import annotations

import json
from functools import singledispatchmethod
from typing import Any

from .. import types as atypes


class TypeSerializer:
    """Serialize schema variants into a canonical, order-stable structure.

    The canonical structure keeps everything that affects how data is read
    (names, field order, defaults, aliases, symbols, sizes, logical types)
    and drops documentation. Named types are emitted with their full names.
    """

    def canonical_form(self, avro_type: atypes.AvroType) -> str:
        """Return the canonical JSON text of `avro_type`.

        Object keys are sorted and no insignificant whitespace is emitted, so
        two sources differing only in formatting, key order, `doc` strings or
        short-vs-full names yield the same text.
        """
        return json.dumps(
            self.serialize(avro_type),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @singledispatchmethod
    def serialize(self, avro_type: atypes.AvroType) -> Any:
        raise TypeError(f"Cannot serialize type: {type(avro_type).__name__}.")

    @serialize.register(atypes.Primitive)
    def _(self, avro_type: atypes.Primitive) -> Any:
        if avro_type.logical_type is None:
            return avro_type.name
        payload: dict[str, Any] = {
            "type": avro_type.name,
            "logicalType": avro_type.logical_type,
        }
        self._add_decimal_params(payload, avro_type.precision, avro_type.scale)
        return payload

    @serialize.register(atypes.Record)
    def _(self, avro_type: atypes.Record) -> Any:
        payload: dict[str, Any] = {
            "type": "record",
            "name": avro_type.name,
            "fields": [self._serialize_field(f) for f in avro_type.fields],
        }
        if avro_type.aliases:
            payload["aliases"] = sorted(avro_type.aliases)
        return payload

    @serialize.register(atypes.Enum)
    def _(self, avro_type: atypes.Enum) -> Any:
        payload: dict[str, Any] = {
            "type": "enum",
            "name": avro_type.name,
            "symbols": list(avro_type.symbols),
        }
        if avro_type.default is not None:
            payload["default"] = avro_type.default
        if avro_type.aliases:
            payload["aliases"] = sorted(avro_type.aliases)
        return payload

    @serialize.register(atypes.Fixed)
    def _(self, avro_type: atypes.Fixed) -> Any:
        payload: dict[str, Any] = {
            "type": "fixed",
            "name": avro_type.name,
            "size": avro_type.size,
        }
        if avro_type.aliases:
            payload["aliases"] = sorted(avro_type.aliases)
        if avro_type.logical_type is not None:
            payload["logicalType"] = avro_type.logical_type
            self._add_decimal_params(payload, avro_type.precision, avro_type.scale)
        return payload

    @serialize.register(atypes.Array)
    def _(self, avro_type: atypes.Array) -> Any:
        return {"type": "array", "items": self.serialize(avro_type.items)}

    @serialize.register(atypes.Map)
    def _(self, avro_type: atypes.Map) -> Any:
        return {"type": "map", "values": self.serialize(avro_type.values)}

    @serialize.register(atypes.Union)
    def _(self, avro_type: atypes.Union) -> Any:
        return [self.serialize(branch) for branch in avro_type.branches]

    @serialize.register(atypes.Reference)
    def _(self, avro_type: atypes.Reference) -> Any:
        return avro_type.name

    # ---- Helpers -----------------------------------------------------------------
    def _serialize_field(self, field: atypes.Field) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": field.name,
            "type": self.serialize(field.type),
        }
        if field.has_default:
            payload["default"] = field.default
        if field.aliases:
            payload["aliases"] = sorted(field.aliases)
        if field.order != "ascending":
            payload["order"] = field.order
        return payload

    def _add_decimal_params(
        self, payload: dict[str, Any], precision: int | None, scale: int | None
    ) -> None:
        if precision is not None:
            payload["precision"] = precision
        if scale is not None:
            payload["scale"] = scale
