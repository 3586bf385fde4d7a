from datetime import datetime, timezone

import pytest

from avroreg.exceptions import TypeDefinitionError, UnknownTypeError
from avroreg.loaders import parse_schema
from avroreg.schema import SchemaRecord, SchemaReference
from avroreg.types import Reference, SchemaKind

ORDER = """
{"type": "record", "name": "Order", "namespace": "com.shop",
 "fields": [
   {"name": "id", "type": "long"},
   {"name": "next", "type": ["null", "Order"], "default": null}
 ]}
"""


class TestSchemaReference:
    def test_str(self):
        ref = SchemaReference(name="com.shop.Address", subject="address", version=2)
        assert str(ref) == "com.shop.Address=address@2"

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"name": "", "subject": "s", "version": 1}, "'name'"),
            ({"name": "A", "subject": "", "version": 1}, "'subject'"),
            ({"name": "A", "subject": "s", "version": "1"}, "'version'"),
            ({"name": "A", "subject": "s", "version": True}, "'version'"),
        ],
    )
    def test_invalid_reference_raises_error(self, kwargs, message):
        with pytest.raises(TypeDefinitionError, match=message):
            SchemaReference(**kwargs)


class TestParsedSchema:
    def test_record_accessors(self):
        parsed = parse_schema(ORDER)
        assert parsed.kind is SchemaKind.RECORD
        assert parsed.name == "com.shop.Order"
        assert [f.name for f in parsed.fields] == ["id", "next"]
        assert parsed.symbols == ()
        assert parsed.get_field("id").type.name == "long"
        assert parsed.get_field("missing") is None

    def test_resolve_recursive_reference(self):
        parsed = parse_schema(ORDER)
        next_type = parsed.get_field("next").type
        assert parsed.resolve(next_type.branches[1]) is parsed.resolve(parsed.root)

    def test_resolve_unknown_reference_raises_error(self):
        parsed = parse_schema(ORDER)
        with pytest.raises(UnknownTypeError, match="'com.shop.Missing'"):
            parsed.resolve(Reference("com.shop.Missing"))

    def test_named_types_are_read_only(self):
        parsed = parse_schema(ORDER)
        with pytest.raises(TypeError):
            parsed.named_types["x"] = None  # type: ignore[index]

    def test_enum_accessors(self):
        parsed = parse_schema('{"type": "enum", "name": "Suit", "symbols": ["HEARTS"]}')
        assert parsed.kind is SchemaKind.ENUM
        assert parsed.symbols == ("HEARTS",)
        assert parsed.fields == ()

    def test_primitive_has_no_name(self):
        parsed = parse_schema('"string"')
        assert parsed.kind is SchemaKind.PRIMITIVE
        assert parsed.name is None

    def test_equality_ignores_definition(self):
        a = parse_schema('{"type": "array", "items": "int"}')
        b = parse_schema('{"items": "int", "type": "array"}')
        assert a == b


class TestSchemaRecord:
    def test_properties_and_str(self):
        parsed = parse_schema(ORDER)
        record = SchemaRecord(
            id=7,
            subject="orders",
            version=3,
            schema_source=ORDER,
            parsed=parsed,
            fingerprint="ab" * 32,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            references=(SchemaReference("com.shop.Address", "address", 1),),
        )
        assert record.canonical == parsed.canonical
        assert record.kind is SchemaKind.RECORD
        text = str(record)
        assert text.startswith("schema orders(version=3)(")
        assert "id=7" in text
        assert "fingerprint=abababababababab" in text
        assert "references=[com.shop.Address=address@1]" in text

    def test_record_is_immutable(self):
        record = SchemaRecord(
            id=1,
            subject="s",
            version=1,
            schema_source='"int"',
            parsed=parse_schema('"int"'),
            fingerprint="00",
            created_at=datetime.now(timezone.utc),
        )
        with pytest.raises(AttributeError):
            record.version = 2  # type: ignore[misc]
