import json

import pytest

from avroreg.compatibility import (
    CompatibilityLevel,
    CompatibilityResult,
    CompatibilityRule,
    SchemaResolver,
    check_compatibility,
)
from avroreg.exceptions import InvalidCompatibilityLevelError
from avroreg.loaders import parse_schema


def _record(*fields, name="Order", **extra):
    return parse_schema(
        json.dumps({"type": "record", "name": name, "fields": list(fields), **extra})
    )


def _field(name, type_, **extra):
    return {"name": name, "type": type_, **extra}


ORDER_V1 = _record(_field("id", "int"), _field("amount", "float"))
ORDER_V2 = _record(
    _field("id", "int"),
    _field("amount", "float"),
    _field("currency", "string", default="USD"),
)
ORDER_V3 = _record(_field("id", "int"), _field("currency", "string", default="USD"))


# %% Levels
class TestCompatibilityLevel:
    @pytest.mark.parametrize("value", ["BACKWARD", "backward", " Backward "])
    def test_coerce_accepts_names(self, value):
        assert CompatibilityLevel.coerce(value) is CompatibilityLevel.BACKWARD

    def test_coerce_passes_levels_through(self):
        assert CompatibilityLevel.coerce(CompatibilityLevel.FULL) is CompatibilityLevel.FULL

    @pytest.mark.parametrize("value", ["TRANSITIVE", "", None, 1])
    def test_coerce_rejects_unknown_values(self, value):
        with pytest.raises(InvalidCompatibilityLevelError, match="Unknown compatibility level"):
            CompatibilityLevel.coerce(value)

    @pytest.mark.parametrize(
        "level, directions",
        [
            (CompatibilityLevel.NONE, ()),
            (CompatibilityLevel.BACKWARD, (CompatibilityLevel.BACKWARD,)),
            (CompatibilityLevel.FORWARD, (CompatibilityLevel.FORWARD,)),
            (
                CompatibilityLevel.FULL,
                (CompatibilityLevel.FORWARD, CompatibilityLevel.BACKWARD),
            ),
        ],
    )
    def test_directions(self, level, directions):
        assert level.directions == directions


# %% Short circuits
class TestShortCircuits:
    def test_no_previous_schema_is_compatible(self):
        result = check_compatibility(None, ORDER_V1, "FULL")
        assert result.is_compatible
        assert result.level is CompatibilityLevel.FULL

    def test_identical_canonical_forms_are_compatible(self):
        reformatted = parse_schema(
            '{"fields": [{"type": "int", "name": "id"}, {"type": "float", "name": "amount"}],'
            ' "name": "Order", "type": "record", "doc": "orders"}'
        )
        assert check_compatibility(ORDER_V1, reformatted, CompatibilityLevel.FULL)

    def test_none_level_accepts_anything(self):
        assert check_compatibility(ORDER_V1, parse_schema('"string"'), "NONE")


# %% Records
class TestRecordResolution:
    def test_adding_field_with_default_is_full_compatible(self):
        assert check_compatibility(ORDER_V1, ORDER_V2, CompatibilityLevel.FULL)

    def test_removing_field_without_default_breaks_backward(self):
        result = check_compatibility(ORDER_V2, ORDER_V3, CompatibilityLevel.BACKWARD)

        assert not result.is_compatible
        assert result.fields == {"amount"}
        (issue,) = result.issues
        assert issue.rule is CompatibilityRule.READER_FIELD_MISSING_DEFAULT
        assert issue.direction is CompatibilityLevel.BACKWARD
        assert issue.path == "/fields/amount"
        assert "'amount'" in issue.message

    def test_removing_field_without_default_is_forward_compatible(self):
        assert check_compatibility(ORDER_V2, ORDER_V3, CompatibilityLevel.FORWARD)

    def test_adding_field_without_default_breaks_forward(self):
        new = _record(_field("id", "int"), _field("amount", "float"), _field("note", "string"))
        assert check_compatibility(ORDER_V1, new, CompatibilityLevel.BACKWARD)

        result = check_compatibility(ORDER_V1, new, CompatibilityLevel.FORWARD)
        assert result.fields == {"note"}
        assert result.issues[0].direction is CompatibilityLevel.FORWARD

    def test_full_reports_both_directions(self):
        old = _record(_field("id", "int"), _field("amount", "float"))
        new = _record(_field("id", "int"), _field("note", "string"))

        result = check_compatibility(old, new, CompatibilityLevel.FULL)
        assert {i.direction for i in result.issues} == {
            CompatibilityLevel.FORWARD,
            CompatibilityLevel.BACKWARD,
        }
        assert result.fields == {"amount", "note"}

    def test_renamed_field_matches_through_alias(self):
        new = _record(_field("id", "int"), _field("total", "float", aliases=["amount"]))
        assert check_compatibility(ORDER_V1, new, CompatibilityLevel.FORWARD)

    def test_record_rename_requires_alias(self):
        renamed = _record(_field("id", "int"), _field("amount", "float"), name="Purchase")
        result = check_compatibility(ORDER_V1, renamed, CompatibilityLevel.FORWARD)
        assert result.issues[0].rule is CompatibilityRule.NAME_MISMATCH

        aliased = _record(
            _field("id", "int"), _field("amount", "float"), name="Purchase", aliases=["Order"]
        )
        assert check_compatibility(ORDER_V1, aliased, CompatibilityLevel.FORWARD)

    def test_nested_record_path(self):
        def with_zip(zip_type):
            return _record(
                _field(
                    "address",
                    {
                        "type": "record",
                        "name": "Address",
                        "fields": [_field("zip", zip_type)],
                    },
                )
            )

        result = check_compatibility(with_zip("int"), with_zip("string"), "BACKWARD")
        (issue,) = result.issues
        assert issue.rule is CompatibilityRule.TYPE_MISMATCH
        assert issue.path == "/fields/address/fields/zip"
        assert issue.field == "zip"
        assert issue.reader_type == "int"
        assert issue.writer_type == "string"

    def test_recursive_records_terminate(self):
        def linked(*extra):
            return _record(
                _field("value", "long"),
                _field("next", ["null", "Node"], default=None),
                *extra,
                name="Node",
            )

        assert check_compatibility(linked(), linked(_field("tag", "string", default="")), "FULL")
        result = check_compatibility(linked(), linked(_field("tag", "string")), "FORWARD")
        assert result.fields == {"tag"}

    def test_named_record_reused_at_two_paths_is_checked_at_both(self):
        def outer(z_type):
            inner = {"type": "record", "name": "Inner", "fields": [_field("z", z_type)]}
            return _record(_field("a", inner), _field("b", "Inner"), name="Outer")

        result = check_compatibility(outer("int"), outer("string"), "BACKWARD")
        assert {issue.path for issue in result.issues} == {
            "/fields/a/fields/z",
            "/fields/b/fields/z",
        }


# %% Primitives
class TestPromotions:
    @pytest.mark.parametrize(
        "writer, reader",
        [
            ("int", "long"),
            ("int", "float"),
            ("int", "double"),
            ("long", "float"),
            ("long", "double"),
            ("float", "double"),
            ("string", "bytes"),
            ("bytes", "string"),
        ],
    )
    def test_allowed_promotions(self, writer, reader):
        old = _record(_field("x", writer))
        new = _record(_field("x", reader))
        # FORWARD: the new schema reads data written with the old one.
        assert check_compatibility(old, new, CompatibilityLevel.FORWARD)

    @pytest.mark.parametrize(
        "writer, reader",
        [("long", "int"), ("double", "float"), ("string", "int"), ("boolean", "int")],
    )
    def test_disallowed_promotions(self, writer, reader):
        old = _record(_field("x", writer))
        new = _record(_field("x", reader))
        result = check_compatibility(old, new, CompatibilityLevel.FORWARD)
        assert [i.rule for i in result.issues] == [CompatibilityRule.TYPE_MISMATCH]

    def test_widening_is_forward_but_not_backward(self):
        old = _record(_field("x", "int"))
        new = _record(_field("x", "long"))
        assert check_compatibility(old, new, "FORWARD")
        assert not check_compatibility(old, new, "BACKWARD")


# %% Enums
class TestEnumResolution:
    def _enum(self, *symbols, default=None):
        definition = {"type": "enum", "name": "Status", "symbols": list(symbols)}
        if default is not None:
            definition["default"] = default
        return parse_schema(json.dumps(definition))

    def test_adding_symbol_is_backward_incompatible(self):
        old = self._enum("NEW", "PAID")
        new = self._enum("NEW", "PAID", "SHIPPED")

        assert check_compatibility(old, new, "FORWARD")
        result = check_compatibility(old, new, "BACKWARD")
        (issue,) = result.issues
        assert issue.rule is CompatibilityRule.MISSING_ENUM_SYMBOLS
        assert issue.symbols == ("SHIPPED",)

    def test_removing_symbol_is_forward_incompatible(self):
        old = self._enum("NEW", "PAID", "SHIPPED")
        new = self._enum("NEW", "PAID")

        assert check_compatibility(old, new, "BACKWARD")
        result = check_compatibility(old, new, "FORWARD")
        assert result.issues[0].symbols == ("SHIPPED",)

    def test_reader_default_symbol_covers_unknown_symbols(self):
        old = self._enum("NEW", "PAID", "UNKNOWN", default="UNKNOWN")
        new = self._enum("NEW", "PAID", "SHIPPED", "UNKNOWN", default="UNKNOWN")
        assert check_compatibility(old, new, "FULL")


# %% Fixed, arrays and maps
class TestOtherTypes:
    def test_fixed_size_change(self):
        old = parse_schema('{"type": "fixed", "name": "Hash", "size": 16}')
        new = parse_schema('{"type": "fixed", "name": "Hash", "size": 32}')
        result = check_compatibility(old, new, "BACKWARD")
        assert result.issues[0].rule is CompatibilityRule.FIXED_SIZE_MISMATCH

    def test_array_items_resolve_recursively(self):
        old = parse_schema('{"type": "array", "items": "int"}')
        new = parse_schema('{"type": "array", "items": "long"}')
        assert check_compatibility(old, new, "FORWARD")
        result = check_compatibility(old, new, "BACKWARD")
        assert result.issues[0].path == "/items"

    def test_map_values_resolve_recursively(self):
        old = parse_schema('{"type": "map", "values": "string"}')
        new = parse_schema('{"type": "map", "values": "boolean"}')
        result = check_compatibility(old, new, "FORWARD")
        assert result.issues[0].path == "/values"

    def test_kind_change_is_type_mismatch(self):
        old = parse_schema('{"type": "array", "items": "int"}')
        new = parse_schema('{"type": "map", "values": "int"}')
        result = check_compatibility(old, new, "BACKWARD")
        assert result.issues[0].rule is CompatibilityRule.TYPE_MISMATCH
        assert result.issues[0].path == ""


# %% Unions
class TestUnionResolution:
    def test_making_field_nullable_is_forward_compatible(self):
        old = _record(_field("note", "string"))
        new = _record(_field("note", ["null", "string"], default=None))

        assert check_compatibility(old, new, "FORWARD")
        result = check_compatibility(old, new, "BACKWARD")
        (issue,) = result.issues
        assert issue.rule is CompatibilityRule.TYPE_MISMATCH
        assert issue.writer_type == "null"

    def test_reader_union_without_matching_branch(self):
        old = _record(_field("value", "boolean"))
        new = _record(_field("value", ["null", "int"], default=None))
        result = check_compatibility(old, new, "FORWARD")
        (issue,) = result.issues
        assert issue.rule is CompatibilityRule.MISSING_UNION_BRANCH
        assert issue.field == "value"

    def test_adding_union_branch(self):
        old = _record(_field("value", ["null", "int"], default=None))
        new = _record(_field("value", ["null", "int", "string"], default=None))
        assert check_compatibility(old, new, "FORWARD")
        result = check_compatibility(old, new, "BACKWARD")
        assert [i.rule for i in result.issues] == [CompatibilityRule.MISSING_UNION_BRANCH]

    def test_union_branch_promotion(self):
        old = _record(_field("value", ["null", "int"], default=None))
        new = _record(_field("value", ["null", "long"], default=None))
        assert check_compatibility(old, new, "FORWARD")


# %% Results and resolver
class TestResultAndResolver:
    def test_result_truthiness_and_messages(self):
        result = check_compatibility(ORDER_V2, ORDER_V3, "BACKWARD")
        assert not result
        assert result.messages[0].startswith("[BACKWARD] READER_FIELD_MISSING_DEFAULT at /fields/amount")
        assert bool(CompatibilityResult(level=CompatibilityLevel.NONE))

    def test_resolver_labels(self):
        resolver = SchemaResolver.for_direction(ORDER_V2, ORDER_V3, CompatibilityLevel.BACKWARD)
        assert resolver.reader is ORDER_V2
        assert resolver.writer is ORDER_V3
        (issue,) = resolver.resolve()
        assert "old schema" in issue.message

    def test_resolver_is_reusable(self):
        resolver = SchemaResolver.for_direction(ORDER_V2, ORDER_V3, CompatibilityLevel.BACKWARD)
        assert resolver.resolve() == resolver.resolve()

    def test_resolver_rejects_composite_directions(self):
        with pytest.raises(InvalidCompatibilityLevelError, match="FORWARD or BACKWARD"):
            SchemaResolver.for_direction(ORDER_V1, ORDER_V2, CompatibilityLevel.FULL)
