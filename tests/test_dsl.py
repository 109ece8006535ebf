"""Tests for rule parsing and compilation."""

import pytest
from datetime import date

from tenantseed.core.dsl import (
    AnyFloat, AnyInt, Amount, Choice, ContextRef, DateAfterColumn, DateBetween, FloatRange,
    Interpolation, IntRange, LibraryCall, Literal, NumericString, Placeholder, RelationRef,
    ScalarKind, compile_rule, compile_schema, iter_scalar_ops, parse_scalar,
)
from tenantseed.core.exceptions import RuleEvaluationError, RuleSyntaxError
from tenantseed.core.models import ArrayRule, ObjectRule, ScalarRule


class TestParseScalar:
    """Test parse_scalar precedence and argument handling."""

    def test_context(self, registry):
        assert parse_scalar("context.tenant_id", registry) == ContextRef(key="tenant_id")

    def test_unknown_context_key(self, registry):
        with pytest.raises(RuleSyntaxError):
            parse_scalar("context.user_id", registry)

    def test_relation(self, registry):
        op = parse_scalar("relation.accounts.id", registry)
        assert op == RelationRef(table="accounts", column="id")
        assert op.kind == ScalarKind.RELATION

    @pytest.mark.parametrize("text", ["relation.accounts", "relation.accounts.", "relation..id",
                                      "relation.a.b.c"])
    def test_malformed_relation(self, registry, text):
        with pytest.raises(RuleSyntaxError):
            parse_scalar(text, registry)

    def test_choice(self, registry):
        op = parse_scalar("helpers.arrayElement:red:green:blue", registry)
        assert op == Choice(candidates=("red", "green", "blue"))

    def test_choice_needs_values(self, registry):
        with pytest.raises(RuleSyntaxError):
            parse_scalar("helpers.arrayElement:", registry)

    def test_int_forms(self, registry):
        assert parse_scalar("number.int", registry) == AnyInt()
        assert parse_scalar("number.int:1:100", registry) == IntRange(min=1, max=100)
        assert parse_scalar("number.int:-5:-1", registry) == IntRange(min=-5, max=-1)

    @pytest.mark.parametrize("text", ["number.int:1", "number.int:1:2:3", "number.int:a:5",
                                      "number.int:1.5:3", "number.int:9:1"])
    def test_int_errors(self, registry, text):
        with pytest.raises(RuleSyntaxError):
            parse_scalar(text, registry)

    def test_float_forms(self, registry):
        assert parse_scalar("number.float", registry) == AnyFloat()
        assert parse_scalar("number.float:0.5:1.5", registry) == FloatRange(min=0.5, max=1.5, decimals=2)
        assert parse_scalar("number.float:0:1:4", registry) == FloatRange(min=0.0, max=1.0, decimals=4)

    @pytest.mark.parametrize("text", ["number.float:1", "number.float:x:2", "number.float:1:2:-1",
                                      "number.float:3:1", "number.float:1:inf",
                                      "number.float:0.001:0.004:2", "number.float:0.11:0.19:1"])
    def test_float_errors(self, registry, text):
        with pytest.raises(RuleSyntaxError):
            parse_scalar(text, registry)

    def test_amount(self, registry):
        assert parse_scalar("finance.amount:100:5000", registry) == Amount(min=100.0, max=5000.0, decimals=2)
        assert parse_scalar("finance.amount:1:2:0", registry).decimals == 0

    def test_amount_without_grid_value(self, registry):
        with pytest.raises(RuleSyntaxError, match="No 2-decimal value"):
            parse_scalar("finance.amount:1.001:1.009", registry)

    def test_amount_needs_range(self, registry):
        with pytest.raises(RuleSyntaxError):
            parse_scalar("finance.amount:100", registry)

    def test_date_between(self, registry):
        op = parse_scalar("date.between:2023-01-01:2023-12-31", registry)
        assert op == DateBetween(start=date(2023, 1, 1), end=date(2023, 12, 31))

    @pytest.mark.parametrize("text", ["date.between:2023-01-01", "date.between:2023-13-01:2023-12-31",
                                      "date.between:2024-01-01:2023-01-01"])
    def test_date_between_errors(self, registry, text):
        with pytest.raises(RuleSyntaxError):
            parse_scalar(text, registry)

    def test_date_after_column_defaults(self, registry):
        assert parse_scalar("date.afterColumn:start_date", registry) == \
            DateAfterColumn(column="start_date", min_days=1, max_days=365)
        assert parse_scalar("date.afterColumn:start_date:30", registry) == \
            DateAfterColumn(column="start_date", min_days=30, max_days=365)
        assert parse_scalar("date.afterColumn:start_date:30:90", registry) == \
            DateAfterColumn(column="start_date", min_days=30, max_days=90)

    @pytest.mark.parametrize("text", ["date.afterColumn:", "date.afterColumn:d:x",
                                      "date.afterColumn:d:90:30", "date.afterColumn:d:1:2:3"])
    def test_date_after_column_errors(self, registry, text):
        with pytest.raises(RuleSyntaxError):
            parse_scalar(text, registry)

    def test_numeric_string(self, registry):
        assert parse_scalar("string.numeric:8", registry) == NumericString(length=8)
        with pytest.raises(RuleSyntaxError):
            parse_scalar("string.numeric:0", registry)

    def test_library_call(self, registry):
        assert parse_scalar("company.name", registry) == LibraryCall(path="company.name")

    def test_literals(self, registry):
        assert parse_scalar("Active", registry) == Literal(text="Active")
        assert parse_scalar("Note: hi", registry) == Literal(text="Note: hi")
        assert parse_scalar("foo.bar", registry) == Literal(text="foo.bar")

    def test_unknown_dotted_call_with_arguments(self, registry):
        with pytest.raises(RuleSyntaxError):
            parse_scalar("foo.bar:1:2", registry)

    def test_interpolation_takes_precedence(self, registry):
        op = parse_scalar("helpers.arrayElement:${company.name}:x", registry)
        assert isinstance(op, Interpolation)

    def test_interpolation_segments(self, registry):
        op = parse_scalar("${company.name} Group", registry)
        assert op.segments == (
            Placeholder(expression="company.name", op=LibraryCall(path="company.name")),
            " Group",
        )

    def test_interpolation_keeps_placeholder_errors(self, registry):
        op = parse_scalar("ID-${number.int:9:1}", registry)
        placeholder = op.placeholders[0]
        assert placeholder.op is None
        assert "greater than maximum" in placeholder.error

    def test_error_carries_path(self, registry):
        with pytest.raises(RuleSyntaxError) as exc_info:
            parse_scalar("number.int:x:1", registry, path="$.columns.age")
        assert exc_info.value.path == "$.columns.age"
        assert str(exc_info.value).startswith("$.columns.age: ")


class TestCompileRule:
    """Test compile_rule."""

    def test_scalar(self, registry):
        rule = compile_rule("number.int:1:3", registry)
        assert rule == ScalarRule(text="number.int:1:3", op=IntRange(min=1, max=3))

    def test_fixed_array(self, registry):
        rule = compile_rule({"type": "array", "count": 3, "items": "lorem.word"}, registry)
        assert isinstance(rule, ArrayRule)
        assert rule.is_fixed
        assert rule.count == 3

    def test_ranged_array(self, registry):
        rule = compile_rule({"type": "array", "min": 0, "max": 2, "items": "lorem.word"}, registry)
        assert not rule.is_fixed
        assert (rule.min, rule.max) == (0, 2)

    def test_array_default_range(self, registry):
        rule = compile_rule({"type": "array", "items": "lorem.word"}, registry)
        assert (rule.min, rule.max) == (1, 5)

    @pytest.mark.parametrize("node", [
        {"type": "array"},
        {"type": "array", "items": "lorem.word", "min": 1},
        {"type": "array", "items": "lorem.word", "count": 2, "min": 1, "max": 3},
        {"type": "array", "items": "lorem.word", "count": -1},
        {"type": "array", "items": "lorem.word", "count": True},
        {"type": "array", "items": "lorem.word", "min": 4, "max": 2},
    ])
    def test_array_errors(self, registry, node):
        with pytest.raises(RuleEvaluationError):
            compile_rule(node, registry)

    def test_object_properties_and_fields(self, registry):
        by_properties = compile_rule({"type": "object", "properties": {"a": "lorem.word"}}, registry)
        by_fields = compile_rule({"type": "object", "fields": {"a": "lorem.word"}}, registry)
        assert isinstance(by_properties, ObjectRule)
        assert by_properties == by_fields

    @pytest.mark.parametrize("node", [
        {"type": "object"},
        {"type": "object", "properties": {}, "fields": {}},
        {"type": "object", "properties": ["a"]},
    ])
    def test_object_errors(self, registry, node):
        with pytest.raises(RuleEvaluationError):
            compile_rule(node, registry)

    @pytest.mark.parametrize("node", [42, None, ["a"], {"type": "map"}])
    def test_unsupported_nodes(self, registry, node):
        with pytest.raises(RuleEvaluationError, match="Unsupported rule node"):
            compile_rule(node, registry)

    def test_nested_error_path(self, registry):
        node = {"type": "object", "properties": {"ids": {"type": "array", "count": 1,
                                                         "items": "number.int:5:1"}}}
        with pytest.raises(RuleSyntaxError) as exc_info:
            compile_rule(node, registry, "$.columns.meta")
        assert exc_info.value.path == "$.columns.meta.properties.ids.items"


class TestCompileSchema:
    """Test compile_schema and iter_scalar_ops."""

    def test_counts(self, registry):
        fixed = compile_schema({"table": "t", "count": 2, "columns": {"a": "x"}}, registry)
        ranged = compile_schema({"table": "t", "count": {"min": 1, "max": 4}, "columns": {"a": "x"}}, registry)

        assert fixed.count.is_fixed and fixed.count.fixed == 2
        assert not ranged.count.is_fixed
        assert (ranged.count.min, ranged.count.max) == (1, 4)

    def test_column_order_preserved(self, registry):
        schema = compile_schema(
            {"table": "t", "count": 1, "columns": {"b": "x", "a": "y", "c": "z"}}, registry
        )
        assert list(schema.columns) == ["b", "a", "c"]

    def test_iter_scalar_ops_reaches_placeholders(self, registry):
        rule = compile_rule({
            "type": "object",
            "properties": {
                "label": "${relation.accounts.name} / ${lorem.word}",
                "tags": {"type": "array", "count": 1, "items": "relation.tags.id"},
            },
        }, registry)

        relations = [op for op in iter_scalar_ops(rule) if isinstance(op, RelationRef)]
        assert relations == [RelationRef("accounts", "name"), RelationRef("tags", "id")]
