"""Recursive evaluation of compiled column rules."""

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from .context import GenerationContext
from .dsl import Interpolation, ScalarKind, ScalarOp, parse_scalar
from .exceptions import RelationOrderError, RuleEvaluationError
from .models import ArrayRule, ObjectRule, Rule, ScalarRule
from .registry import GeneratorRegistry


logger = logging.getLogger(__name__)


class RuleEvaluator:
    """Produces concrete values from rules against a generation context."""

    def __init__(self, registry: Optional[GeneratorRegistry] = None):
        self.registry = registry or GeneratorRegistry.default()

    def evaluate(self, rule: Rule, context: GenerationContext,
                 row: Optional[Dict[str, Any]] = None, path: str = "$") -> Any:
        """Evaluate a rule tree.

        ``row`` is the row built so far; later columns may read earlier ones
        through interpolation and ``date.afterColumn``.
        """
        if row is None:
            row = {}

        if isinstance(rule, ScalarRule):
            return self._evaluate_op(rule.op, rule.text, context, row, path)

        if isinstance(rule, ArrayRule):
            if rule.is_fixed:
                count = rule.count
            else:
                count = context.random.int_between(rule.min, rule.max)
            return [
                self.evaluate(rule.items, context, row, f"{path}[{i}]")
                for i in range(count)
            ]

        if isinstance(rule, ObjectRule):
            return {
                name: self.evaluate(child, context, row, f"{path}.{name}")
                for name, child in rule.properties.items()
            }

        raise RuleEvaluationError(f"Unsupported rule node: {rule!r}", path=path)

    def evaluate_expression(self, text: str, context: GenerationContext,
                            row: Optional[Dict[str, Any]] = None, path: str = "$") -> Any:
        """Parse and evaluate a single DSL string."""
        op = parse_scalar(text, self.registry, path)
        return self._evaluate_op(op, text, context, row if row is not None else {}, path)

    def _evaluate_op(self, op: ScalarOp, text: str, context: GenerationContext,
                     row: Dict[str, Any], path: str) -> Any:
        """Evaluate one parsed scalar operation."""
        kind = op.kind
        rand = context.random

        if kind == ScalarKind.INTERPOLATION:
            return self._interpolate(op, context, row, path)
        elif kind == ScalarKind.CONTEXT:
            return context.tenant_id
        elif kind == ScalarKind.RELATION:
            if not context.cache.has_rows(op.table):
                raise RelationOrderError(op.table, rule=text)
            picked = rand.choice(context.cache.rows(op.table))
            return picked.get(op.column)
        elif kind == ScalarKind.CHOICE:
            return rand.choice(op.candidates)
        elif kind == ScalarKind.INT_RANGE:
            return rand.int_between(op.min, op.max)
        elif kind == ScalarKind.ANY_INT:
            return rand.any_int()
        elif kind == ScalarKind.FLOAT_RANGE:
            return rand.float_between(op.min, op.max, op.decimals)
        elif kind == ScalarKind.ANY_FLOAT:
            return rand.any_float()
        elif kind == ScalarKind.AMOUNT:
            return rand.float_between(op.min, op.max, op.decimals)
        elif kind == ScalarKind.DATE_BETWEEN:
            return rand.date_between(op.start, op.end).isoformat()
        elif kind == ScalarKind.DATE_AFTER_COLUMN:
            base = self._base_date(row.get(op.column), text, path)
            return rand.days_after(base, op.min_days, op.max_days).isoformat()
        elif kind == ScalarKind.NUMERIC_STRING:
            return rand.numeric_string(op.length)
        elif kind == ScalarKind.LIBRARY_CALL:
            generator = self.registry.resolve(op.path)
            if generator is None:
                raise RuleEvaluationError(f"No generator registered for {op.path!r}", rule=text, path=path)
            return generator(rand.faker)
        elif kind == ScalarKind.LITERAL:
            return op.text

        raise RuleEvaluationError(f"Unsupported scalar operation: {op!r}", rule=text, path=path)

    def _interpolate(self, op: Interpolation, context: GenerationContext,
                     row: Dict[str, Any], path: str) -> str:
        parts = []
        for segment in op.segments:
            if isinstance(segment, str):
                parts.append(segment)
                continue
            # a row column of the same name wins over DSL evaluation
            if segment.expression in row:
                parts.append(_stringify(row[segment.expression]))
                continue
            if segment.error is not None:
                raise RuleEvaluationError(segment.error, rule=segment.expression, path=path)
            value = self._evaluate_op(segment.op, segment.expression, context, row, path)
            parts.append(_stringify(value))
        return "".join(parts)

    def _base_date(self, value: Any, text: str, path: str) -> date:
        if value is None or value == "":
            return date.today()
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            raise RuleEvaluationError(f"Cannot read {value!r} as a date", rule=text, path=path)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)
