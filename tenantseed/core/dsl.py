"""Parser for the column rule DSL.

Scalar rules are plain strings such as ``number.int:1:100`` or
``relation.accounts.id``. They are parsed once into typed operations; the
evaluator and the validator both work from the parsed form, so a rule is
accepted by one exactly when it is accepted by the other.

Precedence, first match wins:

1. ``...${expr}...``              interpolation
2. ``context.tenant_id``          active tenant
3. ``relation.<table>.<column>``  value from a previously generated table
4. ``helpers.arrayElement:a:b``   one of the listed values
5. ``number.int[:min:max]``
6. ``number.float[:min:max[:decimals]]``
7. ``finance.amount:min:max[:decimals]``
8. ``date.between:start:end``
9. ``date.afterColumn:column[:minDays[:maxDays]]``
10. ``string.numeric:length``
11. a generator path known to the registry, e.g. ``company.name``
12. anything else is a literal
"""

import math
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

from .exceptions import RuleEvaluationError, RuleSyntaxError
from .models import (
    ArrayRule, ObjectRule, Rule, RowCount, ScalarRule, TableSchema,
    DEFAULT_ARRAY_MIN, DEFAULT_ARRAY_MAX,
)
from .random_source import decimal_grid
from .registry import GeneratorRegistry


PLACEHOLDER_PATTERN = re.compile(r"\$\{([^}]+)\}")
DOTTED_PATH_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)+$")

OBJECT_CONTAINER_KEYS = ("properties", "fields")

CONTEXT_PREFIX = "context."
RELATION_PREFIX = "relation."
CHOICE_PREFIX = "helpers.arrayElement:"
INT_PREFIX = "number.int:"
FLOAT_PREFIX = "number.float:"
AMOUNT_PREFIX = "finance.amount:"
DATE_BETWEEN_PREFIX = "date.between:"
DATE_AFTER_PREFIX = "date.afterColumn:"
NUMERIC_STRING_PREFIX = "string.numeric:"


class ScalarKind(Enum):
    """Kinds of scalar operation the DSL can express."""
    INTERPOLATION = "interpolation"
    CONTEXT = "context"
    RELATION = "relation"
    CHOICE = "choice"
    INT_RANGE = "int_range"
    ANY_INT = "any_int"
    FLOAT_RANGE = "float_range"
    ANY_FLOAT = "any_float"
    AMOUNT = "amount"
    DATE_BETWEEN = "date_between"
    DATE_AFTER_COLUMN = "date_after_column"
    NUMERIC_STRING = "numeric_string"
    LIBRARY_CALL = "library_call"
    LITERAL = "literal"


@dataclass(frozen=True)
class Placeholder:
    """One ``${...}`` occurrence; ``error`` is set when its text does not parse."""
    expression: str
    op: Optional["ScalarOp"] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class Interpolation:
    kind: ClassVar[ScalarKind] = ScalarKind.INTERPOLATION
    segments: Tuple[Union[str, Placeholder], ...]

    @property
    def placeholders(self) -> List[Placeholder]:
        return [s for s in self.segments if isinstance(s, Placeholder)]


@dataclass(frozen=True)
class ContextRef:
    kind: ClassVar[ScalarKind] = ScalarKind.CONTEXT
    key: str


@dataclass(frozen=True)
class RelationRef:
    kind: ClassVar[ScalarKind] = ScalarKind.RELATION
    table: str
    column: str


@dataclass(frozen=True)
class Choice:
    kind: ClassVar[ScalarKind] = ScalarKind.CHOICE
    candidates: Tuple[str, ...]


@dataclass(frozen=True)
class IntRange:
    kind: ClassVar[ScalarKind] = ScalarKind.INT_RANGE
    min: int
    max: int


@dataclass(frozen=True)
class AnyInt:
    kind: ClassVar[ScalarKind] = ScalarKind.ANY_INT


@dataclass(frozen=True)
class FloatRange:
    kind: ClassVar[ScalarKind] = ScalarKind.FLOAT_RANGE
    min: float
    max: float
    decimals: int = 2


@dataclass(frozen=True)
class AnyFloat:
    kind: ClassVar[ScalarKind] = ScalarKind.ANY_FLOAT


@dataclass(frozen=True)
class Amount:
    kind: ClassVar[ScalarKind] = ScalarKind.AMOUNT
    min: float
    max: float
    decimals: int = 2


@dataclass(frozen=True)
class DateBetween:
    kind: ClassVar[ScalarKind] = ScalarKind.DATE_BETWEEN
    start: date
    end: date


@dataclass(frozen=True)
class DateAfterColumn:
    kind: ClassVar[ScalarKind] = ScalarKind.DATE_AFTER_COLUMN
    column: str
    min_days: int = 1
    max_days: int = 365


@dataclass(frozen=True)
class NumericString:
    kind: ClassVar[ScalarKind] = ScalarKind.NUMERIC_STRING
    length: int


@dataclass(frozen=True)
class LibraryCall:
    kind: ClassVar[ScalarKind] = ScalarKind.LIBRARY_CALL
    path: str


@dataclass(frozen=True)
class Literal:
    kind: ClassVar[ScalarKind] = ScalarKind.LITERAL
    text: str


ScalarOp = Union[
    Interpolation, ContextRef, RelationRef, Choice, IntRange, AnyInt, FloatRange,
    AnyFloat, Amount, DateBetween, DateAfterColumn, NumericString, LibraryCall, Literal,
]

CONTEXT_KEYS = ("tenant_id",)


def parse_scalar(text: str, registry: GeneratorRegistry, path: Optional[str] = None) -> ScalarOp:
    """Parse one scalar rule string, raising ``RuleSyntaxError`` if it is malformed."""
    if "${" in text:
        return _parse_interpolation(text, registry, path)

    if text.startswith(CONTEXT_PREFIX):
        key = text[len(CONTEXT_PREFIX):]
        if key not in CONTEXT_KEYS:
            raise RuleSyntaxError(f"Unknown context key in rule {text!r}", rule=text, path=path)
        return ContextRef(key=key)

    if text.startswith(RELATION_PREFIX):
        parts = text.split(".")
        if len(parts) != 3 or not parts[1] or not parts[2]:
            raise RuleSyntaxError(f"Invalid relation rule {text!r}", rule=text, path=path)
        return RelationRef(table=parts[1], column=parts[2])

    if text.startswith(CHOICE_PREFIX):
        remainder = text[len(CHOICE_PREFIX):]
        if not remainder:
            raise RuleSyntaxError(
                f"helpers.arrayElement needs at least one value in rule {text!r}", rule=text, path=path
            )
        return Choice(candidates=tuple(remainder.split(":")))

    if text == "number.int":
        return AnyInt()
    if text.startswith(INT_PREFIX):
        args = _arguments(text, INT_PREFIX, 2, 2, path)
        low = _int_argument(args[0], "min", text, path)
        high = _int_argument(args[1], "max", text, path)
        _check_range(low, high, text, path)
        return IntRange(min=low, max=high)

    if text == "number.float":
        return AnyFloat()
    if text.startswith(FLOAT_PREFIX):
        low, high, decimals = _decimal_range(text, FLOAT_PREFIX, path)
        return FloatRange(min=low, max=high, decimals=decimals)

    if text.startswith(AMOUNT_PREFIX):
        low, high, decimals = _decimal_range(text, AMOUNT_PREFIX, path)
        return Amount(min=low, max=high, decimals=decimals)

    if text.startswith(DATE_BETWEEN_PREFIX):
        args = _arguments(text, DATE_BETWEEN_PREFIX, 2, 2, path)
        start = _date_argument(args[0], "start", text, path)
        end = _date_argument(args[1], "end", text, path)
        if start > end:
            raise RuleSyntaxError(f"Start date is after end date in rule {text!r}", rule=text, path=path)
        return DateBetween(start=start, end=end)

    if text.startswith(DATE_AFTER_PREFIX):
        args = _arguments(text, DATE_AFTER_PREFIX, 1, 3, path)
        if not args[0]:
            raise RuleSyntaxError(f"Missing column name in rule {text!r}", rule=text, path=path)
        min_days = _int_argument(args[1], "minDays", text, path) if len(args) > 1 else 1
        max_days = _int_argument(args[2], "maxDays", text, path) if len(args) > 2 else 365
        _check_range(min_days, max_days, text, path)
        return DateAfterColumn(column=args[0], min_days=min_days, max_days=max_days)

    if text.startswith(NUMERIC_STRING_PREFIX):
        args = _arguments(text, NUMERIC_STRING_PREFIX, 1, 1, path)
        length = _int_argument(args[0], "length", text, path)
        if length < 1:
            raise RuleSyntaxError(f"Length must be at least 1 in rule {text!r}", rule=text, path=path)
        return NumericString(length=length)

    if text in registry:
        return LibraryCall(path=text)

    if ":" in text:
        head = text.split(":", 1)[0]
        if DOTTED_PATH_PATTERN.match(head) and head not in registry:
            raise RuleSyntaxError(f"Unknown DSL rule {text!r}", rule=text, path=path)

    return Literal(text=text)


def _parse_interpolation(text: str, registry: GeneratorRegistry, path: Optional[str]) -> Interpolation:
    pieces = PLACEHOLDER_PATTERN.split(text)
    segments: List[Union[str, Placeholder]] = []
    # re.split alternates literal text and captured placeholder bodies
    for index, piece in enumerate(pieces):
        if index % 2 == 0:
            if piece:
                segments.append(piece)
            continue
        try:
            segments.append(Placeholder(expression=piece, op=parse_scalar(piece, registry, path)))
        except RuleSyntaxError as e:
            segments.append(Placeholder(expression=piece, error=str(e)))
    return Interpolation(segments=tuple(segments))


def _arguments(text: str, prefix: str, minimum: int, maximum: int, path: Optional[str]) -> List[str]:
    args = text[len(prefix):].split(":")
    if not minimum <= len(args) <= maximum:
        expected = str(minimum) if minimum == maximum else f"{minimum} to {maximum}"
        raise RuleSyntaxError(
            f"Expected {expected} argument(s) but got {len(args)} in rule {text!r}", rule=text, path=path
        )
    return args


def _int_argument(value: str, name: str, text: str, path: Optional[str]) -> int:
    try:
        return int(value)
    except ValueError:
        raise RuleSyntaxError(f"{name} must be an integer in rule {text!r}, got {value!r}", rule=text, path=path)


def _float_argument(value: str, name: str, text: str, path: Optional[str]) -> float:
    try:
        number = float(value)
    except ValueError:
        raise RuleSyntaxError(f"{name} must be a number in rule {text!r}, got {value!r}", rule=text, path=path)
    if not math.isfinite(number):
        raise RuleSyntaxError(f"{name} must be finite in rule {text!r}", rule=text, path=path)
    return number


def _date_argument(value: str, name: str, text: str, path: Optional[str]) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise RuleSyntaxError(
            f"{name} must be an ISO date (YYYY-MM-DD) in rule {text!r}, got {value!r}", rule=text, path=path
        )


def _decimal_range(text: str, prefix: str, path: Optional[str]) -> Tuple[float, float, int]:
    args = _arguments(text, prefix, 2, 3, path)
    low = _float_argument(args[0], "min", text, path)
    high = _float_argument(args[1], "max", text, path)
    _check_range(low, high, text, path)
    decimals = _int_argument(args[2], "decimals", text, path) if len(args) > 2 else 2
    if decimals < 0:
        raise RuleSyntaxError(f"decimals must not be negative in rule {text!r}", rule=text, path=path)
    try:
        decimal_grid(low, high, decimals)
    except ValueError as e:
        raise RuleSyntaxError(f"{e} in rule {text!r}", rule=text, path=path)
    return low, high, decimals


def _check_range(low: Union[int, float], high: Union[int, float], text: str, path: Optional[str]) -> None:
    if low > high:
        raise RuleSyntaxError(f"Minimum {low} is greater than maximum {high} in rule {text!r}", rule=text, path=path)


def is_count(value: Any) -> bool:
    """True for non-negative integers (booleans excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def object_container_key(node: Mapping[str, Any]) -> Optional[str]:
    """The single property container key of an object node, if exactly one is present."""
    present = [key for key in OBJECT_CONTAINER_KEYS if key in node]
    return present[0] if len(present) == 1 else None


def compile_rule(node: Any, registry: GeneratorRegistry, path: str = "$") -> Rule:
    """Turn a raw schema node into a typed rule tree."""
    if isinstance(node, str):
        return ScalarRule(text=node, op=parse_scalar(node, registry, path))

    if isinstance(node, dict):
        node_type = node.get("type")
        if node_type == "array":
            if "items" not in node:
                raise RuleEvaluationError('array must contain "items"', path=path)
            items = compile_rule(node["items"], registry, f"{path}.items")
            has_min, has_max = "min" in node, "max" in node
            if has_min != has_max:
                raise RuleEvaluationError("array min and max must be provided together", path=path)
            if "count" in node and has_min:
                raise RuleEvaluationError("array must use either count or min/max, not both", path=path)
            if "count" in node:
                if not is_count(node["count"]):
                    raise RuleEvaluationError("array.count must be a non-negative integer", path=path)
                return ArrayRule(items=items, count=node["count"])
            low = node.get("min", DEFAULT_ARRAY_MIN)
            high = node.get("max", DEFAULT_ARRAY_MAX)
            if not (is_count(low) and is_count(high)) or low > high:
                raise RuleEvaluationError("array min/max must be non-negative integers with min <= max", path=path)
            return ArrayRule(items=items, min=low, max=high)

        if node_type == "object":
            key = object_container_key(node)
            if key is None or not isinstance(node[key], dict):
                raise RuleEvaluationError("object.properties must be an object", path=path)
            return ObjectRule(properties={
                name: compile_rule(child, registry, f"{path}.{key}.{name}")
                for name, child in node[key].items()
            })

    raise RuleEvaluationError(f"Unsupported rule node: {node!r}", path=path)


def compile_schema(document: Dict[str, Any], registry: GeneratorRegistry) -> TableSchema:
    """Compile a raw schema document. The document should already be validated."""
    raw_count = document["count"]
    if isinstance(raw_count, dict):
        count = RowCount(min=raw_count["min"], max=raw_count["max"])
    else:
        count = RowCount(fixed=raw_count)

    columns = {
        name: compile_rule(rule, registry, f"$.columns.{name}")
        for name, rule in document["columns"].items()
    }
    return TableSchema(table=document["table"], count=count, columns=columns)


def iter_scalar_ops(rule: Rule):
    """Yield every parsed scalar operation in a rule tree, placeholders included."""
    if isinstance(rule, ScalarRule):
        yield from _walk_op(rule.op)
    elif isinstance(rule, ArrayRule):
        yield from iter_scalar_ops(rule.items)
    elif isinstance(rule, ObjectRule):
        for child in rule.properties.values():
            yield from iter_scalar_ops(child)


def _walk_op(op: ScalarOp):
    yield op
    if isinstance(op, Interpolation):
        for placeholder in op.placeholders:
            if placeholder.op is not None:
                yield from _walk_op(placeholder.op)
