"""Structural validation of schema documents before any generation runs."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Collection, List, Optional, Union

import yaml

from .dsl import Interpolation, is_count, object_container_key, parse_scalar, OBJECT_CONTAINER_KEYS
from .exceptions import RuleSyntaxError
from .generator import load_document
from .registry import GeneratorRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationError:
    """A problem found at a location inside a schema document."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class SchemaValidator:
    """Checks schema documents against the rule grammar.

    Scalar rules go through the same parser the evaluator uses, so anything
    reported here would also fail at generation time and vice versa.
    """

    def __init__(self, registry: Optional[GeneratorRegistry] = None):
        self.registry = registry or GeneratorRegistry.default()

    def validate_file(self, path: Union[str, Path], expected_table: Optional[str] = None) -> List[ValidationError]:
        """Validate a schema file; ``expected_table`` defaults to the file stem."""
        file_path = Path(path)
        try:
            document = load_document(file_path)
        except (ValueError, yaml.YAMLError) as e:
            return [ValidationError("$", f"Cannot parse {file_path.name}: {e}")]

        errors = self.validate(document)
        if expected_table is None:
            expected_table = file_path.stem
        if isinstance(document, dict) and isinstance(document.get("table"), str) \
                and document["table"] and document["table"] != expected_table:
            errors.append(ValidationError(
                "$.table", f"table {document['table']!r} does not match file name {expected_table!r}"
            ))
        return errors

    def validate(self, document: Any) -> List[ValidationError]:
        """Validate a loaded schema document. An empty list means valid."""
        errors: List[ValidationError] = []

        if not isinstance(document, dict):
            errors.append(ValidationError("$", "schema must be an object"))
            return errors

        table = document.get("table")
        if not isinstance(table, str) or not table:
            errors.append(ValidationError("$.table", "must be a non-empty string"))

        if "count" not in document:
            errors.append(ValidationError("$.count", "is required"))
        else:
            self._validate_row_count(document["count"], errors)

        columns = document.get("columns")
        if not isinstance(columns, dict):
            errors.append(ValidationError("$.columns", "must be an object"))
        elif not columns:
            errors.append(ValidationError("$.columns", "must define at least one column"))
        else:
            column_names = set(columns)
            for name, rule in columns.items():
                self._validate_rule(rule, f"$.columns.{name}", column_names, errors)

        if errors:
            logger.debug(f"Schema {table or 'unknown'} has {len(errors)} validation errors")
        return errors

    def _validate_row_count(self, count: Any, errors: List[ValidationError]) -> None:
        if is_count(count):
            return
        if isinstance(count, dict) and "min" in count and "max" in count:
            if not (is_count(count["min"]) and is_count(count["max"])):
                errors.append(ValidationError("$.count", "min and max must be non-negative integers"))
            elif count["min"] > count["max"]:
                errors.append(ValidationError("$.count", "min must not be greater than max"))
            return
        errors.append(ValidationError("$.count", "must be a number or an object with min and max"))

    def _validate_rule(self, rule: Any, path: str, column_names: Collection[str],
                       errors: List[ValidationError]) -> None:
        if isinstance(rule, str):
            self._validate_scalar(rule, path, column_names, errors)
            return

        if isinstance(rule, dict):
            node_type = rule.get("type")
            if node_type == "array":
                self._validate_array(rule, path, column_names, errors)
            elif node_type == "object":
                self._validate_object(rule, path, column_names, errors)
            else:
                errors.append(ValidationError(path, "Unknown node type in object"))
            return

        errors.append(ValidationError(path, "Unsupported rule node type"))

    def _validate_scalar(self, rule: str, path: str, column_names: Collection[str],
                         errors: List[ValidationError]) -> None:
        try:
            op = parse_scalar(rule, self.registry)
        except RuleSyntaxError as e:
            errors.append(ValidationError(path, str(e)))
            return

        if isinstance(op, Interpolation):
            for placeholder in op.placeholders:
                # resolved from the row at generation time
                if placeholder.error and placeholder.expression not in column_names:
                    errors.append(ValidationError(path, placeholder.error))

    def _validate_array(self, rule: dict, path: str, column_names: Collection[str],
                        errors: List[ValidationError]) -> None:
        if "items" not in rule:
            errors.append(ValidationError(path, 'array must contain "items"'))
        else:
            self._validate_rule(rule["items"], f"{path}.items", column_names, errors)

        if "count" in rule and not is_count(rule["count"]):
            errors.append(ValidationError(path, "array.count must be number if provided"))

        has_min, has_max = "min" in rule, "max" in rule
        if has_min != has_max:
            errors.append(ValidationError(path, "array min and max must be provided together"))
        elif has_min:
            if "count" in rule:
                errors.append(ValidationError(path, "array must use either count or min/max, not both"))
            if not (is_count(rule["min"]) and is_count(rule["max"])):
                errors.append(ValidationError(path, "array min and max must be non-negative integers"))
            elif rule["min"] > rule["max"]:
                errors.append(ValidationError(path, "array min must not be greater than max"))

    def _validate_object(self, rule: dict, path: str, column_names: Collection[str],
                         errors: List[ValidationError]) -> None:
        key = object_container_key(rule)
        if key is None:
            errors.append(ValidationError(
                path, f"object must contain exactly one of: {', '.join(OBJECT_CONTAINER_KEYS)}"
            ))
            return
        properties = rule[key]
        if not isinstance(properties, dict):
            errors.append(ValidationError(path, f"object.{key} must be an object"))
            return
        for name, child in properties.items():
            self._validate_rule(child, f"{path}.{key}.{name}", column_names, errors)
