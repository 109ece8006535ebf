"""Error types raised while validating, generating and persisting tenant data."""

from typing import Dict, List, Optional


class SeedError(Exception):
    """Base class for all tenantseed errors."""


class SchemaValidationError(SeedError):
    """One or more schema files failed structural validation."""

    def __init__(self, errors_by_table: Dict[str, List[str]]):
        self.errors_by_table = errors_by_table
        lines = []
        for table, errors in errors_by_table.items():
            lines.append(f"Schema {table} invalid:")
            lines.extend(f" - {error}" for error in errors)
        super().__init__("\n".join(lines))


class RuleEvaluationError(SeedError):
    """A rule could not be evaluated."""

    def __init__(self, message: str, rule: Optional[str] = None, path: Optional[str] = None):
        self.rule = rule
        self.path = path
        location = f"{path}: " if path else ""
        super().__init__(f"{location}{message}")


class RuleSyntaxError(RuleEvaluationError):
    """DSL text is malformed."""


class RelationOrderError(SeedError):
    """A relation targets a table that has not been generated yet."""

    def __init__(self, table: str, rule: Optional[str] = None, message: Optional[str] = None):
        self.table = table
        self.rule = rule
        if message is None:
            message = f"Relation requested before table generated: {table}"
            if rule:
                message += f" (rule {rule!r})"
        super().__init__(message)


class PersistenceError(SeedError):
    """The database rejected an insert or delete."""

    def __init__(self, table: str, operation: str, cause: Exception):
        self.table = table
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation.capitalize()} failed for {table}: {cause}")
