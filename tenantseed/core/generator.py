"""Table generation engine and schema file loading."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .context import GenerationContext
from .dsl import compile_schema
from .evaluator import RuleEvaluator
from .exceptions import SchemaValidationError
from .models import TableSchema
from .registry import GeneratorRegistry


logger = logging.getLogger(__name__)

SCHEMA_SUFFIXES = (".json", ".yaml", ".yml")


def load_document(path: Union[str, Path]) -> Any:
    """Load a JSON or YAML file."""
    file_path = Path(path)
    with open(file_path, "r", encoding="utf-8") as f:
        if file_path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


class SchemaRepository:
    """Reads one schema definition file per table from a directory."""

    def __init__(self, schemas_dir: Union[str, Path], registry: Optional[GeneratorRegistry] = None):
        self.schemas_dir = Path(schemas_dir)
        self.registry = registry or GeneratorRegistry.default()

    def path_for(self, table: str) -> Path:
        """Path of the schema file for ``table``."""
        for suffix in SCHEMA_SUFFIXES:
            candidate = self.schemas_dir / f"{table}{suffix}"
            if candidate.exists():
                return candidate
        raise FileNotFoundError(f"Missing schema file for {table} in {self.schemas_dir}")

    def available_tables(self) -> List[str]:
        if not self.schemas_dir.is_dir():
            return []
        return sorted(
            p.stem for p in self.schemas_dir.iterdir()
            if p.is_file() and p.suffix.lower() in SCHEMA_SUFFIXES
        )

    def schema_files(self) -> List[Path]:
        if not self.schemas_dir.is_dir():
            return []
        return sorted(
            p for p in self.schemas_dir.iterdir()
            if p.is_file() and p.suffix.lower() in SCHEMA_SUFFIXES
        )

    def load_raw(self, table: str) -> Any:
        return load_document(self.path_for(table))

    def load(self, table: str) -> TableSchema:
        """Load and compile the schema of ``table``."""
        document = self.load_raw(table)
        if not isinstance(document, dict) or document.get("table") != table:
            raise SchemaValidationError({table: [f"Schema for table {table!r} is invalid or mismatched"]})
        return compile_schema(document, self.registry)


class TableGenerator:
    """Generates the rows of one table and records them in the context cache."""

    def __init__(self, evaluator: Optional[RuleEvaluator] = None):
        self.evaluator = evaluator or RuleEvaluator()

    def resolve_count(self, schema: TableSchema, context: GenerationContext) -> int:
        if schema.count.is_fixed:
            return schema.count.fixed
        return context.random.int_between(schema.count.min, schema.count.max)

    def generate(self, schema: TableSchema, context: GenerationContext) -> List[Dict[str, Any]]:
        """Generate rows for ``schema`` and store them under its table name."""
        num_rows = self.resolve_count(schema, context)
        logger.info(f"Generating {num_rows} rows for table: {schema.table}")

        rows = []
        for i in range(num_rows):
            row: Dict[str, Any] = {}
            for column, rule in schema.columns.items():
                row[column] = self.evaluator.evaluate(
                    rule, context, row, path=f"{schema.table}.{column}"
                )
            rows.append(row)

            if (i + 1) % 1000 == 0:
                logger.debug(f"Generated {i + 1}/{num_rows} rows for {schema.table}")

        context.cache.store(schema.table, rows)
        return rows
