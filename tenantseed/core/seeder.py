"""Seed, reset and preview passes over the configured table order."""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from .context import GenerationContext
from .dependency_resolver import DependencyResolver
from .evaluator import RuleEvaluator
from .exceptions import RelationOrderError, SchemaValidationError
from .generator import SchemaRepository, TableGenerator
from .models import SeedConfig, SeedReport, TableSchema
from .registry import GeneratorRegistry
from .validator import SchemaValidator


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class TenantSeeder:
    """Runs validation, generation and persistence for one tenant at a time.

    ``store`` is the persistence collaborator; it needs
    ``insert_returning(table, rows)`` for seeding and
    ``delete_where(table, tenant_id)`` for resetting. It may be ``None`` for
    preview-only use.
    """

    def __init__(self, config: Optional[SeedConfig] = None, store=None,
                 registry: Optional[GeneratorRegistry] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        self.config = config or SeedConfig()
        self.store = store
        self.registry = registry or GeneratorRegistry.default()
        self.repository = SchemaRepository(self.config.schemas_dir, self.registry)
        self.validator = SchemaValidator(self.registry)
        self.generator = TableGenerator(RuleEvaluator(self.registry))
        self.progress_callback = progress_callback

    def _progress(self, message: str) -> None:
        if self.progress_callback:
            self.progress_callback(message)
        else:
            logger.info(message)

    def validate_tables(self, tables: Sequence[str]) -> Dict[str, List[str]]:
        """Validate the schema file of every table; returns errors keyed by table."""
        errors_by_table: Dict[str, List[str]] = {}
        for table in tables:
            try:
                path = self.repository.path_for(table)
            except FileNotFoundError as e:
                errors_by_table[table] = [str(e)]
                continue
            errors = self.validator.validate_file(path, expected_table=table)
            if errors:
                errors_by_table[table] = [str(error) for error in errors]
        return errors_by_table

    def load_schemas(self, tables: Sequence[str]) -> List[TableSchema]:
        """Validate then compile the schemas of ``tables``.

        Raises ``SchemaValidationError`` before compiling anything if any
        table is invalid, and ``RelationOrderError`` if a relation targets a
        table that is not generated earlier in ``tables``.
        """
        errors_by_table = self.validate_tables(tables)
        if errors_by_table:
            raise SchemaValidationError(errors_by_table)

        schemas = [self.repository.load(table) for table in tables]

        if self.config.check_relations:
            violations = DependencyResolver(schemas).find_order_violations(tables)
            if violations:
                table, depends_on = violations[0]
                raise RelationOrderError(
                    depends_on,
                    message=f"Table {table} has a relation to {depends_on}, "
                            f"which is not generated before it in seed order",
                )
        return schemas

    def new_context(self, tenant_id: str) -> GenerationContext:
        return GenerationContext.for_tenant(tenant_id, seed=self.config.seed)

    def seed(self, tenant_id: str) -> SeedReport:
        """Generate and insert every table in seed order."""
        if self.store is None:
            raise RuntimeError("Seeding needs a persistence store")

        start_time = time.time()
        schemas = self.load_schemas(self.config.seed_order)
        context = self.new_context(tenant_id)
        report = SeedReport(tenant_id=tenant_id, seed=context.seed)

        for schema in schemas:
            rows = self.generator.generate(schema, context)
            if not rows:
                report.table_counts[schema.table] = 0
                self._progress(f"Skipped {schema.table} (0 rows) for tenant {tenant_id}")
                continue

            persisted = self.store.insert_returning(schema.table, rows)
            # later relations must see database identifiers
            if persisted:
                context.cache.store(schema.table, persisted)
            report.table_counts[schema.table] = len(rows)
            self._progress(f"Inserted {len(rows)} rows into {schema.table} for tenant {tenant_id}")

        report.total_time_seconds = time.time() - start_time
        self._progress(f"Seeded tenant {tenant_id}")
        return report

    def reset(self, tenant_id: str) -> SeedReport:
        """Delete the tenant's rows from every table in reset order."""
        if self.store is None:
            raise RuntimeError("Resetting needs a persistence store")

        start_time = time.time()
        report = SeedReport(tenant_id=tenant_id)
        for table in self.config.reset_order:
            deleted = self.store.delete_where(table, tenant_id)
            report.table_counts[table] = deleted if isinstance(deleted, int) else 0
            self._progress(f"Deleted rows from {table} for tenant {tenant_id}")

        report.total_time_seconds = time.time() - start_time
        self._progress(f"Reset tenant {tenant_id}")
        return report

    def reseed(self, tenant_id: str) -> SeedReport:
        """Reset then seed the tenant."""
        self.reset(tenant_id)
        report = self.seed(tenant_id)
        self._progress(f"Reseeded tenant {tenant_id}")
        return report

    def generate(self, tenant_id: str, tables: Optional[Sequence[str]] = None,
                 count: Optional[int] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Generate rows without persisting them.

        ``tables`` defaults to the whole seed order; relation targets must be
        included and come first. ``count`` overrides every table's row count.
        """
        tables = list(tables) if tables else list(self.config.seed_order)
        schemas = self.load_schemas(tables)
        context = self.new_context(tenant_id)

        generated = {}
        for schema in schemas:
            if count is not None:
                schema = schema.with_count(count)
            generated[schema.table] = self.generator.generate(schema, context)
            self._progress(f"Generated {len(generated[schema.table])} rows for {schema.table}")
        return generated
