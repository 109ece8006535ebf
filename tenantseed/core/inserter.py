"""Persistence of generated rows and tenant-scoped deletion."""

import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import MetaData, Table, delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from .database import DatabaseConnection
from .exceptions import PersistenceError


logger = logging.getLogger(__name__)


class DataInserter:
    """Inserts generated rows, returning them with server-assigned values."""

    def __init__(self, db_connection: DatabaseConnection, tenant_column: str = "tenant_id",
                 batch_size: int = 1000, show_progress: bool = True):
        """Initialize data inserter."""
        self.db_connection = db_connection
        self.tenant_column = tenant_column
        self.batch_size = batch_size
        self.show_progress = show_progress
        self._metadata = MetaData()
        self._tables: Dict[str, Table] = {}

    def _table(self, table_name: str) -> Table:
        if table_name not in self._tables:
            self._tables[table_name] = Table(
                table_name, self._metadata, autoload_with=self.db_connection.engine
            )
        return self._tables[table_name]

    def insert_returning(self, table_name: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert ``rows`` and return them as stored, identifiers included."""
        if not rows:
            logger.warning(f"No data to insert for table: {table_name}")
            return []

        logger.info(f"Inserting {len(rows)} rows into table: {table_name}")
        start_time = time.time()
        persisted: List[Dict[str, Any]] = []

        try:
            table = self._table(table_name)
            batches = [rows[i:i + self.batch_size] for i in range(0, len(rows), self.batch_size)]

            with tqdm(total=len(rows), desc=f"Inserting {table_name}", disable=not self.show_progress) as pbar:
                for i, batch in enumerate(batches):
                    persisted.extend(self._insert_batch(table, batch))
                    pbar.update(len(batch))
                    logger.debug(f"Batch {i + 1}/{len(batches)} completed: {len(batch)} rows")

        except SQLAlchemyError as e:
            logger.error(f"Failed to insert data into {table_name}: {e}")
            raise PersistenceError(table_name, "insert", e)

        logger.info(f"Inserted {len(persisted)} rows into {table_name} "
                    f"in {time.time() - start_time:.2f} seconds")
        return persisted

    def _insert_batch(self, table: Table, batch: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert one batch inside its own transaction."""
        engine = self.db_connection.engine
        with engine.begin() as conn:
            if engine.dialect.insert_executemany_returning_sort_by_parameter_order:
                statement = insert(table).returning(*table.c, sort_by_parameter_order=True)
                result = conn.execute(statement, batch)
                return [dict(r._mapping) for r in result]

            # no RETURNING for executemany (e.g. MySQL): one statement per row
            stored = []
            for row in batch:
                result = conn.execute(insert(table), row)
                keys = dict(zip((c.name for c in table.primary_key.columns), result.inserted_primary_key or ()))
                stored.append({**row, **keys})
            return stored

    def delete_where(self, table_name: str, tenant_id: str) -> int:
        """Delete every row of ``table_name`` owned by ``tenant_id``."""
        try:
            table = self._table(table_name)
            if self.tenant_column not in table.c:
                raise PersistenceError(
                    table_name, "delete", KeyError(f"table has no column {self.tenant_column!r}")
                )
            with self.db_connection.engine.begin() as conn:
                result = conn.execute(delete(table).where(table.c[self.tenant_column] == tenant_id))
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete from {table_name}: {e}")
            raise PersistenceError(table_name, "delete", e)

        deleted = result.rowcount if result.rowcount is not None and result.rowcount >= 0 else 0
        logger.info(f"Deleted {deleted} rows from {table_name} for tenant {tenant_id}")
        return deleted

    def distinct_tenants(self, table_name: str) -> List[str]:
        """Tenant identifiers that own at least one row of ``table_name``."""
        try:
            table = self._table(table_name)
            column = table.c[self.tenant_column]
            statement = select(column).where(column.is_not(None)).distinct().order_by(column)
            with self.db_connection.engine.connect() as conn:
                return [value for (value,) in conn.execute(statement)]
        except (SQLAlchemyError, KeyError) as e:
            raise PersistenceError(table_name, "read", e)

    def get_table_row_count(self, table_name: str, tenant_id: Optional[str] = None) -> int:
        """Row count of a table, optionally limited to one tenant."""
        table = self._table(table_name)
        statement = select(func.count()).select_from(table)
        if tenant_id is not None:
            statement = statement.where(table.c[self.tenant_column] == tenant_id)
        with self.db_connection.engine.connect() as conn:
            return conn.execute(statement).scalar_one()
