"""Test configuration and fixtures for tenantseed tests."""

import json
import pytest
from pathlib import Path

from sqlalchemy import JSON, Column, Float, Integer, MetaData, String, Table, create_engine

from tenantseed.core.context import GenerationContext
from tenantseed.core.database import DatabaseConfig, DatabaseConnection
from tenantseed.core.evaluator import RuleEvaluator
from tenantseed.core.exceptions import PersistenceError
from tenantseed.core.models import SeedConfig
from tenantseed.core.registry import GeneratorRegistry


WIDGETS_SCHEMA = {
    "table": "widgets",
    "count": 3,
    "columns": {
        "id": "number.int:1:1000",
        "tag": "helpers.arrayElement:red:green:blue",
    },
}

CUSTOMERS_SCHEMA = {
    "table": "customers",
    "count": 4,
    "columns": {
        "tenant_id": "context.tenant_id",
        "name": "company.name",
        "profile": {
            "type": "object",
            "properties": {
                "email": "internet.email",
                "tier": "helpers.arrayElement:gold:silver:bronze",
            },
        },
    },
}

ORDERS_SCHEMA = {
    "table": "orders",
    "count": {"min": 5, "max": 8},
    "columns": {
        "tenant_id": "context.tenant_id",
        "customer_id": "relation.customers.id",
        "total": "finance.amount:10:500",
        "reference": "ORD-${string.numeric:6}",
    },
}


class FakeStore:
    """In-memory persistence collaborator assigning sequential ids."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = []
        self.inserted = {}
        self._next_id = 100

    def insert_returning(self, table, rows):
        self.calls.append(("insert", table))
        if table == self.fail_on:
            raise PersistenceError(table, "insert", RuntimeError("rejected by store"))
        persisted = []
        for row in rows:
            persisted.append({**row, "id": self._next_id})
            self._next_id += 1
        self.inserted[table] = persisted
        return persisted

    def delete_where(self, table, tenant_id):
        self.calls.append(("delete", table, tenant_id))
        return 0


def write_schema(directory: Path, document: dict) -> Path:
    path = directory / f"{document['table']}.json"
    path.write_text(json.dumps(document, indent=2))
    return path


@pytest.fixture
def registry():
    return GeneratorRegistry.default()


@pytest.fixture
def evaluator(registry):
    return RuleEvaluator(registry)


@pytest.fixture
def context():
    return GenerationContext.for_tenant("acme")


@pytest.fixture
def schema_dir(tmp_path):
    """Directory with customers and orders schema files."""
    directory = tmp_path / "schemas"
    directory.mkdir()
    write_schema(directory, CUSTOMERS_SCHEMA)
    write_schema(directory, ORDERS_SCHEMA)
    return directory


@pytest.fixture
def seed_config(schema_dir):
    return SeedConfig(
        schemas_dir=str(schema_dir),
        seed_order=["customers", "orders"],
        reset_order=["orders", "customers"],
    )


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def sqlite_path(tmp_path):
    """SQLite database file with customers and orders tables."""
    path = tmp_path / "tenants.db"
    engine = create_engine(f"sqlite:///{path}")
    metadata = MetaData()
    Table(
        "customers", metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("tenant_id", String(64), nullable=False),
        Column("name", String(255)),
        Column("profile", JSON),
    )
    Table(
        "orders", metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("tenant_id", String(64), nullable=False),
        Column("customer_id", Integer),
        Column("total", Float),
        Column("reference", String(32)),
    )
    metadata.create_all(engine)
    engine.dispose()
    return path


@pytest.fixture
def sqlite_connection(sqlite_path):
    connection = DatabaseConnection(DatabaseConfig(driver="sqlite", database=str(sqlite_path)))
    connection.connect()
    yield connection
    connection.close()
