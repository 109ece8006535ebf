"""
tenantseed - Schema-driven synthetic data for multi-tenant databases.

This package provides tools to:
- Describe each table's columns with a small rule DSL
- Validate schema files before any data is generated
- Generate relationally consistent, reproducible rows per tenant
- Seed and reset a tenant's data in dependency-safe order
"""

__version__ = "1.0.0"

from tenantseed.core.context import GenerationContext
from tenantseed.core.generator import SchemaRepository, TableGenerator
from tenantseed.core.evaluator import RuleEvaluator
from tenantseed.core.validator import SchemaValidator
from tenantseed.core.seeder import TenantSeeder

__all__ = [
    "GenerationContext",
    "SchemaRepository",
    "TableGenerator",
    "RuleEvaluator",
    "SchemaValidator",
    "TenantSeeder",
]
