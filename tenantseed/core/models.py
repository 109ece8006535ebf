"""Data models for schema representation and configuration."""

from typing import List, Dict, Any, Optional, Union
from dataclasses import dataclass, field
from pydantic import BaseModel, Field, model_validator

from .ordering import SEED_ORDER, RESET_ORDER, check_order_symmetry


DEFAULT_ARRAY_MIN = 1
DEFAULT_ARRAY_MAX = 5


@dataclass(frozen=True)
class ScalarRule:
    """A DSL string together with its parsed operation."""
    text: str
    op: Any


@dataclass(frozen=True)
class ArrayRule:
    """Repeats ``items`` a fixed or random number of times."""
    items: "Rule"
    count: Optional[int] = None
    min: int = DEFAULT_ARRAY_MIN
    max: int = DEFAULT_ARRAY_MAX

    @property
    def is_fixed(self) -> bool:
        return self.count is not None


@dataclass(frozen=True)
class ObjectRule:
    """Builds a mapping from named sub-rules."""
    properties: Dict[str, "Rule"] = field(default_factory=dict)


Rule = Union[ScalarRule, ArrayRule, ObjectRule]


@dataclass(frozen=True)
class RowCount:
    """Row count of a table: fixed, or drawn from an inclusive range."""
    fixed: Optional[int] = None
    min: int = 0
    max: int = 0

    @property
    def is_fixed(self) -> bool:
        return self.fixed is not None


@dataclass
class TableSchema:
    """Compiled definition of one table."""
    table: str
    count: RowCount
    columns: Dict[str, Rule] = field(default_factory=dict)

    def with_count(self, count: int) -> "TableSchema":
        """Copy of this schema generating exactly ``count`` rows."""
        return TableSchema(table=self.table, count=RowCount(fixed=count), columns=self.columns)


@dataclass
class SeedReport:
    """Outcome of a seed, reset or preview pass for one tenant."""
    tenant_id: str
    seed: Optional[int] = None
    table_counts: Dict[str, int] = field(default_factory=dict)
    total_time_seconds: float = 0.0

    @property
    def total_rows(self) -> int:
        return sum(self.table_counts.values())


class SeedConfig(BaseModel):
    """Configuration for a seeding run."""

    schemas_dir: str = Field(default="schemas", description="Directory holding one schema file per table")
    seed_order: List[str] = Field(
        default_factory=lambda: list(SEED_ORDER), description="Tables in insertion order, parents first"
    )
    reset_order: List[str] = Field(
        default_factory=lambda: list(RESET_ORDER), description="Tables in deletion order, children first"
    )
    tenant_column: str = Field(default="tenant_id", description="Column scoping rows to a tenant")
    default_tenant: str = Field(default="design", description="Tenant used when none is given")
    batch_size: int = Field(default=1000, description="Rows per insert statement")
    seed: Optional[int] = Field(
        default=None, description="Random seed override (default: derived from the tenant id)"
    )
    check_relations: bool = Field(
        default=True, description="Check relation targets against seed order before generating"
    )

    @model_validator(mode="after")
    def validate_orders(self):
        problems = check_order_symmetry(self.seed_order, self.reset_order)
        if problems:
            raise ValueError("; ".join(problems))
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        return self
