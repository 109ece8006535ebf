"""Per-pass generation state: tenant, random source and generated-row cache."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .random_source import RandomSource, stable_seed


logger = logging.getLogger(__name__)


class TableCache:
    """Rows generated (or persisted) so far in one pass, keyed by table name."""

    def __init__(self):
        self._rows: Dict[str, List[Dict[str, Any]]] = {}

    def store(self, table: str, rows: List[Dict[str, Any]]) -> None:
        """Replace the cached rows of ``table``."""
        self._rows[table] = list(rows)
        logger.debug(f"Cached {len(rows)} rows for {table}")

    def rows(self, table: str) -> Optional[List[Dict[str, Any]]]:
        return self._rows.get(table)

    def has_rows(self, table: str) -> bool:
        return bool(self._rows.get(table))


@dataclass
class GenerationContext:
    """State threaded through every rule evaluation of one tenant pass."""
    tenant_id: str
    seed: int
    random: RandomSource
    cache: TableCache = field(default_factory=TableCache)

    @classmethod
    def for_tenant(cls, tenant_id: str, seed: Optional[int] = None) -> "GenerationContext":
        """Build a fresh context, deriving the seed from the tenant id unless given."""
        if seed is None:
            seed = stable_seed(tenant_id)
        logger.debug(f"Seeding generation for tenant {tenant_id} with {seed}")
        return cls(tenant_id=tenant_id, seed=seed, random=RandomSource(seed))
