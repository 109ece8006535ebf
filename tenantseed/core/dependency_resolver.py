"""Table dependencies derived from relation rules, and seed order checks."""

import logging
from typing import Dict, List, Sequence, Tuple
from collections import defaultdict, deque
from dataclasses import dataclass, field

from .dsl import RelationRef, iter_scalar_ops
from .models import TableSchema

logger = logging.getLogger(__name__)


@dataclass
class TableDependency:
    """A column of ``table`` copies values from ``depends_on``."""
    table: str
    depends_on: str
    column: str
    referenced_column: str


@dataclass
class InsertionPlan:
    """Configured seed order annotated with its relation dependencies."""
    insertion_order: List[str]
    dependency_graph: Dict[str, List[str]]
    violations: List[Tuple[str, str]] = field(default_factory=list)
    independent_tables: List[str] = field(default_factory=list)
    suggested_order: List[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.violations


class DependencyResolver:
    """Builds the relation graph of a set of compiled schemas."""

    def __init__(self, schemas: Sequence[TableSchema]):
        self.schemas = {schema.table: schema for schema in schemas}
        self.dependencies: Dict[str, List[TableDependency]] = defaultdict(list)
        self._build_dependency_graph()

    def _build_dependency_graph(self):
        for schema in self.schemas.values():
            for column, rule in schema.columns.items():
                for op in iter_scalar_ops(rule):
                    if isinstance(op, RelationRef) and op.table != schema.table:
                        self.dependencies[schema.table].append(TableDependency(
                            table=schema.table,
                            depends_on=op.table,
                            column=column,
                            referenced_column=op.column,
                        ))

    def get_dependency_graph(self) -> Dict[str, List[str]]:
        """Simplified graph (table -> distinct tables it depends on)."""
        graph = {}
        for table in self.schemas:
            deps = []
            for dep in self.dependencies[table]:
                if dep.depends_on not in deps:
                    deps.append(dep.depends_on)
            graph[table] = deps
        return graph

    def find_order_violations(self, order: Sequence[str]) -> List[Tuple[str, str]]:
        """Pairs ``(table, depends_on)`` whose target is missing or not earlier in ``order``."""
        position = {table: index for index, table in enumerate(order)}
        violations = []
        for table, deps in self.get_dependency_graph().items():
            if table not in position:
                continue
            for dep in deps:
                if dep not in position or position[dep] > position[table]:
                    violations.append((table, dep))
        return violations

    def topological_sort(self) -> List[str]:
        """Order the known tables parents first (Kahn's algorithm)."""
        in_degree = defaultdict(int)
        graph = defaultdict(list)
        all_tables = list(self.schemas)

        for table, deps in self.get_dependency_graph().items():
            in_degree[table] += 0
            for dep in deps:
                if dep in self.schemas:
                    graph[dep].append(table)
                    in_degree[table] += 1

        queue = deque([table for table in all_tables if in_degree[table] == 0])
        result = []

        while queue:
            table = queue.popleft()
            result.append(table)
            for dependent in graph[table]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(all_tables):
            remaining = [t for t in all_tables if t not in result]
            logger.warning(f"Circular relations detected in tables: {remaining}")
            result.extend(remaining)

        return result

    def create_plan(self, order: Sequence[str]) -> InsertionPlan:
        graph = self.get_dependency_graph()
        return InsertionPlan(
            insertion_order=list(order),
            dependency_graph=graph,
            violations=self.find_order_violations(order),
            independent_tables=[table for table in order if not graph.get(table)],
            suggested_order=self.topological_sort(),
        )
