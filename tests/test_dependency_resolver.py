"""Tests for relation dependencies between tables."""

import pytest

from tenantseed.core.dependency_resolver import DependencyResolver
from tenantseed.core.dsl import compile_schema


def schema(registry, table, **columns):
    return compile_schema({"table": table, "count": 1, "columns": columns or {"name": "x"}}, registry)


@pytest.fixture
def schemas(registry):
    return [
        schema(registry, "renewals", policy_id="relation.policies.id", label="${relation.accounts.name}"),
        schema(registry, "policies", account_id="relation.accounts.id"),
        schema(registry, "accounts", parent_id="relation.accounts.id"),
        schema(registry, "markets"),
    ]


class TestDependencyResolver:
    """Test DependencyResolver."""

    def test_dependency_graph(self, schemas):
        """Test relations, interpolated ones included, and self-references ignored."""
        graph = DependencyResolver(schemas).get_dependency_graph()

        assert graph == {
            "renewals": ["policies", "accounts"],
            "policies": ["accounts"],
            "accounts": [],
            "markets": [],
        }

    def test_topological_sort_puts_parents_first(self, schemas):
        """Test that every table comes after the tables it relates to."""
        order = DependencyResolver(schemas).topological_sort()

        assert sorted(order) == ["accounts", "markets", "policies", "renewals"]
        assert order.index("accounts") < order.index("policies") < order.index("renewals")

    def test_topological_sort_keeps_cycles(self, registry):
        """Test that tables in a relation cycle are still returned."""
        cyclic = [
            schema(registry, "a", b_id="relation.b.id"),
            schema(registry, "b", a_id="relation.a.id"),
        ]
        assert sorted(DependencyResolver(cyclic).topological_sort()) == ["a", "b"]

    def test_consistent_plan(self, schemas):
        """Test a plan for an order that respects every relation."""
        plan = DependencyResolver(schemas).create_plan(["markets", "accounts", "policies", "renewals"])

        assert plan.is_consistent
        assert plan.violations == []
        assert plan.independent_tables == ["markets", "accounts"]

    def test_violations_and_suggested_order(self, schemas):
        """Test a plan for an order that seeds a child before its parent."""
        plan = DependencyResolver(schemas).create_plan(["renewals", "policies", "accounts", "markets"])

        assert not plan.is_consistent
        assert ("renewals", "policies") in plan.violations
        assert ("policies", "accounts") in plan.violations
        assert plan.suggested_order.index("accounts") < plan.suggested_order.index("policies")
        assert DependencyResolver(schemas).find_order_violations(plan.suggested_order) == []

    def test_missing_target_is_a_violation(self, schemas):
        """Test an order that leaves out a relation target."""
        violations = DependencyResolver(schemas).find_order_violations(["policies"])
        assert violations == [("policies", "accounts")]
