"""Static table ordering for seeding and resetting a tenant."""

from typing import List, Sequence


# Parents first, then children.
SEED_ORDER = [
    "markets",
    "industries",
    "account_managers",
    "producers",
    "account_executives",
    "efforts",
    "retention_summary",
    "retention_insights",
    "renewals_products",
    "accounts",
    "policies",
    "renewals",
]

# Children first, then parents. Must stay the exact reverse of SEED_ORDER.
RESET_ORDER = [
    "renewals",
    "policies",
    "accounts",
    "renewals_products",
    "retention_insights",
    "retention_summary",
    "efforts",
    "account_executives",
    "producers",
    "account_managers",
    "industries",
    "markets",
]


def check_order_symmetry(seed_order: Sequence[str], reset_order: Sequence[str]) -> List[str]:
    """Return problems found when comparing a seed order with its reset order."""
    problems = []

    duplicates = sorted({t for t in seed_order if list(seed_order).count(t) > 1})
    if duplicates:
        problems.append(f"seed order lists tables more than once: {', '.join(duplicates)}")

    missing_from_reset = [t for t in seed_order if t not in reset_order]
    if missing_from_reset:
        problems.append(f"tables missing from reset order: {', '.join(missing_from_reset)}")

    missing_from_seed = [t for t in reset_order if t not in seed_order]
    if missing_from_seed:
        problems.append(f"tables missing from seed order: {', '.join(missing_from_seed)}")

    if not problems and list(reset_order) != list(reversed(seed_order)):
        problems.append("reset order must be the exact reverse of seed order")

    return problems
