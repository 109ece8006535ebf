"""Deterministic random source owned by one generation pass."""

import logging
import math
from datetime import date, timedelta
from typing import Any, Optional, Sequence, Tuple
from faker import Faker


logger = logging.getLogger(__name__)

MAX_SAFE_INTEGER = 2 ** 53 - 1


def stable_seed(tenant_id: str) -> int:
    """Derive a reproducible seed from a tenant identifier.

    Accumulates the UTF-16 code units of the identifier as ``h * 31 + c``,
    folding into a signed 32-bit integer after every step, and returns the
    absolute value of the result.
    """
    encoded = tenant_id.encode("utf-16-le", "surrogatepass")
    value = 0
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
        if value >= 0x80000000:
            value -= 0x100000000
    return abs(value)


def decimal_grid(min_value: float, max_value: float, decimals: int) -> Tuple[int, int]:
    """Bounds, in units of ``10 ** -decimals``, of the grid values inside the range.

    Raises ``ValueError`` when no value with ``decimals`` digits fits.
    """
    scale = 10 ** decimals
    # absorb binary representation error such as 0.1 * 100 == 10.000000000000002
    low = math.ceil(round(min_value * scale, 6))
    high = math.floor(round(max_value * scale, 6))
    if low > high:
        raise ValueError(f"No {decimals}-decimal value between {min_value} and {max_value}")
    return low, high


class RandomSource:
    """Seeded Faker instance plus the helpers the rule evaluator draws from.

    All draws of a pass, including those made by registry generators, go
    through ``self.faker`` and its ``random`` stream, so two sources built
    with the same seed produce the same sequence.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.faker = Faker()
        if seed is not None:
            self.faker.seed_instance(seed)
        self.random = self.faker.random

    def int_between(self, min_value: int, max_value: int) -> int:
        """Uniform integer in ``[min_value, max_value]``."""
        return self.random.randint(min_value, max_value)

    def any_int(self) -> int:
        return self.random.randint(0, MAX_SAFE_INTEGER)

    def float_between(self, min_value: float, max_value: float, decimals: int = 2) -> float:
        """Uniform value of the ``decimals``-digit grid inside ``[min_value, max_value]``."""
        low, high = decimal_grid(min_value, max_value, decimals)
        return self.random.randint(low, high) / 10 ** decimals

    def any_float(self) -> float:
        return self.random.random()

    def choice(self, values: Sequence[Any]) -> Any:
        if not values:
            raise ValueError("Cannot choose from an empty sequence")
        return values[self.random.randrange(len(values))]

    def date_between(self, start: date, end: date) -> date:
        """Uniform calendar date in ``[start, end]``."""
        span = (end - start).days
        return start + timedelta(days=self.random.randint(0, span))

    def days_after(self, base: date, min_days: int, max_days: int) -> date:
        return base + timedelta(days=self.random.randint(min_days, max_days))

    def numeric_string(self, length: int) -> str:
        """Digit string of exactly ``length`` characters without a leading zero."""
        digits = [str(self.random.randint(1, 9))]
        digits.extend(str(self.random.randint(0, 9)) for _ in range(length - 1))
        return "".join(digits)
