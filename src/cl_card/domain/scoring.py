"""Placeholder credit scoring for new CREDIT cards.

The score is uniform random in [0, 100] and maps linearly onto the
credit limit: limit = 100 + (score / 100) * (10_000_000 - 100).
Not a real credit assessment.
"""

import random
from decimal import Decimal

from src.cl_common.money import to_money

MIN_CREDIT_LIMIT = Decimal("100")
MAX_CREDIT_LIMIT = Decimal("10000000")


def draw_score(rng: random.Random) -> int:
    return rng.randint(0, 100)


def credit_limit_for_score(score: int) -> Decimal:
    if not (0 <= score <= 100):
        raise ValueError(f"score must be between 0 and 100, got {score}")
    span = MAX_CREDIT_LIMIT - MIN_CREDIT_LIMIT
    return to_money(MIN_CREDIT_LIMIT + (Decimal(score) / Decimal(100)) * span)
