"""
Reviewee rating aggregation.

Every new review triggers a full re-scan of the reviewee's received
ratings: ``rating`` becomes their arithmetic mean rounded half-up to one
decimal, ``review_count`` the total.

Complexity: O(n) per review, n = reviews received by that user.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable


def aggregate_rating(ratings: Iterable[int]) -> tuple[float, int]:
    """Return ``(rating, review_count)`` for the given ratings."""
    values = list(ratings)
    if not values:
        return 0.0, 0
    mean = Decimal(sum(values)) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)), len(values)
