"""Rating aggregation for services and providers"""

from collections import Counter, OrderedDict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable


def round_rating(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def service_rating(ratings: Iterable[int]) -> tuple[float, int]:
    """Mean of active review ratings (1 decimal) and the review count"""
    ratings = list(ratings)
    if not ratings:
        return 0.0, 0
    return round_rating(sum(ratings) / len(ratings)), len(ratings)


def rating_breakdown(ratings: Iterable[int]) -> dict[int, int]:
    counts = Counter(ratings)
    return {star: counts.get(star, 0) for star in range(1, 6)}


def should_alert(
    previous_average: float, previous_total: int, new_average: float, new_total: int, threshold: float
) -> bool:
    """True when the provider average crosses below the threshold"""
    if new_total == 0 or new_average >= threshold:
        return False
    return previous_total == 0 or previous_average >= threshold


def monthly_counts(timestamps: Iterable) -> "OrderedDict[str, int]":
    counts = Counter(ts.strftime("%Y-%m") for ts in timestamps if ts is not None)
    return OrderedDict(sorted(counts.items()))


def response_rate(responded: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(responded / total * 100, 1)
