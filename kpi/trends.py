"""
kpi/trends.py

Shared pure helpers for means and two-bucket period-over-period trends.

Buckets are keyed by ISO-like strings (``"2024-03-31"``, ``"2024-03"``),
so the most recent bucket is simply the greatest key in descending
string order.  Blank keys never form a bucket.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class BucketTrend:
    """
    Averages of the two most recent buckets and the percentage change between them.
    """

    current_key: str | None
    previous_key: str | None
    current_avg: float
    previous_avg: float
    change_pct: float


def safe_mean(values: Iterable[float]) -> float:
    """Arithmetic mean; ``0.0`` for an empty input."""
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)


def percent_change(current: float, previous: float) -> float:
    """
    ``(current - previous) / previous * 100``.

    Returns ``0.0`` when *previous* is zero.
    """
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def group_by_key(items: Iterable[T], key: Callable[[T], str]) -> dict[str, list[T]]:
    """Group *items* by *key*, preserving first-seen order; blank keys are dropped."""
    groups: dict[str, list[T]] = defaultdict(list)
    for item in items:
        bucket = key(item)
        if bucket:
            groups[bucket].append(item)
    return dict(groups)


def latest_bucket_keys(groups: dict[str, Sequence[T]], count: int = 2) -> list[str]:
    """Return up to *count* bucket keys, most recent first."""
    return sorted(groups, reverse=True)[:count]


def bucket_trend(
    items: Iterable[T],
    key: Callable[[T], str],
    value: Callable[[T], float],
) -> BucketTrend:
    """
    Compare the mean of *value* in the latest bucket against the one before it.

    The change is ``0.0`` when fewer than two distinct buckets exist or the
    earlier bucket averages to zero.
    """
    groups = group_by_key(items, key)
    keys = latest_bucket_keys(groups)
    current_key = keys[0] if keys else None
    previous_key = keys[1] if len(keys) > 1 else None

    current_avg = safe_mean(value(i) for i in groups[current_key]) if current_key else 0.0
    previous_avg = safe_mean(value(i) for i in groups[previous_key]) if previous_key else 0.0
    change = percent_change(current_avg, previous_avg) if previous_key else 0.0

    return BucketTrend(
        current_key=current_key,
        previous_key=previous_key,
        current_avg=current_avg,
        previous_avg=previous_avg,
        change_pct=change,
    )
