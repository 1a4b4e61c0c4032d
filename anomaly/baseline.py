"""
anomaly/baseline.py

Error-rate baseline statistics and two-sigma outlier detection.

The mean and *population* standard deviation (divide by N) are computed
over every process record.  Arithmetic runs on exact fractions so that a
value sitting exactly on the two-sigma boundary is classified the same way
every time; a record is an outlier only when its deviation is strictly
greater than twice the standard deviation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Sequence

from app.domain.records import ProcessEfficiencyRecord

OUTLIER_SIGMA: int = 2


@dataclass(frozen=True)
class ErrorRateBaseline:
    """Baseline error-rate statistics over the full process collection."""

    avg_error_rate: float
    std_dev: float
    sample_size: int
    current_month: str
    current_month_avg_error: float
    outliers: tuple[ProcessEfficiencyRecord, ...] = field(default_factory=tuple)


class BaselineCalculator:
    """Computes :class:`ErrorRateBaseline` from process records.

    No I/O, no side effects.
    """

    def __init__(self, sigma: int = OUTLIER_SIGMA) -> None:
        self._sigma = sigma

    def compute(self, records: Sequence[ProcessEfficiencyRecord]) -> ErrorRateBaseline:
        """Compute baseline, current month and outliers.

        Args:
            records: Every process record, in fetch order.

        Returns:
            An ``ErrorRateBaseline``; all figures are ``0`` and ``current_month``
            is empty when *records* is empty.
        """
        rates = [Fraction(r.error_rate) for r in records]
        mean = _mean(rates)
        variance = _mean([(rate - mean) ** 2 for rate in rates])

        month = current_month(records)
        month_rates = [Fraction(r.error_rate) for r in records if month and r.date.startswith(month)]

        # |x - mean| > k * sigma  <=>  (x - mean)^2 > k^2 * variance
        limit = self._sigma**2 * variance
        outliers = tuple(
            r for r, rate in zip(records, rates) if (rate - mean) ** 2 > limit
        )

        return ErrorRateBaseline(
            avg_error_rate=float(mean),
            std_dev=math.sqrt(variance),
            sample_size=len(rates),
            current_month=month,
            current_month_avg_error=float(_mean(month_rates)),
            outliers=outliers,
        )


def current_month(records: Sequence[ProcessEfficiencyRecord]) -> str:
    """Year-month (``YYYY-MM``) of the lexicographically greatest non-blank ``date``."""
    dates = [r.date for r in records if r.date]
    return max(dates)[:7] if dates else ""


def _mean(values: Sequence[Fraction]) -> Fraction:
    if not values:
        return Fraction(0)
    return sum(values, Fraction(0)) / len(values)
