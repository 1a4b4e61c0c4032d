"""
anomaly/recommendations.py

Rule-based recommendations derived from close-cycle and error-rate data.

Both rules are evaluated independently; the close-cycle rule is emitted
before the automation rule and the combined list is capped at three.
"""

from __future__ import annotations

from typing import Sequence

from app.domain.dashboard import Recommendation
from app.domain.records import ProcessEfficiencyRecord

CLOSE_TARGET_DAYS: float = 5.0
CLOSE_HIGH_PRIORITY_DAYS: float = 8.0
MANUAL_ERROR_RATE_THRESHOLD: float = 3.0
MANUAL_HIGH_PRIORITY_ERROR_RATE: float = 5.0
MAX_MANUAL_CANDIDATES: int = 5
MAX_RECOMMENDATIONS: int = 3
MONTHS_PER_YEAR: int = 12


def manual_process_candidates(
    records: Sequence[ProcessEfficiencyRecord],
    *,
    threshold: float = MANUAL_ERROR_RATE_THRESHOLD,
    limit: int = MAX_MANUAL_CANDIDATES,
) -> list[ProcessEfficiencyRecord]:
    """
    Processes whose error rate exceeds *threshold*, first *limit* in input order.

    Candidates are deliberately not ranked by severity or cost; see DESIGN.md.
    """
    return [r for r in records if r.error_rate > threshold][:limit]


def _format_amount(value: float) -> str:
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


class RecommendationEngine:
    """Derives the ranked recommendation list. Pure; no I/O."""

    def derive(
        self,
        *,
        avg_close_days: float,
        manual_processes: Sequence[ProcessEfficiencyRecord],
    ) -> list[Recommendation]:
        """Evaluate both rules and return at most three recommendations.

        Args:
            avg_close_days: Mean close days over the filtered financial records.
            manual_processes: Output of :func:`manual_process_candidates`.

        Returns:
            Recommendations in generation order.
        """
        recommendations: list[Recommendation] = []

        close = self._close_cycle(avg_close_days)
        if close is not None:
            recommendations.append(close)

        automation = self._automation(manual_processes)
        if automation is not None:
            recommendations.append(automation)

        return recommendations[:MAX_RECOMMENDATIONS]

    def _close_cycle(self, avg_close_days: float) -> Recommendation | None:
        if avg_close_days <= CLOSE_TARGET_DAYS:
            return None
        gap = avg_close_days - CLOSE_TARGET_DAYS
        return Recommendation(
            priority="high" if avg_close_days > CLOSE_HIGH_PRIORITY_DAYS else "medium",
            title="Reduce Close Cycle Time",
            description=(
                f"Current average is {avg_close_days:.1f} days, "
                f"{gap:.1f} days above the {CLOSE_TARGET_DAYS:.0f}-day target."
            ),
            details=(
                "Focus on departments with highest close times. Consider automation of "
                "reconciliation tasks and parallel processing of independent activities."
            ),
        )

    def _automation(
        self, manual_processes: Sequence[ProcessEfficiencyRecord]
    ) -> Recommendation | None:
        if not manual_processes:
            return None
        top = manual_processes[0]
        annual_cost = top.cost * MONTHS_PER_YEAR
        return Recommendation(
            priority="high" if top.error_rate > MANUAL_HIGH_PRIORITY_ERROR_RATE else "medium",
            title=f"Automate {top.process_name}",
            description=f"{top.error_rate:.1f}% error rate - high potential for improvement.",
            details=(
                f"Estimated annual cost: ${_format_amount(annual_cost)}. Automation could "
                "reduce errors by up to 80% and save processing time."
            ),
        )
