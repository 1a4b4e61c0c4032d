"""
anomaly/orchestrator.py

Coordinates baseline statistics, manual-process candidate selection and
recommendation rules into one report. Contains no statistics or rule logic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from anomaly.baseline import BaselineCalculator, ErrorRateBaseline
from anomaly.recommendations import RecommendationEngine, manual_process_candidates
from app.domain.dashboard import Recommendation
from app.domain.records import ProcessEfficiencyRecord

logger = logging.getLogger(__name__)

MAX_REPORTED_OUTLIERS = 3


@dataclass(frozen=True)
class AnomalyReport:
    baseline: ErrorRateBaseline
    manual_processes: tuple[ProcessEfficiencyRecord, ...] = field(default_factory=tuple)
    recommendations: tuple[Recommendation, ...] = field(default_factory=tuple)

    @property
    def top_outliers(self) -> tuple[ProcessEfficiencyRecord, ...]:
        """First three outliers in input order."""
        return self.baseline.outliers[:MAX_REPORTED_OUTLIERS]


class AnomalyOrchestrator:
    """Builds an :class:`AnomalyReport` from the full process collection."""

    def __init__(
        self,
        *,
        calculator: BaselineCalculator | None = None,
        engine: RecommendationEngine | None = None,
    ) -> None:
        self._calculator = calculator or BaselineCalculator()
        self._engine = engine or RecommendationEngine()

    def analyze(
        self,
        process_records: Sequence[ProcessEfficiencyRecord],
        *,
        avg_close_days: float,
    ) -> AnomalyReport:
        """
        Args:
            process_records: Every fetched process record (unfiltered).
            avg_close_days: Mean close days over the filtered financial view.
        """
        baseline = self._calculator.compute(process_records)
        manual = manual_process_candidates(process_records)
        recommendations = self._engine.derive(
            avg_close_days=avg_close_days,
            manual_processes=manual,
        )
        logger.debug(
            "Anomaly analysis records=%d baseline=%.4f std=%.4f outliers=%d recommendations=%d",
            baseline.sample_size,
            baseline.avg_error_rate,
            baseline.std_dev,
            len(baseline.outliers),
            len(recommendations),
        )
        return AnomalyReport(
            baseline=baseline,
            manual_processes=tuple(manual),
            recommendations=tuple(recommendations),
        )
