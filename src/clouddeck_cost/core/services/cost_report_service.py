"""Cost report assembly for the CloudDeck cost analytics service.

Implements CostReportService, which backs the cost API endpoints. Reports
are computed fresh on every call and never cached or persisted.

Key invariants:
  - The requested window is validated before any store access.
  - Totals, breakdown, trends and recommendations are independent and run
    concurrently; the report is merged once all of them complete.
  - A report is all-or-nothing unless detector failure isolation is
    enabled, in which case only detector failures are tolerated and the
    report is flagged degraded.
  - The whole computation is bounded by report_timeout_seconds.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import TypeVar

from clouddeck_cost.adapters.cost_forecaster import FORECAST_FACTORS, CostForecaster
from clouddeck_cost.adapters.optimization_advisor import OptimizationAdvisor
from clouddeck_cost.api.schemas import CostBreakdown, CostReport, DailyCostPoint, ForecastResult
from clouddeck_cost.core.errors import ReportTimeoutError
from clouddeck_cost.core.filters import UsageFilter
from clouddeck_cost.core.services.cost_aggregator import CostAggregator
from clouddeck_cost.observability import get_logger
from clouddeck_cost.settings import Settings

logger = get_logger(__name__)

T = TypeVar("T")


class CostReportService:
    """Composes the aggregator, advisor and forecaster into API responses.

    Args:
        aggregator: Ledger aggregation component.
        advisor: Optimization recommendation component.
        forecaster: Linear cost forecaster.
        settings: Service configuration (range limit and timeout).
    """

    def __init__(
        self,
        aggregator: CostAggregator,
        advisor: OptimizationAdvisor,
        forecaster: CostForecaster,
        settings: Settings,
    ) -> None:
        self._aggregator = aggregator
        self._advisor = advisor
        self._forecaster = forecaster
        self._settings = settings

    def build_filter(
        self,
        start: datetime | None,
        end: datetime | None,
        team_id: str | None = None,
        project_id: str | None = None,
    ) -> UsageFilter:
        """Validate the requested window against the configured range limit."""
        return UsageFilter.build(
            start,
            end,
            team_id=team_id,
            project_id=project_id,
            max_range_days=self._settings.max_report_range_days,
        )

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    async def generate_cost_report(
        self,
        start: datetime | None,
        end: datetime | None,
        team_id: str | None = None,
        project_id: str | None = None,
    ) -> CostReport:
        """Generate the full cost report for a window.

        Args:
            start: Window start (inclusive).
            end: Window end (exclusive).
            team_id: Optional team scope.
            project_id: Optional project scope.

        Returns:
            CostReport with summary, breakdown, trends and recommendations.

        Raises:
            InvalidDateRangeError: If the window is missing, inverted or too wide.
            ReportTimeoutError: If generation exceeds report_timeout_seconds.
        """
        usage_filter = self.build_filter(start, end, team_id, project_id)

        (summary, breakdown, trends), (optimization, degraded) = await self._bounded(
            asyncio.gather(
                self._aggregator.compute_report_parts(usage_filter),
                self._advisor.generate_recommendations(usage_filter),
            ),
            operation="cost_report",
        )

        report = CostReport(
            summary=summary,
            breakdown=breakdown,
            trends=trends,
            optimization=optimization,
            generated_at=datetime.now(timezone.utc),
            degraded=degraded,
        )

        logger.info(
            "Cost report generated",
            team_id=usage_filter.team_id,
            project_id=usage_filter.project_id,
            period_start=usage_filter.start.isoformat(),
            period_end=usage_filter.end.isoformat(),
            total_cost=summary.total_cost,
            trend_points=len(trends),
            recommendation_count=len(optimization),
            degraded=degraded,
        )
        return report

    async def get_cost_breakdown(
        self,
        start: datetime | None,
        end: datetime | None,
        team_id: str | None = None,
        project_id: str | None = None,
    ) -> CostBreakdown:
        """Return only the four breakdowns for a window."""
        usage_filter = self.build_filter(start, end, team_id, project_id)
        return await self._bounded(
            self._aggregator.get_cost_breakdown(usage_filter),
            operation="cost_breakdown",
        )

    async def get_cost_trends(
        self,
        start: datetime | None,
        end: datetime | None,
        team_id: str | None = None,
        project_id: str | None = None,
    ) -> list[DailyCostPoint]:
        """Return only the daily trend series for a window."""
        usage_filter = self.build_filter(start, end, team_id, project_id)
        return await self._bounded(
            self._aggregator.get_cost_trends(usage_filter),
            operation="cost_trends",
        )

    # ------------------------------------------------------------------
    # Forecast
    # ------------------------------------------------------------------

    async def generate_cost_forecast(
        self,
        start: datetime | None,
        end: datetime | None,
        team_id: str | None = None,
    ) -> ForecastResult:
        """Forecast from the daily trend series of a historical window.

        Args:
            start: Historical window start (inclusive).
            end: Historical window end (exclusive).
            team_id: Optional team scope.

        Returns:
            ForecastResult with the projection factors attached.
        """
        usage_filter = self.build_filter(start, end, team_id)
        trends = await self._bounded(
            self._aggregator.get_cost_trends(usage_filter),
            operation="cost_forecast",
        )

        forecast = self._forecaster.calculate_linear_forecast(trends)
        forecast.factors = list(FORECAST_FACTORS)

        logger.info(
            "Cost forecast generated",
            team_id=usage_filter.team_id,
            data_points=forecast.data_points,
            next_month=forecast.next_month,
            next_quarter=forecast.next_quarter,
            confidence=forecast.confidence,
            status=forecast.status,
        )
        return forecast

    async def _bounded(self, awaitable: Awaitable[T], operation: str) -> T:
        """Await with the configured report timeout."""
        timeout = self._settings.report_timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Cost computation timed out", operation=operation, timeout_seconds=timeout)
            raise ReportTimeoutError(f"{operation} did not complete within {timeout:g} seconds") from exc
