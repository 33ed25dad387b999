"""Cost aggregation over the billing usage ledger.

Key invariants:
  - All windows are half-open: [start, end).
  - change_percent is 0 when the previous period has no spend, never NaN.
  - Every breakdown percentage uses the same zero guard.
  - Empty windows produce empty lists, never None.
"""
from __future__ import annotations

import asyncio
from datetime import date

from clouddeck_cost.api.schemas import (
    CostBreakdown,
    CostSummary,
    DailyCostPoint,
    ProjectCost,
    RegionCost,
    ServiceCost,
    TeamCost,
)
from clouddeck_cost.core.filters import UsageFilter
from clouddeck_cost.core.interfaces import GroupTotal, IProjectDirectory, IUsageLedger
from clouddeck_cost.observability import get_logger

logger = get_logger(__name__)

UNKNOWN_PROJECT_NAME = "Unknown"


def _percentage(amount: float, total: float) -> float:
    return round(amount / total * 100.0, 2) if total > 0 else 0.0


class CostAggregator:
    """Groups ledger amounts into the summary, breakdown and trend views.

    Delegates all I/O to injected readers; the group-bys themselves run in
    the store.

    Args:
        ledger: Usage ledger reader.
        projects: Project display-name lookup.
        top_projects_limit: Number of projects kept in the project breakdown.
    """

    def __init__(
        self,
        ledger: IUsageLedger,
        projects: IProjectDirectory,
        top_projects_limit: int = 10,
    ) -> None:
        self._ledger = ledger
        self._projects = projects
        self._top_projects_limit = top_projects_limit

    async def compute_report_parts(
        self, usage_filter: UsageFilter
    ) -> tuple[CostSummary, CostBreakdown, list[DailyCostPoint]]:
        """Compute the summary, breakdown and trends of a report concurrently."""
        summary, breakdown, trends = await asyncio.gather(
            self.calculate_total_costs(usage_filter),
            self.get_cost_breakdown(usage_filter),
            self.get_cost_trends(usage_filter),
        )
        return summary, breakdown, trends

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def calculate_total_costs(self, usage_filter: UsageFilter) -> CostSummary:
        """Sum the window and the same-length preceding window.

        Args:
            usage_filter: Report window and tenant scoping.

        Returns:
            CostSummary with change and change_percent against the previous period.
        """
        current, previous = await asyncio.gather(
            self._ledger.sum_amount(usage_filter),
            self._ledger.sum_amount(usage_filter.previous()),
        )
        # change is derived from the rounded totals so it matches them exactly
        current = round(current or 0.0, 2)
        previous = round(previous or 0.0, 2)
        change = round(current - previous, 2)
        change_percent = change / previous * 100.0 if previous > 0 else 0.0

        return CostSummary(
            total_cost=current,
            previous_period=previous,
            change=change,
            change_percent=round(change_percent, 2),
        )

    # ------------------------------------------------------------------
    # Breakdown
    # ------------------------------------------------------------------

    async def get_cost_breakdown(self, usage_filter: UsageFilter) -> CostBreakdown:
        """Run the four breakdown aggregations concurrently."""
        by_service, by_project, by_region, by_team = await asyncio.gather(
            self.get_costs_by_service(usage_filter),
            self.get_costs_by_project(usage_filter),
            self.get_costs_by_region(usage_filter),
            self.get_costs_by_team(usage_filter),
        )
        return CostBreakdown(
            by_service=by_service,
            by_project=by_project,
            by_region=by_region,
            by_team=by_team,
        )

    async def get_costs_by_service(self, usage_filter: UsageFilter) -> list[ServiceCost]:
        rows = _sorted(await self._ledger.totals_by(usage_filter, "service"))
        total = sum(row.amount for row in rows)
        return [
            ServiceCost(
                service=row.key,
                amount=round(row.amount, 2),
                transactions=row.transactions,
                percentage=_percentage(row.amount, total),
            )
            for row in rows
        ]

    async def get_costs_by_project(self, usage_filter: UsageFilter) -> list[ProjectCost]:
        """Top projects by amount, with display names joined in.

        Percentages are relative to the window total across all projects,
        not only the ones kept after truncation.
        """
        rows = _sorted(await self._ledger.totals_by(usage_filter, "project"))
        total = sum(row.amount for row in rows)
        top = rows[: self._top_projects_limit]
        names = await self._projects.get_names([row.key for row in top])

        return [
            ProjectCost(
                project_id=row.key,
                project_name=names.get(row.key) or UNKNOWN_PROJECT_NAME,
                amount=round(row.amount, 2),
                percentage=_percentage(row.amount, total),
            )
            for row in top
        ]

    async def get_costs_by_region(self, usage_filter: UsageFilter) -> list[RegionCost]:
        rows = _sorted(await self._ledger.totals_by(usage_filter, "region"))
        total = sum(row.amount for row in rows)
        return [
            RegionCost(region=row.key, amount=round(row.amount, 2), percentage=_percentage(row.amount, total))
            for row in rows
        ]

    async def get_costs_by_team(self, usage_filter: UsageFilter) -> list[TeamCost]:
        rows = _sorted(await self._ledger.totals_by(usage_filter, "team"))
        total = sum(row.amount for row in rows)
        return [
            TeamCost(team_id=row.key, amount=round(row.amount, 2), percentage=_percentage(row.amount, total))
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Trends
    # ------------------------------------------------------------------

    async def get_cost_trends(self, usage_filter: UsageFilter) -> list[DailyCostPoint]:
        """Reshape (day, service) totals into one point per day, ascending.

        Args:
            usage_filter: Report window and tenant scoping.

        Returns:
            DailyCostPoint list; each total is the sum of its services.
        """
        rows = await self._ledger.daily_totals_by_service(usage_filter)

        by_day: dict[date, dict[str, float]] = {}
        for row in sorted(rows, key=lambda r: r.day):
            services = by_day.setdefault(row.day, {})
            services[row.service] = services.get(row.service, 0.0) + row.amount

        trends = [
            DailyCostPoint(
                day=day,
                total=round(sum(services.values()), 2),
                services={name: round(amount, 2) for name, amount in services.items()},
            )
            for day, services in by_day.items()
        ]

        logger.debug("Cost trends computed", days=len(trends), team_id=usage_filter.team_id)
        return trends


def _sorted(rows: list[GroupTotal]) -> list[GroupTotal]:
    # Amount descending, key ascending for ties
    return sorted(rows, key=lambda row: (-row.amount, row.key))
