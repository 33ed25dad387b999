"""SQLAlchemy repositories for the CloudDeck cost analytics service.

All repositories implement the read interfaces in core/interfaces.py. Each
method opens its own short-lived session from the shared session factory:
the report service fans reads out concurrently and an AsyncSession does not
allow concurrent statements.
"""

from typing import Any

from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from clouddeck_cost.core.filters import UsageFilter
from clouddeck_cost.core.interfaces import (
    DailyServiceTotal,
    DeploymentUtilisation,
    Dimension,
    GroupTotal,
    ProjectBuildStats,
)
from clouddeck_cost.core.models import Deployment, Metric, Project, UsageRecord
from clouddeck_cost.observability import get_logger

logger = get_logger(__name__)

_DIMENSION_COLUMNS = {
    "service": UsageRecord.service,
    "project": UsageRecord.project_id,
    "region": UsageRecord.region,
    "team": UsageRecord.team_id,
}


class _SessionFactoryRepository:
    """Shared plumbing: run one statement in its own session."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        """Initialize with the application session factory."""
        self._session_factory = session_factory

    async def _fetch_all(self, query: Select) -> list[Any]:
        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.all())

    async def _fetch_scalar(self, query: Select) -> Any:
        async with self._session_factory() as session:
            result = await session.execute(query)
            return result.scalar()


def _scope_usage(query: Select, usage_filter: UsageFilter) -> Select:
    """Apply the half-open window and tenant filters to a ledger query."""
    query = query.where(
        UsageRecord.created_at >= usage_filter.start,
        UsageRecord.created_at < usage_filter.end,
    )
    if usage_filter.team_id is not None:
        query = query.where(UsageRecord.team_id == usage_filter.team_id)
    if usage_filter.project_id is not None:
        query = query.where(UsageRecord.project_id == usage_filter.project_id)
    return query


class UsageLedgerRepository(_SessionFactoryRepository):
    """Aggregating reader for cd_usage_records, the billing usage ledger."""

    async def sum_amount(self, usage_filter: UsageFilter) -> float:
        """Aggregate total ledger amount in a window.

        Args:
            usage_filter: Window and tenant scoping.

        Returns:
            Total amount in USD (0.0 if no records).
        """
        query = _scope_usage(select(func.coalesce(func.sum(UsageRecord.amount), 0)), usage_filter)
        return float(await self._fetch_scalar(query) or 0.0)

    async def totals_by(self, usage_filter: UsageFilter, dimension: Dimension) -> list[GroupTotal]:
        """Aggregate ledger amount grouped by one breakdown dimension.

        Args:
            usage_filter: Window and tenant scoping.
            dimension: service | project | region | team

        Returns:
            GroupTotal rows ordered by amount descending, then key ascending.
        """
        column = _DIMENSION_COLUMNS[dimension]
        total = func.sum(UsageRecord.amount)
        query = _scope_usage(
            select(
                column.label("key"),
                total.label("amount"),
                func.count(UsageRecord.id).label("transactions"),
            ),
            usage_filter,
        ).group_by(column).order_by(total.desc(), column.asc())

        rows = await self._fetch_all(query)
        return [
            GroupTotal(key=str(row.key), amount=float(row.amount or 0.0), transactions=int(row.transactions))
            for row in rows
        ]

    async def daily_totals_by_service(self, usage_filter: UsageFilter) -> list[DailyServiceTotal]:
        """Aggregate ledger amount grouped by calendar day and service.

        Args:
            usage_filter: Window and tenant scoping.

        Returns:
            DailyServiceTotal rows ordered by day ascending.
        """
        # Bucket by UTC calendar day regardless of the session TimeZone
        day = func.date(func.timezone("UTC", UsageRecord.created_at))
        query = _scope_usage(
            select(
                day.label("day"),
                UsageRecord.service,
                func.sum(UsageRecord.amount).label("amount"),
            ),
            usage_filter,
        ).group_by(day, UsageRecord.service).order_by(day.asc(), UsageRecord.service.asc())

        rows = await self._fetch_all(query)
        return [
            DailyServiceTotal(day=row.day, service=row.service, amount=float(row.amount or 0.0))
            for row in rows
        ]

    async def build_stats_by_project(self, usage_filter: UsageFilter) -> list[ProjectBuildStats]:
        """Aggregate `builds` ledger rows per project.

        Args:
            usage_filter: Window and tenant scoping.

        Returns:
            One ProjectBuildStats per project with at least one build row.
        """
        query = (
            _scope_usage(
                select(
                    UsageRecord.project_id,
                    func.avg(UsageRecord.quantity).label("avg_duration"),
                    func.sum(UsageRecord.amount).label("total_cost"),
                    func.count(UsageRecord.id).label("build_count"),
                ),
                usage_filter,
            )
            .where(UsageRecord.service == "builds")
            .group_by(UsageRecord.project_id)
            .order_by(UsageRecord.project_id.asc())
        )

        rows = await self._fetch_all(query)
        return [
            ProjectBuildStats(
                project_id=str(row.project_id),
                avg_duration_minutes=float(row.avg_duration or 0.0),
                total_cost=float(row.total_cost or 0.0),
                build_count=int(row.build_count),
            )
            for row in rows
        ]


class ProjectDirectoryRepository(_SessionFactoryRepository):
    """Reader for cd_projects (project display names)."""

    async def get_names(self, project_ids: list[str]) -> dict[str, str]:
        """Look up display names for a set of project ids.

        Args:
            project_ids: Project ids to resolve.

        Returns:
            Mapping of id to name for the projects that exist.
        """
        if not project_ids:
            return {}
        query = select(Project.id, Project.name).where(Project.id.in_(project_ids))
        rows = await self._fetch_all(query)
        return {str(row.id): row.name for row in rows}


class DeploymentMetricsRepository(_SessionFactoryRepository):
    """Reader joining cd_deployments with cd_metrics utilisation samples."""

    async def list_utilisation(
        self,
        usage_filter: UsageFilter,
        status: str | None = None,
        created_in_window: bool = False,
    ) -> list[DeploymentUtilisation]:
        """Average cpu_usage and memory_usage samples per deployment.

        Only samples whose timestamp falls inside the window are averaged;
        deployments without any sample in the window are omitted.

        Args:
            usage_filter: Window and tenant scoping (team/project apply to the deployment).
            status: Optional deployment status filter.
            created_in_window: Restrict to deployments created inside the window.

        Returns:
            DeploymentUtilisation rows ordered by deployment id.
        """
        avg_cpu = func.avg(case((Metric.metric_name == "cpu_usage", Metric.value)))
        avg_memory = func.avg(case((Metric.metric_name == "memory_usage", Metric.value)))

        query = (
            select(
                Deployment.id,
                Deployment.project_id,
                Deployment.instance_units,
                avg_cpu.label("avg_cpu_usage"),
                avg_memory.label("avg_memory_usage"),
            )
            .join(Metric, Metric.deployment_id == Deployment.id)
            .where(
                Metric.metric_name.in_(("cpu_usage", "memory_usage")),
                Metric.timestamp >= usage_filter.start,
                Metric.timestamp < usage_filter.end,
            )
            .group_by(Deployment.id, Deployment.project_id, Deployment.instance_units)
            .order_by(Deployment.id.asc())
        )
        if status is not None:
            query = query.where(Deployment.status == status)
        if created_in_window:
            query = query.where(
                Deployment.created_at >= usage_filter.start,
                Deployment.created_at < usage_filter.end,
            )
        if usage_filter.team_id is not None:
            query = query.where(Deployment.team_id == usage_filter.team_id)
        if usage_filter.project_id is not None:
            query = query.where(Deployment.project_id == usage_filter.project_id)

        rows = await self._fetch_all(query)
        logger.debug("Deployment utilisation loaded", deployments=len(rows), status=status)
        return [
            DeploymentUtilisation(
                deployment_id=str(row.id),
                project_id=str(row.project_id),
                instance_units=float(row.instance_units if row.instance_units is not None else 1.0),
                avg_cpu_usage=float(row.avg_cpu_usage) if row.avg_cpu_usage is not None else None,
                avg_memory_usage=float(row.avg_memory_usage) if row.avg_memory_usage is not None else None,
            )
            for row in rows
        ]
