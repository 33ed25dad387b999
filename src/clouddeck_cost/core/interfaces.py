"""Abstract interfaces (Protocol classes) for the CloudDeck cost analytics service.

The aggregator, detectors and report service depend on these interfaces, not
on the SQLAlchemy repositories, so tests can substitute in-memory fakes.
Aggregate rows are returned as small frozen dataclasses rather than ORM
objects because every read here is a GROUP BY.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal, Protocol, runtime_checkable

from clouddeck_cost.core.filters import UsageFilter

Dimension = Literal["service", "project", "region", "team"]


@dataclass(frozen=True)
class GroupTotal:
    """Summed ledger amount for one value of a breakdown dimension."""

    key: str
    amount: float
    transactions: int = 0


@dataclass(frozen=True)
class DailyServiceTotal:
    """Summed ledger amount for one (day, service) pair."""

    day: date
    service: str
    amount: float


@dataclass(frozen=True)
class ProjectBuildStats:
    """Build-minute statistics for one project, from `builds` ledger rows."""

    project_id: str
    avg_duration_minutes: float
    total_cost: float
    build_count: int


@dataclass(frozen=True)
class DeploymentUtilisation:
    """Average utilisation of a deployment over a window.

    Either average is None when the deployment has no samples of that metric
    inside the window.
    """

    deployment_id: str
    project_id: str
    instance_units: float = 1.0
    avg_cpu_usage: float | None = None
    avg_memory_usage: float | None = None


@dataclass(frozen=True)
class StorageVolume:
    """A storage volume reported as unattached by a cloud provider inventory."""

    volume_id: str
    size_gb: float
    provider: str
    region: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class IUsageLedger(Protocol):
    """Read interface over the append-only billing usage ledger."""

    async def sum_amount(self, usage_filter: UsageFilter) -> float:
        """Total ledger amount in the window (0.0 when empty)."""
        ...

    async def totals_by(self, usage_filter: UsageFilter, dimension: Dimension) -> list[GroupTotal]:
        """Amount and row count grouped by a dimension, ordered by amount descending."""
        ...

    async def daily_totals_by_service(self, usage_filter: UsageFilter) -> list[DailyServiceTotal]:
        """Amount grouped by (calendar day, service), ordered by day ascending."""
        ...

    async def build_stats_by_project(self, usage_filter: UsageFilter) -> list[ProjectBuildStats]:
        """Average build minutes and cost per project over `builds` rows."""
        ...


@runtime_checkable
class IProjectDirectory(Protocol):
    """Project display-name lookup."""

    async def get_names(self, project_ids: list[str]) -> dict[str, str]:
        """Map project ids to display names; unknown ids are omitted."""
        ...


@runtime_checkable
class IDeploymentMetricsStore(Protocol):
    """Read interface over deployments and their utilisation metrics."""

    async def list_utilisation(
        self,
        usage_filter: UsageFilter,
        status: str | None = None,
        created_in_window: bool = False,
    ) -> list[DeploymentUtilisation]:
        """Average cpu_usage and memory_usage per deployment over the window.

        Args:
            usage_filter: Window and tenant scoping.
            status: Only include deployments with this status.
            created_in_window: Only include deployments created inside the window.
        """
        ...


@runtime_checkable
class IStorageInventory(Protocol):
    """Cloud-provider storage inventory used by the unused-storage detector."""

    async def list_unattached_volumes(self, usage_filter: UsageFilter) -> list[StorageVolume]:
        """Volumes that are provisioned but not attached to any workload."""
        ...
