"""Waste detectors feeding the cost optimization recommendations.

Each detector is a read-only scan over one report window. None of them
persist anything; the OptimizationAdvisor turns their findings into
advisory recommendations. Savings estimates come from the PricingCatalog
and the named ratios passed in at construction time.
"""

from dataclasses import dataclass, field
from typing import Any

from clouddeck_cost.adapters.pricing import PricingCatalog
from clouddeck_cost.core.filters import UsageFilter
from clouddeck_cost.core.interfaces import (
    IDeploymentMetricsStore,
    IStorageInventory,
    IUsageLedger,
    StorageVolume,
)
from clouddeck_cost.observability import get_logger

logger = get_logger(__name__)

BUILD_SUGGESTIONS: tuple[str, ...] = (
    "Enable build caching",
    "Optimize Docker layers",
    "Use parallel build steps",
    "Remove unnecessary dependencies",
)


@dataclass(frozen=True)
class IdleResource:
    """A successful deployment whose CPU stayed under the idle threshold."""

    deployment_id: str
    project_id: str
    avg_cpu_usage: float
    monthly_cost: float

    def to_detail(self) -> dict[str, Any]:
        return {
            "deploymentId": self.deployment_id,
            "projectId": self.project_id,
            "avgCpuUsage": round(self.avg_cpu_usage, 2),
            "monthlyCost": round(self.monthly_cost, 2),
        }


@dataclass(frozen=True)
class OversizedInstance:
    """A deployment with high memory but low CPU utilisation."""

    deployment_id: str
    project_id: str
    avg_cpu_usage: float
    avg_memory_usage: float
    potential_savings: float

    def to_detail(self) -> dict[str, Any]:
        return {
            "deploymentId": self.deployment_id,
            "projectId": self.project_id,
            "avgCpuUsage": round(self.avg_cpu_usage, 2),
            "avgMemoryUsage": round(self.avg_memory_usage, 2),
            "potentialSavings": round(self.potential_savings, 2),
        }


@dataclass(frozen=True)
class SlowBuildProject:
    """A project whose average build exceeds the slow-build threshold."""

    project_id: str
    avg_duration_minutes: float
    build_count: int
    total_cost: float
    potential_savings: float

    def to_detail(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "avgBuildMinutes": round(self.avg_duration_minutes, 2),
            "builds": self.build_count,
            "totalCost": round(self.total_cost, 2),
            "potentialSavings": round(self.potential_savings, 4),
        }


@dataclass
class BuildCostAnalysis:
    """Outcome of the build cost analysis for one window."""

    potential_savings: float = 0.0
    projects: list[SlowBuildProject] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=lambda: list(BUILD_SUGGESTIONS))


@dataclass
class UnusedStorage:
    """Unattached storage found by the storage inventory.

    Attributes:
        total_size: Total unattached size in GB.
        items: The individual volumes.
    """

    total_size: float = 0.0
    items: list[StorageVolume] = field(default_factory=list)


class IdleResourceDetector:
    """Flags successful deployments whose average CPU stays below a threshold.

    Args:
        metrics_store: Deployment/metric reader.
        pricing: Pricing catalog used to value the idle capacity.
        cpu_threshold_percent: Average cpu_usage below which a deployment is idle.
    """

    def __init__(
        self,
        metrics_store: IDeploymentMetricsStore,
        pricing: PricingCatalog,
        cpu_threshold_percent: float = 5.0,
    ) -> None:
        self._metrics_store = metrics_store
        self._pricing = pricing
        self._cpu_threshold = cpu_threshold_percent

    async def find_idle_resources(self, usage_filter: UsageFilter) -> list[IdleResource]:
        """Return idle deployments created inside the window.

        Args:
            usage_filter: Report window and tenant scoping.

        Returns:
            One IdleResource per idle deployment, valued at its monthly compute cost.
        """
        utilisation = await self._metrics_store.list_utilisation(
            usage_filter,
            status="success",
            created_in_window=True,
        )

        idle = [
            IdleResource(
                deployment_id=item.deployment_id,
                project_id=item.project_id,
                avg_cpu_usage=item.avg_cpu_usage,
                monthly_cost=self._pricing.monthly_compute_cost(item.instance_units),
            )
            for item in utilisation
            if item.avg_cpu_usage is not None and item.avg_cpu_usage < self._cpu_threshold
        ]

        logger.debug(
            "Idle resource scan completed",
            scanned=len(utilisation),
            idle=len(idle),
            cpu_threshold_percent=self._cpu_threshold,
        )
        return idle


class OversizedInstanceDetector:
    """Flags deployments with high memory but low CPU utilisation.

    Args:
        metrics_store: Deployment/metric reader.
        pricing: Pricing catalog used to value rightsizing.
        memory_threshold_percent: Average memory_usage above which memory is considered saturated.
        cpu_threshold_percent: Average cpu_usage below which CPU is considered underused.
        savings_ratio: Share of the monthly compute cost saved by downsizing.
    """

    def __init__(
        self,
        metrics_store: IDeploymentMetricsStore,
        pricing: PricingCatalog,
        memory_threshold_percent: float = 80.0,
        cpu_threshold_percent: float = 30.0,
        savings_ratio: float = 0.5,
    ) -> None:
        self._metrics_store = metrics_store
        self._pricing = pricing
        self._memory_threshold = memory_threshold_percent
        self._cpu_threshold = cpu_threshold_percent
        self._savings_ratio = savings_ratio

    async def find_oversized_instances(self, usage_filter: UsageFilter) -> list[OversizedInstance]:
        """Return deployments whose averages cross both thresholds.

        Deployments missing either metric in the window are never flagged.
        """
        utilisation = await self._metrics_store.list_utilisation(usage_filter)

        oversized: list[OversizedInstance] = []
        for item in utilisation:
            if item.avg_cpu_usage is None or item.avg_memory_usage is None:
                continue
            if item.avg_memory_usage > self._memory_threshold and item.avg_cpu_usage < self._cpu_threshold:
                savings = self._pricing.monthly_compute_cost(item.instance_units) * self._savings_ratio
                oversized.append(
                    OversizedInstance(
                        deployment_id=item.deployment_id,
                        project_id=item.project_id,
                        avg_cpu_usage=item.avg_cpu_usage,
                        avg_memory_usage=item.avg_memory_usage,
                        potential_savings=savings,
                    )
                )

        logger.debug("Oversized instance scan completed", scanned=len(utilisation), oversized=len(oversized))
        return oversized


class BuildCostAnalyzer:
    """Estimates savings from speeding up slow builds.

    Args:
        ledger: Usage ledger reader.
        pricing: Pricing catalog providing the per-minute build rate.
        slow_build_threshold_minutes: Average build duration above which a project is flagged.
        improvement_ratio: Assumed achievable reduction of build time (0.30 = 30%).
    """

    def __init__(
        self,
        ledger: IUsageLedger,
        pricing: PricingCatalog,
        slow_build_threshold_minutes: float = 10.0,
        improvement_ratio: float = 0.30,
    ) -> None:
        if not 0.0 <= improvement_ratio <= 1.0:
            raise ValueError(f"improvement_ratio must be within [0, 1], got {improvement_ratio}")
        self._ledger = ledger
        self._pricing = pricing
        self._threshold = slow_build_threshold_minutes
        self._improvement_ratio = improvement_ratio

    async def analyze_build_costs(self, usage_filter: UsageFilter) -> BuildCostAnalysis:
        """Sum the per-build savings of every project with slow average builds."""
        stats = await self._ledger.build_stats_by_project(usage_filter)

        slow_projects: list[SlowBuildProject] = []
        for project in stats:
            if project.avg_duration_minutes <= self._threshold:
                continue
            optimized = project.avg_duration_minutes * (1.0 - self._improvement_ratio)
            savings = self._pricing.build_minutes_cost(project.avg_duration_minutes - optimized)
            slow_projects.append(
                SlowBuildProject(
                    project_id=project.project_id,
                    avg_duration_minutes=project.avg_duration_minutes,
                    build_count=project.build_count,
                    total_cost=project.total_cost,
                    potential_savings=savings,
                )
            )

        return BuildCostAnalysis(
            potential_savings=sum(p.potential_savings for p in slow_projects),
            projects=slow_projects,
        )


class NoopStorageInventory:
    """Storage inventory used until a cloud-provider integration is configured."""

    async def list_unattached_volumes(self, usage_filter: UsageFilter) -> list[StorageVolume]:
        return []


class UnusedStorageDetector:
    """Reports unattached storage from a cloud-provider inventory.

    Args:
        inventory: Provider inventory; defaults to a no-op that reports nothing.
    """

    def __init__(self, inventory: IStorageInventory | None = None) -> None:
        self._inventory = inventory or NoopStorageInventory()

    async def find_unused_storage(self, usage_filter: UsageFilter) -> UnusedStorage:
        volumes = await self._inventory.list_unattached_volumes(usage_filter)
        return UnusedStorage(total_size=sum(v.size_gb for v in volumes), items=volumes)
