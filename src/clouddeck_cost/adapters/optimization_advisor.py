"""OptimizationAdvisor: turns waste detector findings into recommendations.

Severity is a static mapping per recommendation type, not derived from the
size of the savings. Recommendations are advisory only: they carry no
identity and are rebuilt on every report.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from clouddeck_cost.adapters.pricing import PricingCatalog
from clouddeck_cost.adapters.waste_detectors import (
    BuildCostAnalysis,
    BuildCostAnalyzer,
    IdleResourceDetector,
    OversizedInstanceDetector,
    UnusedStorage,
    UnusedStorageDetector,
)
from clouddeck_cost.api.schemas import Recommendation, RecommendationType, Severity
from clouddeck_cost.core.filters import UsageFilter
from clouddeck_cost.observability import get_logger

logger = get_logger(__name__)

SEVERITY_BY_TYPE: dict[RecommendationType, Severity] = {
    "idle_resources": "high",
    "oversized_instances": "medium",
    "unused_storage": "medium",
    "build_optimization": "low",
}


class OptimizationAdvisor:
    """Runs the waste detectors concurrently and assembles recommendations.

    Args:
        idle_detector: Idle deployment detector.
        oversized_detector: Oversized instance detector.
        storage_detector: Unused storage detector.
        build_analyzer: Build cost analyzer.
        pricing: Pricing catalog used to value unused storage.
        isolate_failures: When True a failing detector is logged and skipped
            instead of failing the whole run.
    """

    def __init__(
        self,
        idle_detector: IdleResourceDetector,
        oversized_detector: OversizedInstanceDetector,
        storage_detector: UnusedStorageDetector,
        build_analyzer: BuildCostAnalyzer,
        pricing: PricingCatalog,
        isolate_failures: bool = False,
    ) -> None:
        self._idle_detector = idle_detector
        self._oversized_detector = oversized_detector
        self._storage_detector = storage_detector
        self._build_analyzer = build_analyzer
        self._pricing = pricing
        self._isolate_failures = isolate_failures

    async def generate_recommendations(self, usage_filter: UsageFilter) -> tuple[list[Recommendation], bool]:
        """Scan the window and return recommendations.

        Args:
            usage_filter: Report window and tenant scoping.

        Returns:
            Tuple of (recommendations, degraded). degraded is True only when
            failure isolation is enabled and at least one detector failed.
        """
        idle, oversized, storage, builds = await asyncio.gather(
            self._run("idle_resources", self._idle_detector.find_idle_resources, usage_filter),
            self._run("oversized_instances", self._oversized_detector.find_oversized_instances, usage_filter),
            self._run("unused_storage", self._storage_detector.find_unused_storage, usage_filter),
            self._run("build_optimization", self._build_analyzer.analyze_build_costs, usage_filter),
        )
        degraded = any(result is None for result in (idle, oversized, storage, builds))

        recommendations: list[Recommendation] = []

        if idle:
            recommendations.append(
                Recommendation(
                    type="idle_resources",
                    severity=SEVERITY_BY_TYPE["idle_resources"],
                    title="Idle Resources Detected",
                    description=f"Found {len(idle)} idle resources consuming costs",
                    potential_savings=round(sum(r.monthly_cost for r in idle), 2),
                    detail=[r.to_detail() for r in idle],
                )
            )

        if oversized:
            recommendations.append(
                Recommendation(
                    type="oversized_instances",
                    severity=SEVERITY_BY_TYPE["oversized_instances"],
                    title="Oversized Instances",
                    description=f"{len(oversized)} instances may be oversized",
                    potential_savings=round(sum(i.potential_savings for i in oversized), 2),
                    detail=[i.to_detail() for i in oversized],
                )
            )

        if isinstance(storage, UnusedStorage) and storage.total_size > 0:
            recommendations.append(
                Recommendation(
                    type="unused_storage",
                    severity=SEVERITY_BY_TYPE["unused_storage"],
                    title="Unused Storage",
                    description=f"{storage.total_size:g}GB of unused storage detected",
                    potential_savings=round(self._pricing.monthly_storage_cost(storage.total_size), 2),
                    detail=[
                        {
                            "volumeId": v.volume_id,
                            "sizeGb": v.size_gb,
                            "provider": v.provider,
                            "region": v.region,
                        }
                        for v in storage.items
                    ],
                )
            )

        if isinstance(builds, BuildCostAnalysis) and builds.potential_savings > 0:
            recommendations.append(
                Recommendation(
                    type="build_optimization",
                    severity=SEVERITY_BY_TYPE["build_optimization"],
                    title="Build Time Optimization",
                    description="Build times can be optimized to reduce costs",
                    potential_savings=round(builds.potential_savings, 2),
                    detail=[p.to_detail() for p in builds.projects],
                    suggestions=list(builds.suggestions),
                )
            )

        logger.info(
            "Optimization recommendations generated",
            team_id=usage_filter.team_id,
            project_id=usage_filter.project_id,
            recommendation_count=len(recommendations),
            degraded=degraded,
        )
        return recommendations, degraded

    async def _run(
        self,
        detector_name: str,
        detector: Callable[[UsageFilter], Awaitable[Any]],
        usage_filter: UsageFilter,
    ) -> Any:
        """Run one detector; returns None for a failure when isolation is on."""
        if not self._isolate_failures:
            return await detector(usage_filter)
        try:
            return await detector(usage_filter)
        except Exception as exc:
            logger.warning(
                "Detector failed; continuing with a degraded report",
                detector=detector_name,
                error=str(exc),
                exc_info=True,
            )
            return None
