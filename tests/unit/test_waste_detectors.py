"""Unit tests for the waste detectors.

Verifies:
  - IdleResourceDetector flags successful, in-window deployments under the CPU threshold
  - OversizedInstanceDetector requires both metrics and both thresholds
  - BuildCostAnalyzer values the assumed build-time reduction per slow project
  - UnusedStorageDetector delegates to the injected inventory
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

import pytest

from clouddeck_cost.adapters.pricing import PricingCatalog
from clouddeck_cost.adapters.waste_detectors import (
    BUILD_SUGGESTIONS,
    BuildCostAnalyzer,
    IdleResourceDetector,
    OversizedInstanceDetector,
    UnusedStorageDetector,
)
from clouddeck_cost.core.filters import UsageFilter
from clouddeck_cost.core.interfaces import StorageVolume
from clouddeck_cost.core.models import Deployment, Metric, UsageRecord


class _FixedStorageInventory:
    """Storage inventory returning a fixed set of volumes."""

    def __init__(self, volumes: list[StorageVolume]) -> None:
        self.volumes = volumes

    async def list_unattached_volumes(self, usage_filter: UsageFilter) -> list[StorageVolume]:
        return self.volumes


class TestPricingCatalog:
    """The detectors value findings through the pricing catalog."""

    def test_monthly_compute_cost_uses_hours_per_month(self, pricing: PricingCatalog) -> None:
        assert pricing.monthly_compute_cost() == pytest.approx(36.5)
        assert pricing.monthly_compute_cost(2.0) == pytest.approx(73.0)

    def test_unknown_service_raises(self, pricing: PricingCatalog) -> None:
        with pytest.raises(KeyError):
            pricing.rate("mainframe")


class TestIdleResourceDetector:
    """Tests for IdleResourceDetector.find_idle_resources()."""

    @pytest.mark.asyncio
    async def test_flags_only_idle_successful_deployments_in_window(
        self,
        metrics_store,
        pricing: PricingCatalog,
        make_deployment: Callable[..., Deployment],
        make_metric: Callable[..., Metric],
        usage_filter: UsageFilter,
        period_start: datetime,
    ) -> None:
        created = period_start + timedelta(days=1)
        idle = make_deployment(created, project_id="proj-idle")
        busy = make_deployment(created)
        failed = make_deployment(created, status="failed")
        old = make_deployment(period_start - timedelta(days=3))
        metrics_store.deployments = [idle, busy, failed, old]
        metrics_store.metrics = [
            make_metric(idle, "cpu_usage", 2.0, created + timedelta(hours=1)),
            make_metric(idle, "cpu_usage", 4.0, created + timedelta(hours=2)),
            make_metric(busy, "cpu_usage", 55.0, created + timedelta(hours=1)),
            make_metric(failed, "cpu_usage", 1.0, created + timedelta(hours=1)),
            make_metric(old, "cpu_usage", 1.0, created + timedelta(hours=1)),
        ]

        detector = IdleResourceDetector(metrics_store, pricing, cpu_threshold_percent=5.0)
        results = await detector.find_idle_resources(usage_filter)

        assert len(results) == 1
        assert results[0].deployment_id == str(idle.id)
        assert results[0].avg_cpu_usage == pytest.approx(3.0)
        assert results[0].monthly_cost == pytest.approx(36.5)
        assert results[0].to_detail() == {
            "deploymentId": str(idle.id),
            "projectId": "proj-idle",
            "avgCpuUsage": 3.0,
            "monthlyCost": 36.5,
        }

    @pytest.mark.asyncio
    async def test_monthly_cost_scales_with_instance_units(
        self,
        metrics_store,
        pricing: PricingCatalog,
        make_deployment: Callable[..., Deployment],
        make_metric: Callable[..., Metric],
        usage_filter: UsageFilter,
        period_start: datetime,
    ) -> None:
        deployment = make_deployment(period_start, instance_units=4.0)
        metrics_store.deployments = [deployment]
        metrics_store.metrics = [make_metric(deployment, "cpu_usage", 0.5, period_start)]

        results = await IdleResourceDetector(metrics_store, pricing).find_idle_resources(usage_filter)
        assert results[0].monthly_cost == pytest.approx(146.0)

    @pytest.mark.asyncio
    async def test_samples_outside_window_are_ignored(
        self,
        metrics_store,
        pricing: PricingCatalog,
        make_deployment: Callable[..., Deployment],
        make_metric: Callable[..., Metric],
        usage_filter: UsageFilter,
        period_start: datetime,
        period_end: datetime,
    ) -> None:
        deployment = make_deployment(period_start + timedelta(days=2))
        metrics_store.deployments = [deployment]
        metrics_store.metrics = [
            make_metric(deployment, "cpu_usage", 60.0, period_start + timedelta(days=3)),
            make_metric(deployment, "cpu_usage", 0.0, period_end + timedelta(days=1)),
        ]

        results = await IdleResourceDetector(metrics_store, pricing).find_idle_resources(usage_filter)
        assert results == []


class TestOversizedInstanceDetector:
    """Tests for OversizedInstanceDetector.find_oversized_instances()."""

    @pytest.mark.asyncio
    async def test_high_memory_low_cpu_is_flagged(
        self,
        metrics_store,
        pricing: PricingCatalog,
        make_deployment: Callable[..., Deployment],
        make_metric: Callable[..., Metric],
        usage_filter: UsageFilter,
        period_start: datetime,
    ) -> None:
        at = period_start + timedelta(days=5)
        oversized = make_deployment(period_start - timedelta(days=60))
        balanced = make_deployment(at)
        cpu_only = make_deployment(at)
        metrics_store.deployments = [oversized, balanced, cpu_only]
        metrics_store.metrics = [
            make_metric(oversized, "cpu_usage", 10.0, at),
            make_metric(oversized, "memory_usage", 90.0, at),
            make_metric(balanced, "cpu_usage", 50.0, at),
            make_metric(balanced, "memory_usage", 90.0, at),
            make_metric(cpu_only, "cpu_usage", 5.0, at),
        ]

        detector = OversizedInstanceDetector(metrics_store, pricing, savings_ratio=0.5)
        results = await detector.find_oversized_instances(usage_filter)

        assert [r.deployment_id for r in results] == [str(oversized.id)]
        assert results[0].avg_memory_usage == pytest.approx(90.0)
        assert results[0].potential_savings == pytest.approx(18.25)

    @pytest.mark.asyncio
    async def test_thresholds_are_strict(
        self,
        metrics_store,
        pricing: PricingCatalog,
        make_deployment: Callable[..., Deployment],
        make_metric: Callable[..., Metric],
        usage_filter: UsageFilter,
        period_start: datetime,
    ) -> None:
        deployment = make_deployment(period_start)
        metrics_store.deployments = [deployment]
        metrics_store.metrics = [
            make_metric(deployment, "cpu_usage", 30.0, period_start),
            make_metric(deployment, "memory_usage", 80.0, period_start),
        ]

        results = await OversizedInstanceDetector(metrics_store, pricing).find_oversized_instances(usage_filter)
        assert results == []


class TestBuildCostAnalyzer:
    """Tests for BuildCostAnalyzer.analyze_build_costs()."""

    @pytest.mark.asyncio
    async def test_slow_project_savings(
        self,
        ledger,
        pricing: PricingCatalog,
        make_usage: Callable[..., UsageRecord],
        usage_filter: UsageFilter,
        period_start: datetime,
    ) -> None:
        ledger.records = [
            make_usage("builds", 0.1, period_start, quantity=18.0, project_id="proj-slow"),
            make_usage("builds", 0.1, period_start, quantity=22.0, project_id="proj-slow"),
            make_usage("builds", 0.04, period_start, quantity=8.0, project_id="proj-fast"),
            make_usage("compute", 5.0, period_start, quantity=300.0, project_id="proj-fast"),
        ]

        analysis = await BuildCostAnalyzer(ledger, pricing).analyze_build_costs(usage_filter)

        # avg 20 minutes, 30% faster saves 6 minutes at 0.005/minute
        assert analysis.potential_savings == pytest.approx(0.03)
        assert [p.project_id for p in analysis.projects] == ["proj-slow"]
        assert analysis.projects[0].build_count == 2
        assert analysis.suggestions == list(BUILD_SUGGESTIONS)

    @pytest.mark.asyncio
    async def test_improvement_ratio_is_configurable(
        self,
        ledger,
        pricing: PricingCatalog,
        make_usage: Callable[..., UsageRecord],
        usage_filter: UsageFilter,
        period_start: datetime,
    ) -> None:
        ledger.records = [make_usage("builds", 0.2, period_start, quantity=40.0)]
        analysis = await BuildCostAnalyzer(ledger, pricing, improvement_ratio=0.5).analyze_build_costs(usage_filter)
        assert analysis.potential_savings == pytest.approx(0.1)

    @pytest.mark.asyncio
    async def test_no_slow_builds_means_no_savings(
        self,
        ledger,
        pricing: PricingCatalog,
        usage_filter: UsageFilter,
    ) -> None:
        analysis = await BuildCostAnalyzer(ledger, pricing).analyze_build_costs(usage_filter)
        assert analysis.potential_savings == 0
        assert analysis.projects == []

    @pytest.mark.parametrize("ratio", [-0.1, 1.5])
    def test_ratio_outside_unit_interval_is_rejected(self, ledger, pricing: PricingCatalog, ratio: float) -> None:
        with pytest.raises(ValueError):
            BuildCostAnalyzer(ledger, pricing, improvement_ratio=ratio)


class TestUnusedStorageDetector:
    """Tests for UnusedStorageDetector.find_unused_storage()."""

    @pytest.mark.asyncio
    async def test_default_inventory_reports_nothing(self, usage_filter: UsageFilter) -> None:
        result = await UnusedStorageDetector().find_unused_storage(usage_filter)
        assert result.total_size == 0
        assert result.items == []

    @pytest.mark.asyncio
    async def test_totals_injected_inventory(self, usage_filter: UsageFilter) -> None:
        volumes = [
            StorageVolume(volume_id="vol-1", size_gb=100.0, provider="aws", region="us-east-1"),
            StorageVolume(volume_id="vol-2", size_gb=20.5, provider="aws"),
        ]
        result = await UnusedStorageDetector(_FixedStorageInventory(volumes)).find_unused_storage(usage_filter)
        assert result.total_size == pytest.approx(120.5)
        assert result.items == volumes
