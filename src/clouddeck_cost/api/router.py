"""FastAPI router for the CloudDeck cost analytics API.

All routes are thin: they parse query parameters, call CostReportService,
and return typed Pydantic response models. No business logic belongs here.

Endpoints:
  GET  /api/v1/costs/report      Full cost report (summary, breakdown, trends, optimization)
  GET  /api/v1/costs/forecast    30/90-day linear cost forecast
  GET  /api/v1/costs/breakdown   Cost breakdown by service, project, region and team
  GET  /api/v1/costs/trends      Daily cost series split by service

Every endpoint takes startDate and endDate (ISO 8601) plus optional teamId
and projectId scoping.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import async_sessionmaker

from clouddeck_cost.adapters.cost_forecaster import CostForecaster
from clouddeck_cost.adapters.optimization_advisor import OptimizationAdvisor
from clouddeck_cost.adapters.pricing import PricingCatalog
from clouddeck_cost.adapters.repositories import (
    DeploymentMetricsRepository,
    ProjectDirectoryRepository,
    UsageLedgerRepository,
)
from clouddeck_cost.adapters.waste_detectors import (
    BuildCostAnalyzer,
    IdleResourceDetector,
    OversizedInstanceDetector,
    UnusedStorageDetector,
)
from clouddeck_cost.api.schemas import (
    CostBreakdown,
    CostReport,
    DailyCostPoint,
    ErrorResponse,
    ForecastResult,
)
from clouddeck_cost.core.services import CostAggregator, CostReportService
from clouddeck_cost.database import get_session_factory
from clouddeck_cost.settings import Settings

router = APIRouter(prefix="/costs", tags=["costs"])
settings = Settings()

_ERROR_RESPONSES = {
    422: {"model": ErrorResponse, "description": "Invalid or missing date range"},
    504: {"model": ErrorResponse, "description": "Report generation timed out"},
}


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def build_cost_report_service(session_factory: async_sessionmaker, settings: Settings) -> CostReportService:
    """Wire CostReportService and its collaborators from settings."""
    ledger = UsageLedgerRepository(session_factory)
    metrics_store = DeploymentMetricsRepository(session_factory)
    pricing = PricingCatalog.from_settings(settings)

    aggregator = CostAggregator(
        ledger=ledger,
        projects=ProjectDirectoryRepository(session_factory),
        top_projects_limit=settings.top_projects_limit,
    )
    advisor = OptimizationAdvisor(
        idle_detector=IdleResourceDetector(
            metrics_store,
            pricing,
            cpu_threshold_percent=settings.idle_cpu_threshold_percent,
        ),
        oversized_detector=OversizedInstanceDetector(
            metrics_store,
            pricing,
            memory_threshold_percent=settings.oversized_memory_threshold_percent,
            cpu_threshold_percent=settings.oversized_cpu_threshold_percent,
            savings_ratio=settings.rightsizing_savings_ratio,
        ),
        storage_detector=UnusedStorageDetector(),
        build_analyzer=BuildCostAnalyzer(
            ledger,
            pricing,
            slow_build_threshold_minutes=settings.slow_build_threshold_minutes,
            improvement_ratio=settings.build_time_improvement_ratio,
        ),
        pricing=pricing,
        isolate_failures=settings.isolate_detector_failures,
    )
    return CostReportService(
        aggregator=aggregator,
        advisor=advisor,
        forecaster=CostForecaster(axis=settings.forecast_axis),
        settings=settings,
    )


def _get_cost_report_service(
    session_factory: Annotated[async_sessionmaker, Depends(get_session_factory)],
) -> CostReportService:
    """Build CostReportService for the current request."""
    return build_cost_report_service(session_factory, settings)


StartDate = Annotated[datetime | None, Query(alias="startDate", description="Window start (inclusive, ISO 8601)")]
EndDate = Annotated[datetime | None, Query(alias="endDate", description="Window end (exclusive, ISO 8601)")]
TeamId = Annotated[str | None, Query(alias="teamId", description="Restrict to one team")]
ProjectId = Annotated[str | None, Query(alias="projectId", description="Restrict to one project")]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/report",
    response_model=CostReport,
    responses=_ERROR_RESPONSES,
    summary="Generate the cost report for a date range",
)
async def get_cost_report(
    service: Annotated[CostReportService, Depends(_get_cost_report_service)],
    start_date: StartDate = None,
    end_date: EndDate = None,
    team_id: TeamId = None,
    project_id: ProjectId = None,
) -> CostReport:
    """Summarise spend against the previous period, break it down, chart it
    by day, and list optimization recommendations.

    Recommendations are advisory; nothing is persisted.
    """
    return await service.generate_cost_report(start_date, end_date, team_id, project_id)


@router.get(
    "/forecast",
    response_model=ForecastResult,
    responses=_ERROR_RESPONSES,
    summary="Forecast daily cost 30 and 90 days ahead",
)
async def get_cost_forecast(
    service: Annotated[CostReportService, Depends(_get_cost_report_service)],
    start_date: StartDate = None,
    end_date: EndDate = None,
    team_id: TeamId = None,
) -> ForecastResult:
    """Fit a linear trend to the window's daily costs and project it forward."""
    return await service.generate_cost_forecast(start_date, end_date, team_id)


@router.get(
    "/breakdown",
    response_model=CostBreakdown,
    responses=_ERROR_RESPONSES,
    summary="Cost breakdown by service, project, region and team",
)
async def get_cost_breakdown(
    service: Annotated[CostReportService, Depends(_get_cost_report_service)],
    start_date: StartDate = None,
    end_date: EndDate = None,
    team_id: TeamId = None,
    project_id: ProjectId = None,
) -> CostBreakdown:
    return await service.get_cost_breakdown(start_date, end_date, team_id, project_id)


@router.get(
    "/trends",
    response_model=list[DailyCostPoint],
    responses=_ERROR_RESPONSES,
    summary="Daily cost series split by service",
)
async def get_cost_trends(
    service: Annotated[CostReportService, Depends(_get_cost_report_service)],
    start_date: StartDate = None,
    end_date: EndDate = None,
    team_id: TeamId = None,
    project_id: ProjectId = None,
) -> list[DailyCostPoint]:
    return await service.get_cost_trends(start_date, end_date, team_id, project_id)
