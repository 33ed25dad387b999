"""Pydantic response schemas for the CloudDeck cost analytics API.

Field names are snake_case in Python and serialised as camelCase, the shape
the dashboard's chart components consume (``summary.totalCost``,
``breakdown.byService``, ``trends[]``, ``optimization[]``).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RecommendationType = Literal[
    "idle_resources",
    "oversized_instances",
    "unused_storage",
    "build_optimization",
]
Severity = Literal["low", "medium", "high"]
ForecastStatus = Literal["ok", "insufficient_data", "flat_series"]


class CamelModel(BaseModel):
    """Base model serialising field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Summary and breakdown
# ---------------------------------------------------------------------------


class CostSummary(CamelModel):
    """Period total compared with the immediately preceding period.

    Attributes:
        total_cost: Sum of ledger amounts in the window.
        previous_period: Sum over the same-length preceding window.
        change: total_cost - previous_period.
        change_percent: change / previous_period * 100, or 0 without a baseline.
    """

    total_cost: float = 0.0
    previous_period: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0


class ServiceCost(CamelModel):
    service: str
    amount: float
    transactions: int = 0
    percentage: float = 0.0


class ProjectCost(CamelModel):
    project_id: str
    project_name: str = "Unknown"
    amount: float
    percentage: float = 0.0


class RegionCost(CamelModel):
    region: str
    amount: float
    percentage: float = 0.0


class TeamCost(CamelModel):
    team_id: str
    amount: float
    percentage: float = 0.0


class CostBreakdown(CamelModel):
    """Costs grouped along the four breakdown dimensions.

    Every list is empty (never null) when the window has no usage.
    """

    by_service: list[ServiceCost] = Field(default_factory=list)
    by_project: list[ProjectCost] = Field(default_factory=list)
    by_region: list[RegionCost] = Field(default_factory=list)
    by_team: list[TeamCost] = Field(default_factory=list)


class DailyCostPoint(CamelModel):
    """Total cost of one calendar day, split by service."""

    day: date = Field(alias="date")
    total: float = 0.0
    services: dict[str, float] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class Recommendation(CamelModel):
    """An advisory, non-persisted suggestion for reducing spend.

    Attributes:
        type: Which detector produced the recommendation.
        severity: Static per type (idle=high, oversized/unused_storage=medium, build=low).
        title: Short headline.
        description: One-sentence explanation.
        potential_savings: Estimated monthly savings in USD.
        detail: Per-resource findings (deployments, volumes or projects).
        suggestions: Remediation hints, when the detector has any.
    """

    type: RecommendationType
    severity: Severity
    title: str
    description: str
    potential_savings: float = 0.0
    detail: list[dict[str, Any]] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Report and forecast
# ---------------------------------------------------------------------------


class CostReport(CamelModel):
    """Full cost report for one window; computed per request, never stored.

    Attributes:
        degraded: True when a detector failed and failure isolation is enabled.
    """

    summary: CostSummary
    breakdown: CostBreakdown
    trends: list[DailyCostPoint] = Field(default_factory=list)
    optimization: list[Recommendation] = Field(default_factory=list)
    generated_at: datetime
    degraded: bool = False


class ForecastResult(CamelModel):
    """Linear cost projection for the next 30 and 90 days.

    Attributes:
        next_month: Projected daily cost 30 days past the series (>= 0).
        next_quarter: Projected daily cost 90 days past the series (>= 0).
        confidence: R-squared of the fit as a percentage, within [0, 100].
        status: ok, or why the projection degenerated to zero confidence.
        data_points: Number of daily points the fit used.
        factors: Inputs the projection accounts for.
    """

    next_month: float = 0.0
    next_quarter: float = 0.0
    confidence: float = 0.0
    status: ForecastStatus = "ok"
    data_points: int = 0
    factors: list[str] = Field(default_factory=list)


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Body returned for every handled error."""

    error: ErrorBody
