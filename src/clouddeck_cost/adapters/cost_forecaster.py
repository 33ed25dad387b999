"""CostForecaster adapter for daily cost projection.

Fits an ordinary-least-squares line through the daily cost series and
projects the daily cost 30 and 90 days past the series, with the fit's
R-squared reported as a confidence percentage.

The forecaster is a pure computation adapter: it receives the trend series
already aggregated by the CostAggregator and never touches the database.
"""

import math
from dataclasses import dataclass
from typing import Literal

from clouddeck_cost.api.schemas import DailyCostPoint, ForecastResult
from clouddeck_cost.observability import get_logger

logger = get_logger(__name__)

# Minimum data points for a regression; fewer yields the all-zero forecast
MIN_DATA_POINTS: int = 2

# Forecast horizons (days past the series)
HORIZON_MONTH = 30
HORIZON_QUARTER = 90

# Total sum of squares at or below this is treated as a flat series
_FLAT_SERIES_EPSILON: float = 1e-12

FORECAST_FACTORS: tuple[str, ...] = (
    "Historical usage patterns",
    "Seasonal variations",
    "Growth trends",
)


@dataclass(frozen=True)
class RegressionFit:
    """Result of a least-squares fit.

    Attributes:
        slope: Cost change per unit of x.
        intercept: Fitted cost at x = 0.
        r_squared: Coefficient of determination, or None for a flat series.
    """

    slope: float
    intercept: float
    r_squared: float | None


class CostForecaster:
    """Linear cost projection over a daily cost series.

    Args:
        axis: "index" treats consecutive points as consecutive days, so gaps
            in the series compress the time axis. "elapsed_days" places each
            point at its day offset from the first point.
        month_horizon_days: Horizon of the next_month projection.
        quarter_horizon_days: Horizon of the next_quarter projection.
    """

    def __init__(
        self,
        axis: Literal["index", "elapsed_days"] = "index",
        month_horizon_days: int = HORIZON_MONTH,
        quarter_horizon_days: int = HORIZON_QUARTER,
    ) -> None:
        if axis not in ("index", "elapsed_days"):
            raise ValueError(f"Unsupported forecast axis: {axis!r}")
        self._axis = axis
        self._month_horizon = month_horizon_days
        self._quarter_horizon = quarter_horizon_days

    def calculate_linear_forecast(self, series: list[DailyCostPoint]) -> ForecastResult:
        """Project daily cost 30 and 90 days past the end of the series.

        Args:
            series: Daily cost points in ascending date order.

        Returns:
            ForecastResult with both projections floored at 0 and confidence
            within [0, 100]. Fewer than two points returns all zeros with
            status "insufficient_data"; a flat series returns confidence 0
            with status "flat_series".
        """
        n = len(series)
        if n < MIN_DATA_POINTS:
            return ForecastResult(
                next_month=0,
                next_quarter=0,
                confidence=0,
                status="insufficient_data",
                data_points=n,
            )

        x_values = self._x_values(series)
        y_values = [float(point.total) for point in series]
        fit = self._linear_regression(x_values, y_values)

        # Projections are anchored one step past the last observed point
        anchor = x_values[-1] + 1
        next_month = fit.intercept + fit.slope * (anchor + self._month_horizon)
        next_quarter = fit.intercept + fit.slope * (anchor + self._quarter_horizon)

        if fit.r_squared is None:
            confidence = 0.0
            status = "flat_series"
        else:
            confidence = max(0.0, min(100.0, fit.r_squared * 100.0))
            status = "ok"

        result = ForecastResult(
            next_month=round(max(0.0, next_month), 2),
            next_quarter=round(max(0.0, next_quarter), 2),
            confidence=round(confidence, 2),
            status=status,
            data_points=n,
        )

        logger.debug(
            "Linear forecast computed",
            data_points=n,
            axis=self._axis,
            slope=round(fit.slope, 6),
            intercept=round(fit.intercept, 6),
            confidence=result.confidence,
        )
        return result

    def _x_values(self, series: list[DailyCostPoint]) -> list[int]:
        if self._axis == "index":
            return list(range(len(series)))
        first = series[0].day
        return [(point.day - first).days for point in series]

    @staticmethod
    def _linear_regression(x_values: list[int], y_values: list[float]) -> RegressionFit:
        """Compute closed-form OLS coefficients and R-squared.

        Args:
            x_values: Independent variable values (at least two distinct).
            y_values: Dependent variable values.

        Returns:
            RegressionFit; r_squared is None when the series is flat.
        """
        n = len(x_values)
        sum_x = sum(x_values)
        sum_y = sum(y_values)
        sum_xy = sum(x * y for x, y in zip(x_values, y_values))
        sum_x2 = sum(x ** 2 for x in x_values)

        denom = n * sum_x2 - sum_x ** 2
        if denom == 0:
            return RegressionFit(slope=0.0, intercept=sum_y / n, r_squared=None)

        slope = (n * sum_xy - sum_x * sum_y) / denom
        intercept = (sum_y - slope * sum_x) / n

        y_mean = sum_y / n
        ss_tot = sum((y - y_mean) ** 2 for y in y_values)
        if ss_tot <= _FLAT_SERIES_EPSILON:
            return RegressionFit(slope=0.0, intercept=y_mean, r_squared=None)

        ss_res = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(x_values, y_values))
        r_squared = 1.0 - ss_res / ss_tot
        if not math.isfinite(r_squared):
            r_squared = 0.0
        return RegressionFit(slope=slope, intercept=intercept, r_squared=r_squared)
