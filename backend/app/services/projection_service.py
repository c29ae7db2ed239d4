r"""backend\app\services\projection_service.py

Spend projection engine.

Future values are a fixed-weight blend of three extrapolations of the
historical series:

* the least squares line evaluated past the end of the series,
* the last exponentially smoothed value carried forward by the slope,
* the last moving average compounded by ``slope / moving_average``.

The confidence band is ``1.96`` sample standard deviations of the history,
widened by ten percent for each step further into the future.  Every call
recomputes from the full series; nothing is cached between calls.
"""

from __future__ import annotations

import logging
import math
from typing import Any, List, Mapping, Optional, Protocol, Sequence

from ..models.schemas import (
    PeriodType,
    Projection,
    ProjectionMetrics,
    ProjectionResult,
    SpendBucket,
    TimeSeriesPoint,
)
from .series_stats import (
    exponential_smoothing,
    linear_regression,
    moving_average,
    standard_deviation,
)

LOGGER = logging.getLogger(__name__)

LINEAR_WEIGHT = 0.40
SMOOTHED_WEIGHT = 0.35
MOVING_AVERAGE_WEIGHT = 0.25

SMOOTHING_ALPHA = 0.3
MAX_MOVING_AVERAGE_WINDOW = 4
Z_VALUE = 1.96
UNCERTAINTY_GROWTH_PER_STEP = 0.10
TREND_THRESHOLD = 0.05

WEEKS_PER_YEAR = 52
MONTHS_PER_YEAR = 12


class SpendSource(Protocol):
    def spend_by_period(
        self, period: str, filters: Optional[Mapping[str, Any]] = None
    ) -> List[SpendBucket]:
        ...


# ---------------------------------------------------------------------------
# Helper utilities (kept top-level for straightforward unit testing)


def _split_label(label: str) -> tuple[int, int]:
    try:
        year_text, part_text = label.strip().split("-")[:2]
        return int(year_text), int(part_text)
    except ValueError as exc:
        raise ValueError(f"Unrecognised period label '{label}'") from exc


def generate_future_periods(last_period: str, count: int, period_type: PeriodType) -> List[str]:
    """Return ``count`` labels following ``last_period``.

    Week labels roll over after week 52 without consulting the ISO calendar,
    so ``2024-52`` is followed by ``2025-01`` even in 53-week years.
    """

    periods: List[str] = []
    if period_type == "year":
        try:
            year = int(last_period.strip())
        except ValueError as exc:
            raise ValueError(f"Unrecognised period label '{last_period}'") from exc
        for _ in range(count):
            year += 1
            periods.append(str(year))
        return periods

    if period_type == "week":
        limit = WEEKS_PER_YEAR
    elif period_type == "month":
        limit = MONTHS_PER_YEAR
    else:
        raise ValueError(f"Unsupported period type '{period_type}'")

    year, part = _split_label(last_period)
    for _ in range(count):
        part += 1
        if part > limit:
            part = 1
            year += 1
        periods.append(f"{year}-{part:02d}")
    return periods


def classify_trend(values: Sequence[float]) -> str:
    """Classify the step between the last two values as up, down or stable."""

    if len(values) < 2 or values[-2] == 0:
        return "stable"
    recent_growth = (values[-1] - values[-2]) / values[-2]
    if recent_growth > TREND_THRESHOLD:
        return "up"
    if recent_growth < -TREND_THRESHOLD:
        return "down"
    return "stable"


def growth_rate(values: Sequence[float]) -> float:
    """Percent change from the first to the last value (0 when undefined)."""

    if len(values) < 2 or values[0] == 0:
        return 0.0
    rate = (values[-1] - values[0]) / values[0] * 100.0
    return rate if math.isfinite(rate) else 0.0


def project(
    period_type: PeriodType,
    history: Sequence[TimeSeriesPoint],
    horizon: int,
) -> ProjectionResult:
    """Project ``horizon`` future values from an ordered historical series."""

    if not history:
        return ProjectionResult(historical=[], projections=[], metrics=ProjectionMetrics())

    values = [float(point.value) for point in history]
    n = len(values)

    fit = linear_regression(values)
    smoothed = exponential_smoothing(values, SMOOTHING_ALPHA)
    averages = moving_average(values, min(MAX_MOVING_AVERAGE_WINDOW, n))
    spread = standard_deviation(values)

    last_smoothed = smoothed[-1]
    last_average = averages[-1]
    average_ratio = fit.slope / last_average if last_average != 0 else 0.0

    labels = generate_future_periods(history[-1].period, horizon, period_type)
    projections: List[Projection] = []
    for i, label in enumerate(labels):
        linear = fit.slope * (n + i) + fit.intercept
        smoothed_trend = last_smoothed + fit.slope * (i + 1)
        try:
            average_trend = last_average * (1.0 + average_ratio) ** (i + 1)
        except OverflowError:
            average_trend = 0.0
        if not math.isfinite(average_trend):
            average_trend = 0.0

        blended = (
            LINEAR_WEIGHT * linear
            + SMOOTHED_WEIGHT * smoothed_trend
            + MOVING_AVERAGE_WEIGHT * average_trend
        )
        if not math.isfinite(blended):
            blended = 0.0
        margin = spread * Z_VALUE * (1.0 + i * UNCERTAINTY_GROWTH_PER_STEP)
        projected = max(0.0, blended)

        projections.append(
            Projection(
                period=label,
                projected=projected,
                lower_bound=max(0.0, blended - margin),
                upper_bound=max(projected, blended + margin),
            )
        )

    confidence = max(0.0, min(100.0, fit.r_squared * 100.0))
    metrics = ProjectionMetrics(
        trend=classify_trend(values),
        growth_rate=growth_rate(values),
        confidence=confidence,
        r_squared=fit.r_squared,
    )
    return ProjectionResult(
        historical=[TimeSeriesPoint(period=p.period, value=float(p.value)) for p in history],
        projections=projections,
        metrics=metrics,
    )


# ---------------------------------------------------------------------------
# Core service implementation


class ProjectionService:
    """Fetch a spend series from the data source and project it forward."""

    def __init__(self, spend_source: SpendSource) -> None:
        self.spend_source = spend_source

    def generate_projections(
        self,
        period_type: PeriodType,
        periods_to_project: int,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> ProjectionResult:
        buckets = self.spend_source.spend_by_period(period_type, filters)
        history = [TimeSeriesPoint(period=b.period, value=b.total) for b in buckets]
        result = project(period_type, history, periods_to_project)
        LOGGER.info(
            "Projected %d %s periods from %d historical points (trend=%s r2=%.3f)",
            len(result.projections),
            period_type,
            len(history),
            result.metrics.trend,
            result.metrics.r_squared,
        )
        return result
