from __future__ import annotations

import math
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import SpendBucket, TimeSeriesPoint
from backend.app.services.projection_service import (
    ProjectionService,
    classify_trend,
    generate_future_periods,
    growth_rate,
    project,
)
from backend.app.services.series_stats import standard_deviation


def _series(values: list[float], start_year: int = 2024) -> list[TimeSeriesPoint]:
    points = []
    for idx, value in enumerate(values):
        year = start_year + idx // 12
        month = idx % 12 + 1
        points.append(TimeSeriesPoint(period=f"{year}-{month:02d}", value=value))
    return points


class StubSpendSource:
    def __init__(self, buckets: list[SpendBucket]) -> None:
        self.buckets = buckets
        self.calls: list[tuple[str, object]] = []

    def spend_by_period(self, period, filters=None):
        self.calls.append((period, filters))
        return list(self.buckets)


def test_empty_series_returns_degenerate_result() -> None:
    result = project("month", [], 6)

    assert result.historical == []
    assert result.projections == []
    assert result.metrics.trend == "stable"
    assert result.metrics.growth_rate == 0
    assert result.metrics.confidence == 0


def test_single_point_has_flat_projection_without_artifacts() -> None:
    result = project("month", _series([120.0]), 3)

    assert len(result.projections) == 3
    for point in result.projections:
        assert point.projected == pytest.approx(120.0)
        assert point.lower_bound == point.upper_bound == pytest.approx(120.0)
    assert result.metrics.r_squared == 0
    assert result.metrics.growth_rate == 0
    assert result.metrics.trend == "stable"


def test_linear_series_projects_near_next_value() -> None:
    result = project("month", _series([10, 20, 30, 40, 50]), 3)

    assert result.metrics.r_squared == pytest.approx(1.0)
    assert result.metrics.confidence == pytest.approx(100.0)
    assert result.metrics.growth_rate == pytest.approx(400.0)
    assert result.metrics.trend == "up"

    first = result.projections[0]
    assert first.period == "2024-06"
    assert first.lower_bound <= 60 <= first.upper_bound
    assert first.projected == pytest.approx(50.04, abs=0.01)


def test_constant_series_has_zero_margin() -> None:
    result = project("week", [TimeSeriesPoint(period=f"2024-{w:02d}", value=50) for w in range(1, 5)], 4)

    assert result.metrics.r_squared == 0
    assert result.metrics.confidence == 0
    for point in result.projections:
        assert point.lower_bound == point.projected == point.upper_bound == pytest.approx(50.0)


def test_bounds_invariant_and_margin_growth() -> None:
    values = [300, 120, 90, 40, 10, 5]
    result = project("month", _series(values), 12)

    margins = []
    for point in result.projections:
        assert point.lower_bound >= 0
        assert point.lower_bound <= point.projected <= point.upper_bound
        for value in (point.projected, point.lower_bound, point.upper_bound):
            assert math.isfinite(value)
        margins.append(point.upper_bound - point.projected)
    assert result.projections[-1].projected == 0
    assert margins[0] > 0


def test_zero_moving_average_does_not_produce_nan() -> None:
    result = project("year", [TimeSeriesPoint(period=str(y), value=0) for y in (2021, 2022, 2023)], 2)

    assert [p.period for p in result.projections] == ["2024", "2025"]
    assert all(p.projected == 0 for p in result.projections)
    assert result.metrics.growth_rate == 0


def test_projection_is_idempotent() -> None:
    history = _series([100, 140, 90, 160, 180, 175])

    assert project("month", history, 6) == project("month", history, 6)


def test_future_period_rollover() -> None:
    assert generate_future_periods("2024-52", 1, "week") == ["2025-01"]
    assert generate_future_periods("2024-12", 1, "month") == ["2025-01"]
    assert generate_future_periods("2024-11", 3, "month") == ["2024-12", "2025-01", "2025-02"]
    assert generate_future_periods("2023", 2, "year") == ["2024", "2025"]


def test_future_period_rejects_garbage_label() -> None:
    with pytest.raises(ValueError):
        generate_future_periods("not-a-label", 1, "month")


def test_trend_and_growth_guards() -> None:
    assert classify_trend([100, 106]) == "up"
    assert classify_trend([100, 94]) == "down"
    assert classify_trend([100, 104]) == "stable"
    assert classify_trend([0, 50]) == "stable"
    assert classify_trend([50]) == "stable"
    assert growth_rate([0, 10, 20]) == 0.0
    assert growth_rate([50, 25]) == pytest.approx(-50.0)


def test_service_passes_filters_through_to_source() -> None:
    source = StubSpendSource(
        [
            SpendBucket(period="2024-01", total=100.0, count=10),
            SpendBucket(period="2024-02", total=110.0, count=11),
        ]
    )
    service = ProjectionService(source)
    filters = {"pharmacy_id": 3}

    result = service.generate_projections("month", 2, filters)

    assert source.calls == [("month", filters)]
    assert [p.value for p in result.historical] == [100.0, 110.0]
    assert [p.period for p in result.projections] == ["2024-03", "2024-04"]


def test_margin_widens_ten_percent_per_step() -> None:
    values = [10, 20, 30, 40, 50]
    std = standard_deviation(values)
    result = project("month", _series(values), 3)

    assert std == pytest.approx(15.8114, abs=1e-4)
    for i, point in enumerate(result.projections):
        margin = std * 1.96 * (1 + 0.1 * i)
        assert point.lower_bound > 0
        assert point.upper_bound - point.projected == pytest.approx(margin)
        assert point.projected - point.lower_bound == pytest.approx(margin)


def test_tiny_moving_average_with_steep_slope_stays_finite() -> None:
    values = [0, 0, 0, 0, 0, 1000, 1e-6, 1e-6, 1e-6, 1e-6]

    result = project("month", _series(values), 120)

    assert len(result.projections) == 120
    for point in result.projections:
        for value in (point.projected, point.lower_bound, point.upper_bound):
            assert math.isfinite(value)
        assert 0 <= point.lower_bound <= point.projected <= point.upper_bound
