from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.services.reorder_service import (
    ProductDemand,
    ReorderService,
    classify_urgency,
    recommend_reorders,
)

TODAY = date(2024, 6, 1)


def _sample(name: str, days_ago: int, avg_quantity: float = 60.0, orders: int = 3) -> ProductDemand:
    return ProductDemand(
        product_name=name,
        avg_quantity=avg_quantity,
        last_order_date=TODAY - timedelta(days=days_ago),
        order_count=orders,
    )


def test_urgency_boundaries_are_strict() -> None:
    assert classify_urgency(6) == "high"
    assert classify_urgency(7) == "medium"
    assert classify_urgency(20) == "medium"
    assert classify_urgency(21) == "low"
    assert classify_urgency(-10) == "high"


def test_recommendation_fields() -> None:
    recs = recommend_reorders([_sample("Omeprazole", days_ago=70, avg_quantity=45.0)], TODAY)

    assert len(recs) == 1
    rec = recs[0]
    assert rec.product_name == "Omeprazole"
    assert rec.avg_daily_demand == pytest.approx(1.5)
    assert rec.days_supply_pattern == 84
    assert rec.last_order_date == date(2024, 3, 23)
    assert rec.estimated_reorder_date == TODAY + timedelta(days=14)
    assert rec.urgency == "medium"


def test_overdue_products_never_project_into_the_past() -> None:
    rec = recommend_reorders([_sample("Warfarin", days_ago=100)], TODAY)[0]

    assert rec.estimated_reorder_date == TODAY
    assert rec.urgency == "high"


def test_insufficient_samples_are_excluded_and_order_is_most_overdue_first() -> None:
    samples = [
        _sample("Recent", days_ago=5),
        _sample("Single order", days_ago=80, orders=1),
        _sample("Oldest", days_ago=60),
        _sample("Middle", days_ago=30),
    ]

    recs = recommend_reorders(samples, TODAY)

    assert [r.product_name for r in recs] == ["Oldest", "Middle", "Recent"]
    assert [r.urgency for r in recs] == ["low", "low", "low"]


def test_limit_caps_results() -> None:
    samples = [_sample(f"P{i}", days_ago=i) for i in range(30)]

    recs = recommend_reorders(samples, TODAY, limit=20)

    assert len(recs) == 20
    assert recs[0].product_name == "P29"


def test_supply_pattern_is_configurable() -> None:
    class _Source:
        def product_demand(self, days, today=None):
            assert days == 60
            return [_sample("Atorvastatin", days_ago=20)]

    service = ReorderService(
        _Source(),
        settings={"days_supply_pattern": 28, "reorder_lookback_days": 60},
    )

    recs = service.get_reorder_recommendations(today=TODAY)

    assert recs[0].days_supply_pattern == 28
    assert recs[0].estimated_reorder_date == TODAY + timedelta(days=8)
    assert recs[0].urgency == "medium"


def test_service_rejects_non_positive_supply_pattern() -> None:
    with pytest.raises(ValueError):
        ReorderService(object(), settings={"days_supply_pattern": 0})
