"""Reorder timing recommendations from recent order history."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Protocol

from ..models.schemas import ReorderRecommendation

LOGGER = logging.getLogger(__name__)

# Typical compound prescription refill cycle; overridable via settings.yaml.
DEFAULT_DAYS_SUPPLY_PATTERN = 84
DEFAULT_DEMAND_WINDOW_DAYS = 30
DEFAULT_LOOKBACK_DAYS = 90
DEFAULT_MIN_ORDERS = 2
DEFAULT_LIMIT = 20

HIGH_URGENCY_DAYS = 7
MEDIUM_URGENCY_DAYS = 21


@dataclass(frozen=True)
class ProductDemand:
    """Order history summary for one product over the lookback window."""

    product_name: str
    avg_quantity: float
    last_order_date: date
    order_count: int


class DemandHistorySource(Protocol):
    def product_demand(self, days: int, today: Optional[date] = None) -> List[ProductDemand]:
        ...


# ---------------------------------------------------------------------------
def classify_urgency(days_until_reorder: int) -> str:
    if days_until_reorder < HIGH_URGENCY_DAYS:
        return "high"
    if days_until_reorder < MEDIUM_URGENCY_DAYS:
        return "medium"
    return "low"


def recommend_reorders(
    samples: Iterable[ProductDemand],
    today: date,
    *,
    days_supply_pattern: int = DEFAULT_DAYS_SUPPLY_PATTERN,
    demand_window_days: int = DEFAULT_DEMAND_WINDOW_DAYS,
    min_orders: int = DEFAULT_MIN_ORDERS,
    limit: Optional[int] = DEFAULT_LIMIT,
) -> List[ReorderRecommendation]:
    """Estimate when each product is next due for reorder.

    Products with fewer than ``min_orders`` orders are excluded.  Results are
    ordered most overdue first and truncated to ``limit`` entries.
    """

    eligible = [s for s in samples if s.order_count >= min_orders]
    eligible.sort(key=lambda s: (today - s.last_order_date).days, reverse=True)
    if limit is not None:
        eligible = eligible[: max(int(limit), 0)]

    recommendations: List[ReorderRecommendation] = []
    for sample in eligible:
        days_since_order = (today - sample.last_order_date).days
        days_until_reorder = days_supply_pattern - days_since_order
        recommendations.append(
            ReorderRecommendation(
                product_name=sample.product_name,
                avg_daily_demand=max(float(sample.avg_quantity), 0.0) / demand_window_days,
                days_supply_pattern=days_supply_pattern,
                last_order_date=sample.last_order_date,
                estimated_reorder_date=today + timedelta(days=max(0, days_until_reorder)),
                urgency=classify_urgency(days_until_reorder),
            )
        )
    return recommendations


class ReorderService:
    """Build reorder recommendations from the order history source."""

    def __init__(
        self,
        history_source: DemandHistorySource,
        settings: Mapping[str, Any] | None = None,
    ) -> None:
        settings = settings or {}
        self.history_source = history_source
        self.days_supply_pattern = int(
            settings.get("days_supply_pattern", DEFAULT_DAYS_SUPPLY_PATTERN)
        )
        self.demand_window_days = int(
            settings.get("demand_window_days", DEFAULT_DEMAND_WINDOW_DAYS)
        )
        self.lookback_days = int(settings.get("reorder_lookback_days", DEFAULT_LOOKBACK_DAYS))
        self.min_orders = int(settings.get("reorder_min_orders", DEFAULT_MIN_ORDERS))
        self.limit = int(settings.get("reorder_limit", DEFAULT_LIMIT))
        if self.days_supply_pattern <= 0 or self.demand_window_days <= 0:
            raise ValueError("days_supply_pattern and demand_window_days must be positive")

    def get_reorder_recommendations(self, today: Optional[date] = None) -> List[ReorderRecommendation]:
        today = today or date.today()
        samples = self.history_source.product_demand(self.lookback_days, today=today)
        recommendations = recommend_reorders(
            samples,
            today,
            days_supply_pattern=self.days_supply_pattern,
            demand_window_days=self.demand_window_days,
            min_orders=self.min_orders,
            limit=self.limit,
        )
        LOGGER.info(
            "Reorder recommendations: %d of %d products (high=%d)",
            len(recommendations),
            len(samples),
            sum(1 for rec in recommendations if rec.urgency == "high"),
        )
        return recommendations
