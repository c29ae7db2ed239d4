"""Demand spike detection over per-product quantity aggregates."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Mapping, Protocol

from ..models.schemas import Alert, NewAlert

LOGGER = logging.getLogger(__name__)

DEMAND_SPIKE = "demand_spike"

DEFAULT_SPIKE_MULTIPLIER = 1.5
DEFAULT_MIN_VOLUME = 5.0


class DemandSource(Protocol):
    def recent_product_totals(self, days: int) -> Dict[str, float]:
        ...

    def product_average_quantity(self, days: int) -> Dict[str, float]:
        ...


class AlertSink(Protocol):
    def has_recent(self, alert_type: str, product_name: str, days: int) -> bool:
        ...

    def create(self, alert: NewAlert) -> Alert:
        ...


# ---------------------------------------------------------------------------
def spike_increase_percent(recent: float, trailing: float) -> int:
    """Percent by which ``recent`` exceeds ``trailing``, rounded half up."""

    if trailing == 0:
        return 0
    return math.floor((recent / trailing - 1.0) * 100.0 + 0.5)


def detect_spikes(
    recent: Mapping[str, float],
    trailing: Mapping[str, float],
    has_recent_alert: Callable[[str], bool],
    *,
    multiplier: float = DEFAULT_SPIKE_MULTIPLIER,
    min_volume: float = DEFAULT_MIN_VOLUME,
) -> List[NewAlert]:
    """Return new demand spike alerts.

    A product spikes when its recent-window total exceeds ``multiplier`` times
    its trailing average and the trailing average is above ``min_volume``.
    Products for which ``has_recent_alert`` returns true are skipped so that
    repeated detection runs do not raise the same alert again.
    """

    alerts: List[NewAlert] = []
    for product_name, recent_qty in recent.items():
        trailing_qty = trailing.get(product_name)
        if trailing_qty is None:
            continue
        recent_qty = float(recent_qty)
        trailing_qty = float(trailing_qty)
        if trailing_qty <= min_volume or recent_qty <= trailing_qty * multiplier:
            continue
        if has_recent_alert(product_name):
            LOGGER.debug("Spike for %s already alerted recently; skipping", product_name)
            continue

        increase = spike_increase_percent(recent_qty, trailing_qty)
        alerts.append(
            NewAlert(
                type=DEMAND_SPIKE,
                severity="warning",
                title=f"Demand spike: {product_name}",
                message=f"Demand increased {increase}% above average",
                product_name=product_name,
                threshold_value=trailing_qty,
                actual_value=recent_qty,
            )
        )
    return alerts


class AnomalyService:
    """Run spike detection against live aggregates and store the alerts."""

    def __init__(
        self,
        demand_source: DemandSource,
        alert_sink: AlertSink,
        settings: Mapping[str, Any] | None = None,
    ) -> None:
        settings = settings or {}
        self.demand_source = demand_source
        self.alert_sink = alert_sink
        self.recent_days = int(settings.get("spike_recent_days", 7))
        self.trailing_days = int(settings.get("spike_trailing_days", 30))
        self.multiplier = float(settings.get("spike_multiplier", DEFAULT_SPIKE_MULTIPLIER))
        self.min_volume = float(settings.get("spike_min_volume", DEFAULT_MIN_VOLUME))
        self.dedup_days = int(settings.get("alert_dedup_days", 7))

    def detect_anomalies(self) -> List[Alert]:
        recent = self.demand_source.recent_product_totals(self.recent_days)
        trailing = self.demand_source.product_average_quantity(self.trailing_days)

        def _already_alerted(product_name: str) -> bool:
            return self.alert_sink.has_recent(DEMAND_SPIKE, product_name, self.dedup_days)

        new_alerts = detect_spikes(
            recent,
            trailing,
            _already_alerted,
            multiplier=self.multiplier,
            min_volume=self.min_volume,
        )
        created = [self.alert_sink.create(alert) for alert in new_alerts]
        LOGGER.info(
            "Anomaly detection checked %d products; %d new spike alerts",
            len(recent),
            len(created),
        )
        return created
