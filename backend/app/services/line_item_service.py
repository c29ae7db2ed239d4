r"""backend\app\services\line_item_service.py

Aggregate queries over the invoice line item dataset."""

from __future__ import annotations

import logging
import os
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from ..models.schemas import SeasonalTrend, SpendBucket
from .io_utils import read_line_items
from .reorder_service import ProductDemand

LOGGER = logging.getLogger(__name__)

SEASONAL_LOOKBACK_DAYS = 730

_PERIOD_FORMATS = {
    "day": "%Y-%m-%d",
    "month": "%Y-%m",
    "year": "%Y",
}


def period_labels(dates: pd.Series, period: str) -> pd.Series:
    """Format invoice dates as period labels.

    Weeks use the ISO week-numbering year, so 2024-12-30 is labelled
    ``2025-01``.
    """

    if period == "week":
        iso = dates.dt.isocalendar()
        return iso["year"].astype(str) + "-" + iso["week"].astype(int).map("{:02d}".format)
    try:
        fmt = _PERIOD_FORMATS[period]
    except KeyError as exc:
        raise ValueError(f"Unsupported period '{period}'") from exc
    return dates.dt.strftime(fmt)


def _as_timestamp(value: Any) -> pd.Timestamp:
    return pd.Timestamp(value).normalize()


class LineItemService:
    """Expose spend and demand aggregates from ``line_items.csv``."""

    def __init__(self, data_root: str = "data") -> None:
        self.data_root = Path(os.getenv("DATA_DIR", data_root))
        self._frame: Optional[pd.DataFrame] = None
        self._frame_key: Optional[tuple[Path, float]] = None

    # ------------------------------------------------------------------
    def _csv_path(self) -> Path:
        return self.data_root / "line_items.csv"

    def _parquet_path(self) -> Path:
        return self._csv_path().with_suffix(".parquet")

    def data_files_present(self) -> bool:
        return self._csv_path().exists() or self._parquet_path().exists()

    def _source_key(self) -> Optional[tuple[Path, float]]:
        for path in (self._parquet_path(), self._csv_path()):
            if path.exists():
                return path, path.stat().st_mtime
        return None

    def load(self) -> pd.DataFrame:
        """Return the line item frame, re-reading it when the file changes."""

        key = self._source_key()
        if key is None:
            raise FileNotFoundError(f"Line item dataset not found at {self._csv_path()}")
        if self._frame is None or key != self._frame_key:
            LOGGER.debug("Loading line items from %s", self.data_root)
            self._frame = read_line_items(self._csv_path())
            self._frame_key = key
        return self._frame

    def _window(self, days: int, today: Optional[date]) -> pd.DataFrame:
        frame = self.load()
        end = _as_timestamp(today or date.today())
        start = end - timedelta(days=int(days))
        return frame[frame["invoice_date"] >= start]

    # ------------------------------------------------------------------
    def spend_by_period(
        self, period: str, filters: Optional[Mapping[str, Any]] = None
    ) -> List[SpendBucket]:
        """Return total spend and quantity per period label, oldest first."""

        frame = self.load()
        filters = filters or {}

        pharmacy_id = filters.get("pharmacy_id")
        if pharmacy_id is not None:
            matches = (frame["pharmacy_id"] == int(pharmacy_id)).fillna(False)
            frame = frame[matches.astype(bool)]
        start_date = filters.get("start_date")
        if start_date is not None:
            frame = frame[frame["invoice_date"] >= _as_timestamp(start_date)]
        end_date = filters.get("end_date")
        if end_date is not None:
            frame = frame[frame["invoice_date"] <= _as_timestamp(end_date)]

        if frame.empty:
            return []

        labels = period_labels(frame["invoice_date"], period)
        grouped = (
            frame.assign(period=labels)
            .groupby("period", sort=True)
            .agg(total=("total_price", "sum"), quantity=("quantity", "sum"))
            .reset_index()
        )
        return [
            SpendBucket(period=str(row.period), total=float(row.total), count=int(row.quantity))
            for row in grouped.itertuples(index=False)
        ]

    def recent_product_totals(self, days: int, today: Optional[date] = None) -> Dict[str, float]:
        """Sum of ordered quantity per product over the last ``days`` days."""

        window = self._window(days, today)
        totals = window.groupby("product_name")["quantity"].sum()
        return {str(name): float(qty) for name, qty in totals.items()}

    def product_average_quantity(self, days: int, today: Optional[date] = None) -> Dict[str, float]:
        """Mean line quantity per product over the last ``days`` days."""

        window = self._window(days, today)
        averages = window.groupby("product_name")["quantity"].mean()
        return {str(name): float(qty) for name, qty in averages.items()}

    def product_demand(self, days: int, today: Optional[date] = None) -> List[ProductDemand]:
        window = self._window(days, today)
        if window.empty:
            return []
        grouped = window.groupby("product_name").agg(
            avg_quantity=("quantity", "mean"),
            last_order=("invoice_date", "max"),
            order_count=("quantity", "size"),
        )
        return [
            ProductDemand(
                product_name=str(name),
                avg_quantity=float(row.avg_quantity),
                last_order_date=row.last_order.date(),
                order_count=int(row.order_count),
            )
            for name, row in grouped.iterrows()
        ]

    def seasonal_trends(
        self, product_name: Optional[str] = None, today: Optional[date] = None
    ) -> List[SeasonalTrend]:
        """Average quantity and spend per calendar month over two years."""

        window = self._window(SEASONAL_LOOKBACK_DAYS, today)
        if product_name:
            window = window[window["product_name"] == product_name]
        if window.empty:
            return []

        grouped = (
            window.assign(
                month=window["invoice_date"].dt.month,
                month_name=window["invoice_date"].dt.strftime("%b"),
            )
            .groupby(["month", "month_name"], sort=True)
            .agg(avg_quantity=("quantity", "mean"), avg_spend=("total_price", "mean"))
            .reset_index()
        )
        return [
            SeasonalTrend(
                month=int(row.month),
                month_name=str(row.month_name),
                avg_quantity=float(row.avg_quantity),
                avg_spend=float(row.avg_spend),
            )
            for row in grouped.itertuples(index=False)
        ]
