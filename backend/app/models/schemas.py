r"""backend\app\models\schemas.py

Pydantic models used throughout the API.

These models serve as both service return types and response
serialisation schemas.  Using typed models ensures that clients and
servers agree on the structure of the data being exchanged.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

PeriodType = Literal["week", "month", "year"]
SpendPeriod = Literal["day", "week", "month", "year"]
Trend = Literal["up", "down", "stable"]
Urgency = Literal["low", "medium", "high"]


class TimeSeriesPoint(BaseModel):
    """A single historical value of the spend series."""

    period: str = Field(..., description="Period label, e.g. 2024-07 for a month")
    value: float = Field(..., description="Total spend for the period")


class Projection(BaseModel):
    """A projected future value with its confidence band."""

    period: str
    projected: float = Field(..., description="Blended point estimate, never negative")
    lower_bound: float = Field(..., description="Lower bound of the confidence band")
    upper_bound: float = Field(..., description="Upper bound of the confidence band")


class ProjectionMetrics(BaseModel):
    """Summary statistics derived from the full historical series."""

    trend: Trend = "stable"
    growth_rate: float = Field(0.0, description="First-to-last growth, in percent")
    confidence: float = Field(0.0, description="Regression fit quality scaled to 0–100")
    r_squared: float = 0.0


class ProjectionResult(BaseModel):
    """Historical echo plus future projections for a spend series."""

    historical: List[TimeSeriesPoint]
    projections: List[Projection]
    metrics: ProjectionMetrics


class SpendBucket(BaseModel):
    """Aggregated spend for one period label."""

    period: str
    total: float
    count: int = Field(..., description="Total quantity ordered in the period")


class SeasonalTrend(BaseModel):
    month: int
    month_name: str
    avg_quantity: float
    avg_spend: float


class NewAlert(BaseModel):
    """An alert produced by detection, before it has been stored."""

    type: str
    severity: str = "info"
    title: str
    message: Optional[str] = None
    product_name: Optional[str] = None
    pharmacy_id: Optional[int] = None
    threshold_value: Optional[float] = None
    actual_value: Optional[float] = None


class Alert(NewAlert):
    """A stored alert record."""

    id: int
    is_read: bool = False
    is_dismissed: bool = False
    created_at: datetime


class ReorderRecommendation(BaseModel):
    """Reorder timing estimate for a single product."""

    product_name: str
    avg_daily_demand: float = Field(..., description="Average line quantity spread over 30 days")
    days_supply_pattern: int = Field(..., description="Assumed supply cycle length in days")
    last_order_date: date
    estimated_reorder_date: date
    urgency: Urgency
