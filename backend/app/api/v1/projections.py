"""Routes for spend projections."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, status

from ...core.config import load_business_settings
from ...models import schemas
from ...services.line_item_service import LineItemService
from ...services.projection_service import ProjectionService

LOGGER = logging.getLogger(__name__)

router = APIRouter()

MIN_PROJECTION_PERIODS = 1
DEFAULT_PROJECTION_PERIODS = 6

_line_item_service = LineItemService(data_root="data")
_projection_service = ProjectionService(_line_item_service)


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def _data_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=_error_payload(
            "data_unavailable",
            "Line item dataset is missing. Place line_items.csv in the data directory and retry.",
        ),
    )


def _build_filters(
    pharmacy_id: Optional[int],
    start_date: Optional[date],
    end_date: Optional[date],
) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}
    if pharmacy_id is not None:
        filters["pharmacy_id"] = pharmacy_id
    if start_date is not None:
        filters["start_date"] = start_date
    if end_date is not None:
        filters["end_date"] = end_date
    return filters


def _parse_periods(raw_periods: int) -> int:
    """Validate the requested number of future periods."""

    max_periods = int(load_business_settings().get("max_projection_periods", 120))
    if raw_periods < MIN_PROJECTION_PERIODS or raw_periods > max_periods:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload(
                "invalid_periods",
                f"periods must be between {MIN_PROJECTION_PERIODS} and {max_periods}.",
            ),
        )
    return raw_periods


@router.get("/projections", response_model=schemas.ProjectionResult)
def get_projections(
    period: schemas.PeriodType = Query("month", description="Granularity of the spend series"),
    periods: int = Query(DEFAULT_PROJECTION_PERIODS, description="Number of future periods"),
    pharmacy_id: Optional[int] = Query(None, description="Restrict to a single pharmacy"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> schemas.ProjectionResult:
    """Return the historical spend series with blended projections."""

    LOGGER.info(
        "Projection request received period=%s periods=%s pharmacy_id=%s",
        period,
        periods,
        pharmacy_id,
    )
    horizon = _parse_periods(periods)
    filters = _build_filters(pharmacy_id, start_date, end_date)

    try:
        return _projection_service.generate_projections(period, horizon, filters)
    except FileNotFoundError as exc:
        LOGGER.exception("Projection failed due to missing line item dataset")
        raise _data_unavailable() from exc
    except ValueError as exc:
        LOGGER.warning("Projection rejected for period=%s: %s", period, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc
    except Exception as exc:  # pragma: no cover
        LOGGER.exception("Unexpected error while projecting period=%s", period)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_payload("projection_failed", "Failed to generate projections."),
        ) from exc


@router.get("/spend", response_model=list[schemas.SpendBucket])
def get_spend(
    period: schemas.SpendPeriod = Query("month"),
    pharmacy_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> list[schemas.SpendBucket]:
    """Return total spend and quantity per period."""

    filters = _build_filters(pharmacy_id, start_date, end_date)
    try:
        return _line_item_service.spend_by_period(period, filters)
    except FileNotFoundError as exc:
        LOGGER.exception("Spend query failed due to missing line item dataset")
        raise _data_unavailable() from exc


@router.get("/seasonal", response_model=list[schemas.SeasonalTrend])
def get_seasonal(product_name: Optional[str] = Query(None)) -> list[schemas.SeasonalTrend]:
    """Return average monthly quantity and spend over the last two years."""

    try:
        return _line_item_service.seasonal_trends(product_name)
    except FileNotFoundError as exc:
        LOGGER.exception("Seasonal query failed due to missing line item dataset")
        raise _data_unavailable() from exc
