"""Routes for reorder recommendations."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from ...core.config import load_business_settings
from ...models import schemas
from ...services.line_item_service import LineItemService
from ...services.reorder_service import ReorderService
from .projections import _data_unavailable, _error_payload

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_line_item_service = LineItemService(data_root="data")


@router.get("/reorder", response_model=List[schemas.ReorderRecommendation])
def get_reorder_recommendations() -> List[schemas.ReorderRecommendation]:
    """Return products most overdue for reorder, with urgency tags."""

    try:
        service = ReorderService(_line_item_service, load_business_settings())
        return service.get_reorder_recommendations()
    except FileNotFoundError as exc:
        LOGGER.exception("Reorder recommendations failed due to missing line item dataset")
        raise _data_unavailable() from exc
    except ValueError as exc:
        LOGGER.warning("Reorder recommendations rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_settings", str(exc)),
        ) from exc
