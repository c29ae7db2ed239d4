r"""backend\app\api\v1\alerts.py

Endpoints for listing alerts, updating their status and running anomaly
detection."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from ...core.config import load_business_settings
from ...models import schemas
from ...services.alert_store import AlertStore
from ...services.anomaly_service import AnomalyService
from ...services.line_item_service import LineItemService
from .projections import _data_unavailable, _error_payload

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_alert_store = AlertStore(data_root="data")
_line_item_service = LineItemService(data_root="data")


class AlertAction(BaseModel):
    action: Literal["detect", "read", "dismiss"]
    id: Optional[int] = Field(None, ge=1)

    @field_validator("action", mode="before")
    @classmethod
    def _normalise_action(cls, value: str) -> str:
        return (value or "").lower()


@router.get("/alerts", response_model=List[schemas.Alert])
def list_alerts(unread_only: bool = False) -> List[schemas.Alert]:
    """Return undismissed alerts, newest first."""

    return _alert_store.list(unread_only=unread_only)


@router.post("/alerts")
def alert_action(body: AlertAction) -> Dict[str, Any]:
    """Run anomaly detection or mark an alert as read/dismissed."""

    if body.action == "detect":
        service = AnomalyService(_line_item_service, _alert_store, load_business_settings())
        try:
            created = service.detect_anomalies()
        except FileNotFoundError as exc:
            LOGGER.exception("Anomaly detection failed due to missing line item dataset")
            raise _data_unavailable() from exc
        return {
            "success": True,
            "message": "Anomaly detection completed",
            "created": [alert.model_dump(mode="json") for alert in created],
        }

    if body.id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_action", f"Action '{body.action}' requires an id."),
        )

    try:
        if body.action == "read":
            _alert_store.mark_read(body.id)
        else:
            _alert_store.dismiss(body.id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error_payload("alert_not_found", f"Alert {body.id} was not found."),
        ) from exc
    return {"success": True}
