r"""backend\app\api\v1\data.py

Dataset checks for the line item export."""

from __future__ import annotations

from fastapi import APIRouter

from ...services.validation_service import ValidationService

router = APIRouter()


@router.get("/data/validate")
def validate() -> dict:
    """Report whether line_items.csv is present and has the expected columns."""

    return ValidationService().run()
