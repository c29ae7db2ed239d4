"""API endpoints for reading and updating the business settings YAML file."""

from __future__ import annotations

import os
import shutil
import tempfile
from typing import Any, Dict, Optional

import yaml
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.config import load_business_settings

router = APIRouter()


def _settings_path() -> str:
    return os.path.join(os.getenv("CONFIG_DIR", "configs"), "settings.yaml")


def _load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _safe_write_yaml(path: str, payload: Dict[str, Any]) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".yaml", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)
        shutil.move(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


class SettingsUpdate(BaseModel):
    days_supply_pattern: Optional[int] = Field(None, ge=1, le=365)
    demand_window_days: Optional[int] = Field(None, ge=1, le=365)
    reorder_lookback_days: Optional[int] = Field(None, ge=1, le=730)
    reorder_min_orders: Optional[int] = Field(None, ge=1)
    reorder_limit: Optional[int] = Field(None, ge=1, le=500)
    spike_recent_days: Optional[int] = Field(None, ge=1, le=90)
    spike_trailing_days: Optional[int] = Field(None, ge=1, le=365)
    spike_multiplier: Optional[float] = Field(None, gt=1.0)
    spike_min_volume: Optional[float] = Field(None, ge=0.0)
    alert_dedup_days: Optional[int] = Field(None, ge=0, le=365)
    max_projection_periods: Optional[int] = Field(None, ge=1, le=520)


@router.get("/configs/settings")
def get_settings() -> Dict[str, Any]:
    """Return the effective settings: file values over built-in defaults."""

    return load_business_settings()


@router.put("/configs/settings")
def put_settings(body: SettingsUpdate) -> Dict[str, Any]:
    path = _settings_path()
    try:
        current = _load_yaml(path)
    except FileNotFoundError:
        current = {}

    updated = current.copy()
    updated.update(body.model_dump(exclude_none=True))
    if updated == current:
        return load_business_settings()

    try:
        _safe_write_yaml(path, updated)
    except OSError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "write_failed", "message": str(exc)},
        ) from exc
    return load_business_settings()
