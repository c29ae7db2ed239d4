"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables and provides helper functions to load the YAML file
holding the business parameters (supply cycle, spike thresholds, windows).
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

BUSINESS_DEFAULTS: Dict[str, Any] = {
    "days_supply_pattern": 84,
    "demand_window_days": 30,
    "reorder_lookback_days": 90,
    "reorder_min_orders": 2,
    "reorder_limit": 20,
    "spike_recent_days": 7,
    "spike_trailing_days": 30,
    "spike_multiplier": 1.5,
    "spike_min_volume": 5.0,
    "alert_dedup_days": 7,
    "max_projection_periods": 120,
}


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # DATA_DIR and CONFIG_DIR are read per call by the services.


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_business_settings(config_dir: str | None = None) -> Dict[str, Any]:
    """Return ``settings.yaml`` merged over :data:`BUSINESS_DEFAULTS`."""

    config_dir = config_dir or os.getenv("CONFIG_DIR", "configs")
    loaded = load_yaml(os.path.join(config_dir, "settings.yaml"))
    settings = dict(BUSINESS_DEFAULTS)
    if isinstance(loaded, dict):
        settings.update({k: v for k, v in loaded.items() if v is not None})
    return settings
