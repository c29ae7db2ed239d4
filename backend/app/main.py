r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API exposes spend projections, spend and seasonal aggregates, demand
spike alerts and reorder recommendations computed from the pharmacy invoice
line item export.  A health endpoint is also provided for readiness/liveness
checks.  Configuration is read from environment variables and
`configs/settings.yaml`.
"""


from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
import os
import logging
from pathlib import Path

from dotenv import load_dotenv

from .api.v1 import (
    alerts,
    configs,
    data,
    health,
    projections,
    reorder,
)
from .core.config import get_settings
from .core.observability import TokenAndRateLimitMiddleware, metrics_endpoint

# Load .env from repo root
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")

_settings = get_settings()
logging.getLogger(__name__).info(
    "API configured for %s:%s; line items from %s, settings from %s",
    _settings.api_host,
    _settings.api_port,
    os.getenv("DATA_DIR", "data"),
    os.getenv("CONFIG_DIR", "configs"),
)

app = FastAPI(title="Pharmacy Spend Analytics API", version="0.1.0")

# Allow cross-origin requests from the dashboard (and others).
origins_env = os.getenv("CORS_ORIGINS", "")
origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # In production specify your UI domain(s)
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TokenAndRateLimitMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(projections.router, prefix="/api/v1")
app.include_router(alerts.router, prefix="/api/v1")
app.include_router(reorder.router, prefix="/api/v1")
app.include_router(configs.router, prefix="/api/v1")
app.include_router(data.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()
