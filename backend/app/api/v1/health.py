r"""backend\app\api\v1\health.py

Health check endpoints.

Orchestrators and load balancers can use `/api/v1/health` to verify that
the service is running.  The payload also reports whether the line item
dataset is available, without loading it.
"""

from fastapi import APIRouter

from ...services.line_item_service import LineItemService

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Return a basic health indicator."""
    data_status = "present" if LineItemService().data_files_present() else "missing"
    return {"status": "ok", "line_items": data_status}
