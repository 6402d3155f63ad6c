"""Health check endpoints.

- GET /health - Basic liveness probe
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from workbench.api.dependencies import get_settings_dep
from workbench.core.config import Settings
from workbench.core.constants import APP_VERSION

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Liveness probe",
    operation_id="health",
)
async def health(settings: Settings = Depends(get_settings_dep)) -> dict[str, Any]:
    """Report that the service is running and which local source it consults."""
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "local_source": settings.local_source,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
