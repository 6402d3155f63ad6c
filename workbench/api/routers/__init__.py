"""API routers module."""

from workbench.api.routers.channels import router as channels_router
from workbench.api.routers.health import router as health_router
from workbench.api.routers.videos import router as videos_router

__all__ = [
    "channels_router",
    "health_router",
    "videos_router",
]
