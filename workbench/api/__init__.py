"""HTTP API for the Creator Workbench."""

from workbench.api.app import app, create_app

__all__ = ["app", "create_app"]
