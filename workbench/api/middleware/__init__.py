"""Middleware module for the API.

This module provides middleware components for:
- Error handling and standardization
- Request/response logging and request ID tracking
"""

from workbench.api.middleware.error_handler import ErrorHandlerMiddleware, setup_error_handler
from workbench.api.middleware.logging import (
    LoggingMiddleware,
    get_request_id,
    setup_logging_middleware,
)

__all__ = [
    "ErrorHandlerMiddleware",
    "setup_error_handler",
    "LoggingMiddleware",
    "setup_logging_middleware",
    "get_request_id",
]
