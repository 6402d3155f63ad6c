"""API models module."""

from workbench.api.models.errors import (
    ErrorCodes,
    ErrorResponse,
    InternalServerErrorResponse,
    NotFoundErrorResponse,
    ValidationErrorResponse,
)

__all__ = [
    "ErrorCodes",
    "ErrorResponse",
    "InternalServerErrorResponse",
    "NotFoundErrorResponse",
    "ValidationErrorResponse",
]
