"""Error response models for the API.

All errors include a request_id for tracing and debugging.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Error type identifier (e.g., "VALIDATION_ERROR", "NOT_FOUND")
        error_code: Machine-readable error code for programmatic handling
        message: Human-readable error message
        details: Additional error context (validation errors, upstream status, etc.)
        request_id: Unique request identifier for tracing
        timestamp: ISO 8601 timestamp of when the error occurred
    """

    error: str = Field(
        ...,
        description="Error type identifier",
        examples=["NOT_FOUND"],
    )
    error_code: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["VIDEO_NOT_FOUND"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Video not found"],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details and context",
    )
    request_id: str = Field(
        ...,
        description="Unique request identifier for tracing",
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO 8601 timestamp of error occurrence",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "NOT_FOUND",
                "error_code": "VIDEO_NOT_FOUND",
                "message": "Video not found",
                "details": {"video_id": "dQw4w9WgXcQ"},
                "request_id": "0b6f2d1e-4c1a-4f57-9b7e-1f2d3c4b5a69",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
    }


class ValidationErrorResponse(ErrorResponse):
    """Request body, query or path parameters failed validation."""

    error: str = Field(default="VALIDATION_ERROR", frozen=True)
    error_code: str = Field(default="VALIDATION_ERROR")
    details: dict[str, Any] = Field(  # type: ignore[assignment]
        default_factory=dict,
        description="Validation errors by field",
    )


class NotFoundErrorResponse(ErrorResponse):
    """A requested channel or video does not exist."""

    error: str = Field(default="NOT_FOUND", frozen=True)
    error_code: str = Field(
        ...,
        description="Specific not found error code",
        examples=["VIDEO_NOT_FOUND", "CHANNEL_NOT_FOUND"],
    )


class InternalServerErrorResponse(ErrorResponse):
    """Unhandled exceptions and system errors."""

    error: str = Field(default="INTERNAL_SERVER_ERROR", frozen=True)
    error_code: str = Field(default="INTERNAL_ERROR", frozen=True)
    message: str = Field(
        default="An unexpected error occurred. Please try again later.",
        description="Generic error message to avoid leaking internal details",
    )


class ErrorCodes:
    """Standardized error codes for the API."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_VIDEO_ID = "INVALID_VIDEO_ID"
    INVALID_PARAMETER = "INVALID_PARAMETER"

    # Not found errors
    NOT_FOUND = "NOT_FOUND"
    VIDEO_NOT_FOUND = "VIDEO_NOT_FOUND"
    CHANNEL_NOT_FOUND = "CHANNEL_NOT_FOUND"

    # Server errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
