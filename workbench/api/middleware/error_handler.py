"""Error handler middleware for standardized error responses.

Converts unhandled exceptions and pipeline errors into the ErrorResponse format
with proper HTTP status codes.
"""

import uuid
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from workbench.api.models.errors import (
    ErrorCodes,
    ErrorResponse,
    InternalServerErrorResponse,
    NotFoundErrorResponse,
    ValidationErrorResponse,
)
from workbench.core.exceptions import (
    ApiError,
    ChannelNotFoundError,
    ConfigurationError,
    ResolutionError,
)
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)

_HTTP_ERROR_TYPES = {
    status.HTTP_400_BAD_REQUEST: ("BAD_REQUEST", ErrorCodes.INVALID_PARAMETER),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("METHOD_NOT_ALLOWED", "METHOD_NOT_ALLOWED"),
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(
        "X-Request-ID", str(uuid.uuid4())
    )


class ErrorHandlerMiddleware:
    """Global error handler for the FastAPI application.

    - Resolution errors (unknown channel or video) -> 404
    - Missing configuration (no YouTube API key) -> 503
    - Upstream API failures -> 502
    - Anything else -> 500 without internal details

    Usage:
        app = FastAPI()
        setup_error_handler(app)
    """

    def __init__(self, app: FastAPI) -> None:
        """Initialize error handler middleware.

        Args:
            app: FastAPI application instance
        """
        self.app = app
        self._register_exception_handlers()

    def _register_exception_handlers(self) -> None:
        """Register exception handlers for different exception types."""
        self.app.add_exception_handler(Exception, self._handle_generic_exception)
        self.app.add_exception_handler(RequestValidationError, self._handle_validation_error)
        self.app.add_exception_handler(ValidationError, self._handle_validation_error)
        self.app.add_exception_handler(StarletteHTTPException, self._handle_http_exception)
        self.app.add_exception_handler(ResolutionError, self._handle_resolution_error)
        self.app.add_exception_handler(ConfigurationError, self._handle_configuration_error)
        self.app.add_exception_handler(ApiError, self._handle_upstream_error)

    async def _handle_generic_exception(
        self,
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle generic unhandled exceptions.

        Args:
            request: FastAPI request object
            exc: The exception that was raised

        Returns:
            JSONResponse with standardized error format
        """
        request_id = _request_id(request)

        logger.exception(
            "Unhandled exception",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )

        error_response = InternalServerErrorResponse(
            request_id=request_id,
            details={"error_type": type(exc).__name__} if __debug__ else None,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response.model_dump(),
        )

    async def _handle_validation_error(
        self,
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle validation errors from request parsing.

        Args:
            request: FastAPI request object
            exc: RequestValidationError or pydantic ValidationError

        Returns:
            JSONResponse with validation error details
        """
        request_id = _request_id(request)

        errors: list[dict[str, Any]] = []
        if isinstance(exc, (RequestValidationError, ValidationError)):
            for error in exc.errors():
                errors.append(
                    {
                        "field": ".".join(str(loc) for loc in error["loc"]),
                        "message": error["msg"],
                        "type": error["type"],
                    }
                )

        error_response = ValidationErrorResponse(
            message="Request validation failed",
            details={"errors": errors},
            request_id=request_id,
        )

        logger.info(
            "Validation error",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "validation_errors": errors,
            },
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_response.model_dump(),
        )

    async def _handle_http_exception(
        self,
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle HTTP exceptions (404, 400, etc.).

        Args:
            request: FastAPI request object
            exc: HTTP exception

        Returns:
            JSONResponse with appropriate error format
        """
        request_id = _request_id(request)

        status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
        detail = getattr(exc, "detail", str(exc))
        message = detail if isinstance(detail, str) else str(detail)

        if status_code == status.HTTP_404_NOT_FOUND:
            error_response: ErrorResponse = NotFoundErrorResponse(
                error_code=ErrorCodes.NOT_FOUND,
                message=message,
                request_id=request_id,
            )
        else:
            error_type, error_code = _HTTP_ERROR_TYPES.get(
                status_code, ("HTTP_ERROR", f"HTTP_{status_code}")
            )
            error_response = ErrorResponse(
                error=error_type,
                error_code=error_code,
                message=message,
                request_id=request_id,
            )

        logger.info(
            f"HTTP {status_code} error",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
            },
        )

        return JSONResponse(
            status_code=status_code,
            content=error_response.model_dump(),
        )

    async def _handle_resolution_error(
        self,
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Unknown channel or video."""
        error_code = (
            ErrorCodes.CHANNEL_NOT_FOUND
            if isinstance(exc, ChannelNotFoundError)
            else ErrorCodes.VIDEO_NOT_FOUND
        )
        error_response = NotFoundErrorResponse(
            error_code=error_code,
            message=str(exc),
            details=dict(request.path_params) or None,
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=error_response.model_dump(),
        )

    async def _handle_configuration_error(
        self,
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Missing configuration, e.g. no YouTube API key anywhere."""
        logger.error("Configuration error on %s: %s", request.url.path, exc)
        error_response = ErrorResponse(
            error="SERVICE_UNAVAILABLE",
            error_code=ErrorCodes.CONFIGURATION_ERROR,
            message=str(exc),
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=error_response.model_dump(),
        )

    async def _handle_upstream_error(
        self,
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """YouTube Data API or local backend failure."""
        upstream_status = getattr(exc, "status_code", None)
        logger.warning(
            "Upstream error on %s: %s",
            request.url.path,
            exc,
            extra={"upstream_status": upstream_status},
        )
        error_response = ErrorResponse(
            error="BAD_GATEWAY",
            error_code=ErrorCodes.EXTERNAL_SERVICE_ERROR,
            message=str(exc),
            details={"upstream_status": upstream_status},
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=error_response.model_dump(),
        )


def setup_error_handler(app: FastAPI) -> None:
    """Set up error handler middleware for the application.

    Args:
        app: FastAPI application instance

    Example:
        from fastapi import FastAPI
        from workbench.api.middleware import setup_error_handler

        app = FastAPI()
        setup_error_handler(app)
    """
    ErrorHandlerMiddleware(app)
    logger.info("Error handler middleware initialized")
