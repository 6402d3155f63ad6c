"""Custom exceptions for the channel resolution pipeline."""

from typing import Any


class WorkbenchError(Exception):
    """Base exception for workbench errors."""

    pass


class ApiError(WorkbenchError):
    """An HTTP collaborator answered with a non-2xx status or could not be reached.

    Attributes:
        status_code: HTTP status, or None when the request never got a response
        payload: Decoded response body (JSON or text), if any
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class LocalDataError(ApiError):
    """Local data source (backend API or MongoDB store) failed."""

    pass


class YouTubeAPIError(ApiError):
    """YouTube Data API request failed."""

    def __init__(
        self,
        operation: str,
        status_code: int | None = None,
        reason: str = "",
        body: str = "",
        payload: Any = None,
    ) -> None:
        message = f"YouTube {operation} request failed: {status_code} {reason}".rstrip()
        if body:
            message = f"{message} - {body}"
        super().__init__(message, status_code=status_code, payload=payload)
        self.operation = operation


class RequestAborted(WorkbenchError):
    """The session's abort signal fired while a request was in flight."""

    pass


class ResolutionError(WorkbenchError):
    """Channel or video could not be resolved."""

    pass


class ChannelNotFoundError(ResolutionError):
    """Channel or its uploads playlist does not exist."""

    def __init__(self, message: str = "Channel or playlist not found") -> None:
        super().__init__(message)


class ConfigurationError(WorkbenchError):
    """Required configuration is missing."""

    pass
