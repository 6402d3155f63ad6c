"""Core package for the Creator Workbench."""

from workbench.core.config import Settings, get_settings, get_settings_with_yaml
from workbench.core.exceptions import (
    ApiError,
    ChannelNotFoundError,
    ConfigurationError,
    LocalDataError,
    RequestAborted,
    ResolutionError,
    WorkbenchError,
    YouTubeAPIError,
)
from workbench.core.http_session import (
    AbortSignal,
    close_all_clients,
    get_client,
    request_json,
    send,
)
from workbench.core.logging_config import (
    get_logger,
    log_api_request,
    log_resolution_event,
    setup_logging,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_settings_with_yaml",
    # Errors
    "WorkbenchError",
    "ApiError",
    "LocalDataError",
    "YouTubeAPIError",
    "RequestAborted",
    "ResolutionError",
    "ChannelNotFoundError",
    "ConfigurationError",
    # Logging
    "setup_logging",
    "get_logger",
    "log_api_request",
    "log_resolution_event",
    # HTTP
    "AbortSignal",
    "get_client",
    "close_all_clients",
    "send",
    "request_json",
]
