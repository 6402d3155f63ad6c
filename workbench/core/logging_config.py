"""Structured logging configuration for the Creator Workbench."""

import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

ROOT_LOGGER_NAME = "workbench"

# Module-level logger
logger: logging.Logger | None = None


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    rich_tracebacks: bool = True,
) -> logging.Logger:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        rich_tracebacks: Enable rich traceback formatting

    Returns:
        Configured logger instance
    """
    global logger

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    # Rich console handler (for CLI output)
    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=rich_tracebacks,
        tracebacks_show_locals=(level.upper() == "DEBUG"),
        markup=False,
    )
    rich_handler.setLevel(getattr(logging, level.upper()))
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    # Prevent logging to root logger
    logger.propagate = False

    logger.debug("Logging initialized (level=%s)", level)

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger under the ``workbench`` hierarchy.

    Child loggers propagate to the ``workbench`` logger, so handlers configured by
    :func:`setup_logging` apply to them. Nothing is configured implicitly: library
    use without ``setup_logging`` follows the host application's logging setup.

    Args:
        name: Logger name; module names under ``workbench.`` are used as-is

    Returns:
        Logger instance
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_api_request(
    logger_instance: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: str | None = None,
    request_id: str | None = None,
) -> None:
    """
    Log HTTP API request in structured format.

    Args:
        logger_instance: Logger to use
        method: HTTP method
        path: Request path
        status_code: Response status code
        duration_ms: Request duration in milliseconds
        client_ip: Optional client IP address
        request_id: Optional request correlation ID
    """
    log_level = logging.INFO if status_code < 400 else logging.WARNING

    extra: dict[str, Any] = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }
    if client_ip:
        extra["client_ip"] = client_ip
    if request_id:
        extra["request_id"] = request_id

    message = f"{method} {path} {status_code} {duration_ms:.1f}ms"
    logger_instance.log(log_level, message, extra=extra)


def log_resolution_event(
    logger_instance: logging.Logger,
    query: str,
    stage: str,
    event: str,
    channel_id: str | None = None,
    video_count: int | None = None,
    source: str | None = None,
    error: str | None = None,
    exc_info: bool = False,
) -> None:
    """
    Log channel resolution events.

    Args:
        logger_instance: Logger to use
        query: Raw user query that started the session
        stage: Pipeline stage (local_cache, remote_channel, playlist, videos, comments,
            subscription, ready, write_through)
        event: Event type (started, local_hit, local_miss, not_found, completed, failed)
        channel_id: Resolved channel ID, when known
        video_count: Number of videos published
        source: Where the result came from (local, remote)
        error: Error message if failed
        exc_info: Attach the active exception's traceback to failures
    """
    extra: dict[str, Any] = {
        "query": query,
        "stage": stage,
        "event": event,
    }

    if channel_id:
        extra["channel_id"] = channel_id
    if video_count is not None:
        extra["video_count"] = video_count
    if source:
        extra["source"] = source
    if error:
        extra["error"] = error

    if event == "failed":
        logger_instance.error(
            f"Channel resolution failed at {stage}: {query!r} ({error})",
            extra=extra,
            exc_info=exc_info,
        )
    elif event == "not_found":
        logger_instance.warning(f"Channel not found: {query!r} ({error})", extra=extra)
    elif event == "completed":
        logger_instance.info(
            f"Resolved {query!r} -> {channel_id} ({video_count} videos, {source})",
            extra=extra,
        )
    else:
        logger_instance.debug(f"Resolution {event} at {stage}: {query!r}", extra=extra)
