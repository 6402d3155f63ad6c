"""HTTP client management for the local backend and the YouTube Data API.

Clients are cached by name so connection pools are shared by every request of the
same collaborator. Each request can be bound to an :class:`AbortSignal`; when the
signal fires the in-flight request is cancelled at the transport level.
"""

import asyncio
import logging
from typing import Any

import httpx

from workbench.core.exceptions import ApiError, RequestAborted

logger = logging.getLogger(__name__)

# Global client cache
_clients: dict[str, httpx.AsyncClient] = {}


class AbortSignal:
    """One-shot cancellation flag shared by every request of a resolution session."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_aborted(self) -> None:
        if self.aborted:
            raise RequestAborted("Request aborted")


def get_client(
    name: str = "default",
    timeout: float = 30.0,
    max_retries: int = 3,
    base_url: str = "",
) -> httpx.AsyncClient:
    """
    Get or create a cached async HTTP client.

    Args:
        name: Client name for caching (use different names for different collaborators)
        timeout: Request timeout in seconds
        max_retries: Connection retries performed by the transport
        base_url: Optional base URL for relative request paths

    Returns:
        Configured httpx.AsyncClient instance
    """
    if name in _clients and not _clients[name].is_closed:
        return _clients[name]

    client = httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
        transport=httpx.AsyncHTTPTransport(retries=max_retries),
        headers={"Accept": "application/json"},
        follow_redirects=True,
    )
    _clients[name] = client
    return client


async def close_all_clients() -> None:
    """Close all cached clients."""
    clients = list(_clients.values())
    _clients.clear()
    for client in clients:
        await client.aclose()


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    signal: AbortSignal | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, racing it against the abort signal.

    Args:
        client: Client to send with
        method: HTTP method
        url: Absolute URL or path relative to the client's base URL
        signal: Optional abort signal of the owning session
        **kwargs: Additional arguments passed to httpx

    Returns:
        httpx.Response (any status)

    Raises:
        RequestAborted: If the signal fired before the response arrived
        httpx.HTTPError: On transport failures
    """
    if signal is None:
        return await client.request(method, url, **kwargs)

    signal.raise_if_aborted()

    request_task = asyncio.ensure_future(client.request(method, url, **kwargs))
    abort_task = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait(
            {request_task, abort_task}, return_when=asyncio.FIRST_COMPLETED
        )
    except BaseException:
        request_task.cancel()
        abort_task.cancel()
        raise

    abort_task.cancel()
    if request_task in done:
        return request_task.result()

    request_task.cancel()
    try:
        await request_task
    except asyncio.CancelledError:
        pass
    except httpx.HTTPError:
        logger.debug("Aborted request to %s failed while cancelling", url)
    raise RequestAborted(f"Request aborted: {method} {url}")


def decode_payload(response: httpx.Response) -> Any:
    """Decode a response body: JSON first, text as fallback, None when empty."""
    content_type = response.headers.get("content-type", "")
    try:
        if "application/json" in content_type:
            return response.json()
        if "text/" in content_type or "application/" in content_type:
            return response.text
    except ValueError:
        # Keep the status visible even when the body is malformed
        logger.warning("Failed to parse response payload from %s", response.url)
    return None


def error_message(payload: Any, status_code: int) -> str:
    """Extract a human-readable message from an error payload."""
    default = f"Request failed with status {status_code}"
    if isinstance(payload, str):
        return payload or default
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return default


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    signal: AbortSignal | None = None,
    error_cls: type[ApiError] = ApiError,
    **kwargs: Any,
) -> Any:
    """
    Make a request and return the decoded payload.

    Args:
        client: Client to send with
        method: HTTP method
        url: Absolute URL or path relative to the client's base URL
        signal: Optional abort signal of the owning session
        error_cls: ApiError subclass raised on failure
        **kwargs: Additional arguments passed to httpx

    Returns:
        Decoded payload (dict/list for JSON, str for text, None if empty)

    Raises:
        ApiError: (or ``error_cls``) on non-2xx status or transport failure
        RequestAborted: If the signal fired first
    """
    try:
        response = await send(client, method, url, signal=signal, **kwargs)
    except httpx.HTTPError as e:
        raise error_cls(f"{method} {url} failed: {e}", status_code=None) from e

    payload = decode_payload(response)
    if response.is_error:
        raise error_cls(
            error_message(payload, response.status_code),
            status_code=response.status_code,
            payload=payload,
        )
    return payload
