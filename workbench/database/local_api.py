"""Client for the local backend API.

The backend keeps a cache of channels and their videos, answers subscription
status, and hands out the YouTube API key. Responses use ``{data, meta?}``
envelopes; failures raise :class:`LocalDataError` carrying the HTTP status.
"""

from typing import Any
from urllib.parse import quote

import httpx

from workbench.core.config import Settings, get_settings
from workbench.core.constants import (
    LOCAL_CHANNEL_BY_CUSTOM_URL_PATH,
    LOCAL_CHANNEL_PATH,
    LOCAL_CHANNEL_VIDEOS_PATH,
    SUBSCRIBE_PATH,
    SUBSCRIPTION_STATUS_PATH,
    YOUTUBE_KEY_PATH,
)
from workbench.core.exceptions import ApiError, LocalDataError
from workbench.core.http_session import AbortSignal, get_client, request_json
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)


def _unwrap(payload: Any) -> Any:
    """Return the ``data`` member of an envelope (or the payload itself)."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _total(payload: Any) -> int | None:
    if not isinstance(payload, dict):
        return None
    meta = payload.get("meta")
    if not isinstance(meta, dict):
        return None
    total = meta.get("total")
    return total if isinstance(total, int) and not isinstance(total, bool) else None


class LocalApiClient:
    """Async client for the workbench backend.

    Usage:
        client = LocalApiClient()
        channel = await client.get_channel("UC...")
        rows, total = await client.list_channel_videos("UC...", offset=0, limit=200)
    """

    writable = False

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = get_client(
                "local_api",
                timeout=self.settings.http_timeout,
                max_retries=self.settings.http_max_retries,
            )
        return self._client

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.settings.local_api_base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        signal: AbortSignal | None = None,
        **kwargs: Any,
    ) -> Any:
        return await request_json(
            self.client,
            method,
            self._url(path),
            signal=signal,
            error_cls=LocalDataError,
            **kwargs,
        )

    async def get_channel(
        self, channel_id: str, signal: AbortSignal | None = None
    ) -> dict[str, Any]:
        """
        Fetch a cached channel by ID.

        Raises:
            LocalDataError: On failure; 404 when the channel is not cached
        """
        path = LOCAL_CHANNEL_PATH.format(channel_id=quote(channel_id, safe=""))
        data = _unwrap(await self._request("GET", path, signal=signal))
        if not isinstance(data, dict) or not data:
            raise LocalDataError(f"Channel {channel_id} not found", status_code=404)
        return data

    async def get_channel_by_custom_url(
        self, custom_url: str, signal: AbortSignal | None = None
    ) -> dict[str, Any]:
        """
        Fetch a cached channel by custom URL (``@name`` or ``name``).

        Raises:
            LocalDataError: On failure; 404 when no channel matches
        """
        data = _unwrap(
            await self._request(
                "GET",
                LOCAL_CHANNEL_BY_CUSTOM_URL_PATH,
                signal=signal,
                params={"custom_url": custom_url},
            )
        )
        if not isinstance(data, dict) or not data:
            raise LocalDataError(f"Channel {custom_url} not found", status_code=404)
        return data

    async def list_channel_videos(
        self,
        channel_id: str,
        offset: int = 0,
        limit: int = 200,
        include_top_comment: bool = False,
        signal: AbortSignal | None = None,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """
        Fetch one page of cached videos.

        Returns:
            Tuple of (rows, reported total or None)
        """
        params: dict[str, Any] = {"offset": offset, "limit": limit}
        if include_top_comment:
            params["include_top_comment"] = "true"

        path = LOCAL_CHANNEL_VIDEOS_PATH.format(channel_id=quote(channel_id, safe=""))
        payload = await self._request("GET", path, signal=signal, params=params)
        data = _unwrap(payload)
        if isinstance(data, dict):
            data = data.get("items") or data.get("videos") or []
        rows = [row for row in data if isinstance(row, dict)] if isinstance(data, list) else []
        return rows, _total(payload)

    async def get_subscription_status(
        self, channel_id: str, signal: AbortSignal | None = None
    ) -> bool | None:
        """
        Whether the signed-in user is subscribed to a channel.

        Returns:
            True/False, or None when unknown (401: not signed in)
        """
        try:
            payload = await self._request(
                "GET", SUBSCRIPTION_STATUS_PATH, signal=signal, params={"channel_id": channel_id}
            )
        except LocalDataError as e:
            if e.status_code == 401:
                return None
            raise

        data = _unwrap(payload)
        if isinstance(data, dict):
            subscribed = data.get("subscribed")
            if isinstance(subscribed, bool):
                return subscribed
        return False

    async def subscribe(self, channel_id: str) -> bool:
        """Subscribe to a channel; returns True on success."""
        payload = await self._request("POST", SUBSCRIBE_PATH, json={"channelId": channel_id})
        data = _unwrap(payload)
        if isinstance(data, dict) and isinstance(data.get("subscribed"), bool):
            return data["subscribed"]
        return True

    async def unsubscribe(self, channel_id: str) -> bool:
        """
        Unsubscribe from a channel.

        Returns:
            False when the user was not subscribed in the first place
        """
        payload = await self._request(
            "DELETE", SUBSCRIBE_PATH, params={"channelId": channel_id}
        )
        data = _unwrap(payload)
        if isinstance(data, dict) and isinstance(data.get("unsubscribed"), bool):
            return data["unsubscribed"]
        return True

    async def get_youtube_api_key(self) -> str | None:
        """YouTube API key handed out by the backend, or None if unavailable."""
        try:
            payload = await self._request("GET", YOUTUBE_KEY_PATH)
        except ApiError as e:
            logger.warning("Failed to fetch YouTube API key from backend: %s", e)
            return None

        raw_key = payload.get("youtubeApiKey") if isinstance(payload, dict) else None
        if not isinstance(raw_key, str):
            return None
        return raw_key.strip() or None
