"""YouTube Data API v3 client.

Thin async wrappers over the list endpoints the pipeline uses. Every call accepts
the session's abort signal and raises :class:`YouTubeAPIError` on non-2xx responses.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from workbench.core.config import Settings, get_settings
from workbench.core.exceptions import ConfigurationError, YouTubeAPIError
from workbench.core.http_session import AbortSignal, decode_payload, get_client, send
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)

QueryValue = str | int | bool | list[str] | None

ApiKeyProvider = Callable[[], Awaitable[str | None]]


def build_params(params: dict[str, QueryValue]) -> list[tuple[str, str]]:
    """Flatten query params: None values dropped, lists joined with commas."""
    flattened: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, list):
            if not value:
                continue
            flattened.append((key, ",".join(value)))
        elif isinstance(value, bool):
            flattened.append((key, "true" if value else "false"))
        else:
            flattened.append((key, str(value)))
    return flattened


class YouTubeDataClient:
    """Async client for channels, playlistItems, videos, commentThreads and comments.

    The API key comes from settings; when none is configured, ``key_provider`` is
    asked once (typically the local backend) and the answer is cached. Concurrent
    callers share a single in-flight key request.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        api_key: str | None = None,
        key_provider: ApiKeyProvider | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = http_client
        self._api_key = (api_key or self.settings.youtube_api_key or "").strip() or None
        self._key_provider = key_provider
        self._key_lock = asyncio.Lock()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = get_client(
                "youtube",
                timeout=self.settings.http_timeout,
                max_retries=self.settings.http_max_retries,
            )
        return self._client

    async def get_api_key(self) -> str:
        """Resolve the API key, asking the key provider at most once at a time."""
        if self._api_key:
            return self._api_key

        async with self._key_lock:
            if self._api_key:
                return self._api_key
            key = await self._key_provider() if self._key_provider else None
            key = (key or "").strip()
            if not key:
                raise ConfigurationError(
                    "YouTube API key unavailable. Configure the backend endpoint "
                    "or set YOUTUBE_API_KEY."
                )
            self._api_key = key
            return key

    async def _list(
        self,
        resource: str,
        operation: str,
        params: dict[str, QueryValue],
        signal: AbortSignal | None = None,
    ) -> dict[str, Any]:
        key = await self.get_api_key()
        url = f"{self.settings.youtube_api_base_url}/{resource}"
        query = build_params({**params, "key": key})

        try:
            response = await send(self.client, "GET", url, signal=signal, params=query)
        except httpx.HTTPError as e:
            raise YouTubeAPIError(operation, None, type(e).__name__, str(e)) from e

        if response.is_error:
            raise YouTubeAPIError(
                operation,
                response.status_code,
                response.reason_phrase,
                response.text,
                payload=decode_payload(response),
            )

        data = decode_payload(response)
        return data if isinstance(data, dict) else {}

    async def channels_list(
        self,
        part: str,
        channel_id: str | None = None,
        for_handle: str | None = None,
        max_results: int | None = None,
        signal: AbortSignal | None = None,
    ) -> dict[str, Any]:
        """``channels.list`` by ID or by handle."""
        return await self._list(
            "channels",
            "channels.list",
            {
                "part": part,
                "id": channel_id,
                "forHandle": None if channel_id else for_handle,
                "maxResults": max_results,
            },
            signal,
        )

    async def playlist_items_list(
        self,
        playlist_id: str,
        part: str,
        max_results: int,
        page_token: str | None = None,
        signal: AbortSignal | None = None,
    ) -> dict[str, Any]:
        """``playlistItems.list`` one page."""
        return await self._list(
            "playlistItems",
            "playlistItems.list",
            {
                "part": part,
                "playlistId": playlist_id,
                "maxResults": max_results,
                "pageToken": page_token,
            },
            signal,
        )

    async def videos_list(
        self,
        video_ids: list[str],
        part: str,
        signal: AbortSignal | None = None,
    ) -> dict[str, Any]:
        """``videos.list`` for up to 50 IDs."""
        return await self._list(
            "videos",
            "videos.list",
            {"part": part, "id": video_ids, "maxResults": len(video_ids)},
            signal,
        )

    async def comment_threads_list(
        self,
        video_id: str,
        max_results: int,
        order: str = "relevance",
        signal: AbortSignal | None = None,
    ) -> dict[str, Any]:
        """``commentThreads.list`` top-level threads of a video."""
        return await self._list(
            "commentThreads",
            "commentThreads.list",
            {
                "part": "snippet",
                "videoId": video_id,
                "maxResults": max_results,
                "order": order,
                "textFormat": "plainText",
            },
            signal,
        )

    async def comments_list(
        self,
        comment_id: str,
        signal: AbortSignal | None = None,
    ) -> dict[str, Any]:
        """``comments.list`` single comment lookup."""
        return await self._list(
            "comments",
            "comments.list",
            {"part": "snippet", "id": comment_id, "textFormat": "plainText"},
            signal,
        )
