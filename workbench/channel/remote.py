"""Remote resolution stages backed by the YouTube Data API.

- :class:`RemoteChannelResolver` resolves the channel and its uploads playlist.
- :class:`PlaylistPaginator` walks the uploads playlist page by page.
- :class:`VideoBatchFetcher` fetches full statistics in fixed-size ID batches.

The paginator and the batch fetcher are lazy async generators: the caller checks
session currency between pages and simply stops iterating when it goes stale, so
no further request is issued.
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any

from workbench.channel.adapters import (
    clean_text,
    playlist_item_to_entry,
    remote_channel_to_record,
    uploads_playlist_id,
)
from workbench.channel.query import strip_handle
from workbench.channel.schemas import ChannelQuery, PlaylistEntry, RemoteChannel
from workbench.channel.youtube_api import YouTubeDataClient
from workbench.core.constants import (
    CHANNEL_PARTS,
    PLAYLIST_ITEM_PARTS,
    PLAYLIST_PAGE_SIZE_FLOOR,
    PLAYLIST_PAGE_SIZE_TIERS,
    VIDEO_PARTS,
    YOUTUBE_MAX_IDS_PER_CALL,
)
from workbench.core.exceptions import ChannelNotFoundError
from workbench.core.http_session import AbortSignal
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)


def playlist_page_size(video_count: int) -> int:
    """
    Page size for the uploads walk, scaled to the declared video count.

    Fewer than 200 videos -> 50, 200-600 -> 25, more than 600 -> 10.
    """
    for upper_bound, page_size in PLAYLIST_PAGE_SIZE_TIERS:
        if video_count < upper_bound:
            return page_size
    return PLAYLIST_PAGE_SIZE_FLOOR


class RemoteChannelResolver:
    """Resolves canonical channel ID, uploads playlist and statistics."""

    def __init__(self, youtube: YouTubeDataClient) -> None:
        self.youtube = youtube

    async def resolve(
        self,
        query: ChannelQuery,
        signal: AbortSignal | None = None,
    ) -> RemoteChannel:
        """
        Look the channel up by explicit ID, or by handle otherwise.

        Args:
            query: Normalized query
            signal: Session abort signal

        Returns:
            RemoteChannel with metadata and uploads playlist ID

        Raises:
            ChannelNotFoundError: No channel, or the channel has no uploads playlist
        """
        response = await self.youtube.channels_list(
            CHANNEL_PARTS,
            channel_id=query.explicit_channel_id,
            for_handle=strip_handle(query.trimmed),
            max_results=1,
            signal=signal,
        )

        items = response.get("items") or []
        first: dict[str, Any] = items[0] if items and isinstance(items[0], dict) else {}
        channel_id = clean_text(first.get("id"))
        uploads = uploads_playlist_id(first)

        if not channel_id or not uploads:
            raise ChannelNotFoundError()

        return RemoteChannel(
            channel=remote_channel_to_record(first, query.trimmed),
            uploads_playlist_id=uploads,
        )


class PlaylistPaginator:
    """Walks an uploads playlist with a page-token cursor."""

    def __init__(self, youtube: YouTubeDataClient) -> None:
        self.youtube = youtube

    async def pages(
        self,
        playlist_id: str,
        video_count: int = 0,
        signal: AbortSignal | None = None,
    ) -> AsyncIterator[list[PlaylistEntry]]:
        """
        Yield one list of entries per fetched page until no next token is returned.

        Args:
            playlist_id: Uploads playlist ID
            video_count: Declared channel video count (selects the page size)
            signal: Session abort signal

        Yields:
            Playlist entries of each page (items without a video ID are skipped)
        """
        page_size = playlist_page_size(video_count)
        page_token: str | None = None
        seen_tokens: set[str] = set()

        while True:
            response = await self.youtube.playlist_items_list(
                playlist_id,
                PLAYLIST_ITEM_PARTS,
                max_results=page_size,
                page_token=page_token,
                signal=signal,
            )

            entries = []
            for item in response.get("items") or []:
                entry = playlist_item_to_entry(item) if isinstance(item, dict) else None
                if entry is not None:
                    entries.append(entry)
            yield entries

            page_token = clean_text(response.get("nextPageToken"))
            if not page_token:
                return
            if page_token in seen_tokens:
                logger.warning(
                    "Playlist %s repeated page token %s, stopping walk", playlist_id, page_token
                )
                return
            seen_tokens.add(page_token)


class VideoBatchFetcher:
    """Fetches full video records in batches of at most 50 IDs."""

    def __init__(self, youtube: YouTubeDataClient, batch_size: int = YOUTUBE_MAX_IDS_PER_CALL) -> None:
        self.youtube = youtube
        self.batch_size = max(1, min(batch_size, YOUTUBE_MAX_IDS_PER_CALL))

    async def batches(
        self,
        video_ids: Sequence[str],
        signal: AbortSignal | None = None,
    ) -> AsyncIterator[list[dict[str, Any]]]:
        """
        Yield the raw ``videos.list`` items of each batch, in ID order.

        Items without a snippet are dropped here; the caller concatenates batches.
        """
        for start in range(0, len(video_ids), self.batch_size):
            chunk = list(video_ids[start : start + self.batch_size])
            response = await self.youtube.videos_list(chunk, VIDEO_PARTS, signal=signal)
            yield [
                item
                for item in response.get("items") or []
                if isinstance(item, dict) and isinstance(item.get("snippet"), dict)
            ]
