"""Local cache adapter - channel and video lookup against the local data source.

Lookups are tried in order and the first hit wins:
1. the explicit channel ID,
2. the query itself when it has the channel-ID shape,
3. custom-URL candidates (``query``, without ``@``, with ``@``).

Misses never surface to the user. 400/401/403/404 answers are ordinary misses;
any other failure is a local-source outage, logged as such, after which the
caller falls back to the remote path all the same.
"""

from collections.abc import Callable
from typing import Any, Protocol

from workbench.channel.adapters import local_channel_to_record, local_video_to_record
from workbench.channel.query import custom_url_candidates, is_channel_id
from workbench.channel.schemas import ChannelQuery, LocalHit, VideoRecord
from workbench.core.constants import LOCAL_SOFT_MISS_STATUSES
from workbench.core.exceptions import LocalDataError, RequestAborted
from workbench.core.http_session import AbortSignal
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)


class LocalDataSource(Protocol):
    """Interface shared by the backend API client and the MongoDB store."""

    writable: bool

    async def get_channel(
        self, channel_id: str, signal: AbortSignal | None = None
    ) -> dict[str, Any]: ...

    async def get_channel_by_custom_url(
        self, custom_url: str, signal: AbortSignal | None = None
    ) -> dict[str, Any]: ...

    async def list_channel_videos(
        self,
        channel_id: str,
        offset: int = 0,
        limit: int = 200,
        include_top_comment: bool = False,
        signal: AbortSignal | None = None,
    ) -> tuple[list[dict[str, Any]], int | None]: ...


def is_soft_miss(error: LocalDataError) -> bool:
    """Not-found/forbidden class answers mean "no local data"."""
    return error.status_code in LOCAL_SOFT_MISS_STATUSES


class LocalCacheAdapter:
    """Resolves a query against the local data source."""

    def __init__(self, source: LocalDataSource, page_size: int = 200) -> None:
        self.source = source
        self.page_size = max(1, page_size)

    async def lookup(
        self,
        query: ChannelQuery,
        signal: AbortSignal | None = None,
        include_top_comment: bool = False,
        is_current: Callable[[], bool] | None = None,
    ) -> LocalHit | None:
        """
        Find the channel and all of its cached videos.

        Args:
            query: Normalized query
            signal: Session abort signal
            include_top_comment: Ask the source to attach top comments
            is_current: Session currency check, consulted before every request

        Returns:
            LocalHit, or None on a miss of any kind

        Raises:
            RequestAborted: If the session was aborted or superseded
        """
        try:
            raw_channel = await self._find_channel(query, signal, is_current)
            if raw_channel is None:
                return None

            channel = local_channel_to_record(raw_channel, query.trimmed)
            if channel is None:
                logger.warning("Local channel for %r has no ID, ignoring it", query.raw)
                return None

            videos = await self._load_videos(
                channel.id, signal, include_top_comment, is_current
            )
        except RequestAborted:
            raise
        except LocalDataError as e:
            if is_soft_miss(e):
                logger.debug("Local cache miss for %r: %s", query.raw, e)
            else:
                logger.warning(
                    "Local data source unavailable for %r (status=%s): %s",
                    query.raw,
                    e.status_code,
                    e,
                )
            return None
        except Exception as e:
            logger.warning(
                "Local lookup for %r failed, falling back to remote: %s: %s",
                query.raw,
                type(e).__name__,
                e,
                exc_info=True,
            )
            return None

        return LocalHit(channel_id=channel.id, channel=channel, videos=videos)

    @staticmethod
    def _check(is_current: Callable[[], bool] | None) -> None:
        if is_current is not None and not is_current():
            raise RequestAborted("Session superseded")

    async def _find_channel(
        self,
        query: ChannelQuery,
        signal: AbortSignal | None,
        is_current: Callable[[], bool] | None,
    ) -> dict[str, Any] | None:
        trimmed = query.trimmed
        channel_ids: list[str] = []
        if query.explicit_channel_id:
            channel_ids.append(query.explicit_channel_id)
        if is_channel_id(trimmed) and trimmed not in channel_ids:
            channel_ids.append(trimmed)

        for channel_id in channel_ids:
            self._check(is_current)
            try:
                return await self.source.get_channel(channel_id, signal=signal)
            except LocalDataError as e:
                if not is_soft_miss(e):
                    raise
                logger.debug("No local channel with ID %s", channel_id)

        if is_channel_id(trimmed):
            return None

        for candidate in custom_url_candidates(trimmed):
            self._check(is_current)
            try:
                return await self.source.get_channel_by_custom_url(candidate, signal=signal)
            except LocalDataError as e:
                if not is_soft_miss(e):
                    raise
                logger.debug("No local channel with custom URL %s", candidate)

        return None

    async def _load_videos(
        self,
        channel_id: str,
        signal: AbortSignal | None,
        include_top_comment: bool,
        is_current: Callable[[], bool] | None,
    ) -> list[VideoRecord]:
        videos: list[VideoRecord] = []
        offset = 0

        while True:
            self._check(is_current)
            rows, total = await self.source.list_channel_videos(
                channel_id,
                offset=offset,
                limit=self.page_size,
                include_top_comment=include_top_comment,
                signal=signal,
            )
            for row in rows:
                record = local_video_to_record(row)
                if record is not None:
                    videos.append(record)

            offset += len(rows)
            if len(rows) < self.page_size:
                break
            if total is not None and offset >= total:
                break

        return videos
