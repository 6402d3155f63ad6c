"""Comment enrichment engine - best-effort "top comment" per video.

For each video the most relevant comment threads are scanned for the first one
not written by the channel owner. Threads whose inline snippet has no usable text
are looked up again through ``comments.list``. Failures never abort the listing:
a 403 (comments disabled) or any other error only costs that video its comment.
"""

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

from workbench.channel.adapters import clean_text, parse_count
from workbench.channel.schemas import TopComment
from workbench.channel.youtube_api import YouTubeDataClient
from workbench.core.exceptions import RequestAborted, YouTubeAPIError
from workbench.core.http_session import AbortSignal
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)


def is_comment_permission_error(error: BaseException) -> bool:
    """403 from the comment endpoints means comments are disabled or restricted."""
    return isinstance(error, YouTubeAPIError) and error.status_code == 403


def _author_channel_id(snippet: dict[str, Any]) -> str | None:
    author = snippet.get("authorChannelId")
    if isinstance(author, dict):
        return clean_text(author.get("value"))
    return clean_text(author)


def _comment_text(snippet: dict[str, Any]) -> str | None:
    return clean_text(snippet.get("textOriginal")) or clean_text(snippet.get("textDisplay"))


class CommentEnrichmentEngine:
    """Finds one non-owner top comment per video."""

    def __init__(
        self,
        youtube: YouTubeDataClient,
        thread_limit: int = 5,
        concurrency: int = 4,
    ) -> None:
        self.youtube = youtube
        self.thread_limit = thread_limit
        self.concurrency = max(1, concurrency)

    async def top_comments(
        self,
        video_ids: Iterable[str],
        owner_channel_id: str,
        signal: AbortSignal | None = None,
        is_current: Callable[[], bool] | None = None,
    ) -> dict[str, TopComment]:
        """
        Collect top comments for every unique video ID.

        Args:
            video_ids: Videos to enrich (duplicates are looked up once)
            owner_channel_id: Channel whose own comments are skipped
            signal: Session abort signal
            is_current: Session currency check; stale sessions issue no further lookups

        Returns:
            Mapping video ID -> TopComment; videos without a match are absent

        Raises:
            RequestAborted: If the session was aborted mid-batch
        """
        unique_ids = list(dict.fromkeys(video_id for video_id in video_ids if video_id))
        semaphore = asyncio.Semaphore(self.concurrency)
        results: dict[str, TopComment] = {}

        async def enrich(video_id: str) -> None:
            async with semaphore:
                if is_current is not None and not is_current():
                    return
                comment = await self.find_top_comment(video_id, owner_channel_id, signal)
                if comment is not None:
                    results[video_id] = comment

        tasks = [asyncio.ensure_future(enrich(video_id)) for video_id in unique_ids]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        # Keep input order for deterministic output
        return {video_id: results[video_id] for video_id in unique_ids if video_id in results}

    async def find_top_comment(
        self,
        video_id: str,
        owner_channel_id: str,
        signal: AbortSignal | None = None,
    ) -> TopComment | None:
        """
        Top comment of a single video, or None.

        Errors are logged and swallowed; only an abort propagates.
        """
        try:
            response = await self.youtube.comment_threads_list(
                video_id, max_results=self.thread_limit, order="relevance", signal=signal
            )
            for thread in response.get("items") or []:
                if not isinstance(thread, dict):
                    continue
                comment = await self._accept_thread(thread, owner_channel_id, signal)
                if comment is not None:
                    return comment
        except RequestAborted:
            raise
        except YouTubeAPIError as e:
            if is_comment_permission_error(e):
                logger.warning("Comments unavailable for video %s: %s", video_id, e)
            else:
                logger.warning("Skipping top comment for video %s: %s", video_id, e)
        except Exception as e:
            logger.warning(
                "Skipping top comment for video %s: %s: %s", video_id, type(e).__name__, e
            )
        return None

    async def _accept_thread(
        self,
        thread: dict[str, Any],
        owner_channel_id: str,
        signal: AbortSignal | None,
    ) -> TopComment | None:
        thread_snippet = thread.get("snippet") or {}
        top_level = thread_snippet.get("topLevelComment") or {}
        snippet = top_level.get("snippet") or {}
        reply_count = parse_count(thread_snippet.get("totalReplyCount"))

        text = _comment_text(snippet)
        if text:
            if _author_channel_id(snippet) == owner_channel_id:
                return None
            return self._build(snippet, text, reply_count)

        comment_id = clean_text(top_level.get("id"))
        if not comment_id:
            return None

        # Inline snippet unusable; look the comment up on its own
        try:
            response = await self.youtube.comments_list(comment_id, signal=signal)
        except YouTubeAPIError as e:
            # Only this thread is lost; the scan moves on to the next one
            logger.debug("Comment lookup %s failed: %s", comment_id, e)
            return None
        items = response.get("items") or []
        if not items or not isinstance(items[0], dict):
            return None
        fallback_snippet = items[0].get("snippet") or {}
        text = _comment_text(fallback_snippet)
        if not text or _author_channel_id(fallback_snippet) == owner_channel_id:
            return None
        return self._build(fallback_snippet, text, reply_count)

    @staticmethod
    def _build(snippet: dict[str, Any], text: str, reply_count: int) -> TopComment:
        return TopComment(
            text=text,
            like_count=parse_count(snippet.get("likeCount")),
            reply_count=reply_count,
            author=clean_text(snippet.get("authorDisplayName")),
            published_at=clean_text(snippet.get("publishedAt")),
        )
