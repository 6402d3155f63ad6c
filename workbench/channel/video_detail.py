"""Single-video detail: statistics, channel snapshot and comment previews."""

import re
from typing import Any

from workbench.channel.adapters import clean_text, parse_count, pick_thumbnail
from workbench.channel.comments import is_comment_permission_error
from workbench.channel.query import strip_handle
from workbench.channel.schemas import ChannelSnapshot, CommentPreview, VideoDetail
from workbench.channel.youtube_api import YouTubeDataClient
from workbench.core.constants import (
    ANONYMOUS_AUTHOR,
    CHANNEL_SNAPSHOT_PARTS,
    DETAIL_COMMENT_LIMIT,
    DETAIL_TAG_LIMIT,
    DETAIL_THUMBNAIL_PREFERENCE,
    UNTITLED_DETAIL_VIDEO,
    VIDEO_DETAIL_PARTS,
)
from workbench.core.exceptions import ResolutionError, YouTubeAPIError
from workbench.core.http_session import AbortSignal
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)

_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def format_duration(duration: str | None) -> str:
    """
    Render an ISO-8601 ``PT#H#M#S`` duration as ``HH:MM:SS`` or ``MM:SS``.

    Empty input renders as ``-``; anything unparsable is returned unchanged.
    """
    if not duration:
        return "-"
    match = _ISO_DURATION.search(duration)
    if not match:
        return duration
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    segments = [f"{hours:02d}"] if hours else []
    segments.extend((f"{minutes:02d}", f"{seconds:02d}"))
    return ":".join(segments)


def _trim_decimal(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_count(value: int | float | None) -> str:
    """
    Compact count rendering: ``950``, ``1.5k``, ``12.34w`` (w = 10,000).

    Values of a million ``w`` units and more drop the decimals.
    """
    if value is None or value != value or value <= 0 or value == float("inf"):
        return "0"
    if value < 1_000:
        return str(round(value))
    if value < 10_000:
        return f"{_trim_decimal(value / 1_000)}k"
    units = value / 10_000
    if units >= 100:
        return f"{round(units)}w"
    return f"{_trim_decimal(units)}w"


def _channel_snapshot(item: dict[str, Any]) -> ChannelSnapshot:
    snippet = item.get("snippet") or {}
    stats = item.get("statistics") or {}
    custom_url = clean_text(snippet.get("customUrl"))
    return ChannelSnapshot(
        handle=f"@{strip_handle(custom_url)}" if custom_url else "",
        title=clean_text(snippet.get("title")) or "",
        description=snippet.get("description") or "",
        subscriber_count=parse_count(stats.get("subscriberCount")),
        video_count=parse_count(stats.get("videoCount")),
        view_count=parse_count(stats.get("viewCount")),
        thumbnail_url=pick_thumbnail(snippet.get("thumbnails")),
    )


def _comment_preview(thread: dict[str, Any]) -> CommentPreview | None:
    thread_snippet = thread.get("snippet") or {}
    top_level = thread_snippet.get("topLevelComment") or {}
    snippet = top_level.get("snippet")
    if not isinstance(snippet, dict):
        return None

    text = clean_text(snippet.get("textOriginal")) or clean_text(snippet.get("textDisplay"))
    if not text:
        return None

    return CommentPreview(
        id=clean_text(top_level.get("id")) or clean_text(thread.get("id")) or "",
        author=clean_text(snippet.get("authorDisplayName")) or ANONYMOUS_AUTHOR,
        text=text,
        like_count=parse_count(snippet.get("likeCount")),
        reply_count=parse_count(thread_snippet.get("totalReplyCount")),
        published_at=clean_text(snippet.get("publishedAt")) or "",
    )


async def fetch_comment_previews(
    youtube: YouTubeDataClient,
    video_id: str,
    limit: int = DETAIL_COMMENT_LIMIT,
    signal: AbortSignal | None = None,
) -> list[CommentPreview]:
    """
    Most relevant comments of a video.

    Returns:
        Comment previews; empty when comments are disabled (403)

    Raises:
        YouTubeAPIError: On any failure other than 403
    """
    try:
        response = await youtube.comment_threads_list(
            video_id, max_results=limit, order="relevance", signal=signal
        )
    except YouTubeAPIError as e:
        if is_comment_permission_error(e):
            logger.info("Comments disabled for video %s", video_id)
            return []
        raise

    previews = []
    for thread in response.get("items") or []:
        preview = _comment_preview(thread) if isinstance(thread, dict) else None
        if preview is not None:
            previews.append(preview)
    return previews


async def fetch_video_detail(
    youtube: YouTubeDataClient,
    video_id: str,
    signal: AbortSignal | None = None,
) -> VideoDetail:
    """
    Fetch a video with its channel snapshot and comment previews.

    Args:
        youtube: YouTube Data API client
        video_id: 11-character video ID
        signal: Optional abort signal

    Returns:
        VideoDetail

    Raises:
        ResolutionError: If the video does not exist
        YouTubeAPIError: If a request fails
    """
    response = await youtube.videos_list([video_id], VIDEO_DETAIL_PARTS, signal=signal)
    items = [item for item in response.get("items") or [] if isinstance(item, dict)]
    if not items:
        raise ResolutionError("Video not found")

    item = items[0]
    snippet = item.get("snippet") or {}
    stats = item.get("statistics") or {}
    content = item.get("contentDetails") or {}
    tags = snippet.get("tags") if isinstance(snippet.get("tags"), list) else []

    detail = VideoDetail(
        id=video_id,
        title=clean_text(snippet.get("title")) or UNTITLED_DETAIL_VIDEO,
        description=snippet.get("description") or "",
        published_at=clean_text(snippet.get("publishedAt")) or "",
        duration=clean_text(content.get("duration")) or "",
        channel_id=clean_text(snippet.get("channelId")) or "",
        channel_title=clean_text(snippet.get("channelTitle")) or "",
        thumbnail_url=pick_thumbnail(snippet.get("thumbnails"), DETAIL_THUMBNAIL_PREFERENCE),
        tags=[tag for tag in tags if isinstance(tag, str)][:DETAIL_TAG_LIMIT],
        view_count=parse_count(stats.get("viewCount")),
        like_count=parse_count(stats.get("likeCount")),
        comment_count=parse_count(stats.get("commentCount")),
    )

    if detail.channel_id:
        channel_response = await youtube.channels_list(
            CHANNEL_SNAPSHOT_PARTS, channel_id=detail.channel_id, max_results=1, signal=signal
        )
        channel_items = channel_response.get("items") or []
        if channel_items and isinstance(channel_items[0], dict):
            detail.channel = _channel_snapshot(channel_items[0])

    detail.comments = await fetch_comment_previews(youtube, video_id, signal=signal)
    return detail
