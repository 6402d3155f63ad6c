"""Per-source adapters mapping raw records into canonical channel/video shapes.

The local data source speaks snake_case (``view_count``, ``published_at``), the
YouTube Data API speaks nested camelCase (``statistics.viewCount``). Every fallback
chain between the two lives here and nowhere else.
"""

import math
from datetime import datetime, timezone
from typing import Any

from workbench.channel.query import display_handle
from workbench.channel.schemas import (
    ChannelRecord,
    PlaylistEntry,
    TopComment,
    VideoRecord,
)
from workbench.core.constants import THUMBNAIL_PREFERENCE, UNTITLED_VIDEO


def parse_count(value: Any) -> int:
    """
    Coerce a count field into a finite non-negative integer.

    Missing, non-numeric, negative or non-finite input yields 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return max(int(text), 0)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                return 0
    if isinstance(value, float):
        if not math.isfinite(value) or value < 0:
            return 0
        return int(value)
    return 0


def parse_timestamp(value: Any) -> float:
    """
    Parse an ISO-8601 date into epoch seconds.

    Naive values are taken as UTC. Unparsable or missing dates normalize to 0.
    """
    if not isinstance(value, str) or not value.strip():
        return 0.0
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def clean_text(value: Any) -> str | None:
    """Trimmed string, or None when missing/blank."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def pick_thumbnail(
    thumbnails: dict[str, Any] | None,
    preference: tuple[str, ...] = THUMBNAIL_PREFERENCE,
) -> str | None:
    """Best thumbnail URL from a ``snippet.thumbnails`` mapping."""
    thumbnails = thumbnails or {}
    for size in preference:
        resource = thumbnails.get(size) or {}
        url = clean_text(resource.get("url"))
        if url:
            return url
    return None


# =============================================================================
# Local data source (snake_case)
# =============================================================================


def local_channel_to_record(data: dict[str, Any], query: str = "") -> ChannelRecord | None:
    """Map a local channel document into a ChannelRecord; None without an ID."""
    channel_id = clean_text(data.get("channel_id")) or clean_text(data.get("id"))
    if not channel_id:
        return None

    handle_source = (
        clean_text(data.get("custom_url"))
        or clean_text(data.get("handle"))
        or clean_text(data.get("channel_handle"))
        or query
    )
    title = (
        clean_text(data.get("title"))
        or clean_text(data.get("channel_title"))
        or clean_text(data.get("name"))
        or query
        or channel_id
    )
    return ChannelRecord(
        id=channel_id,
        title=title,
        handle=display_handle(handle_source) if handle_source else "",
        description=clean_text(data.get("description")) or "",
        subscriber_count=parse_count(data.get("subscriber_count")),
        video_count=parse_count(data.get("video_count")),
        view_count=parse_count(data.get("view_count")),
    )


def local_top_comment(data: Any) -> TopComment | None:
    """Map a local ``top_comment`` object; None when it carries no text."""
    if not isinstance(data, dict):
        return None
    text = clean_text(data.get("text")) or clean_text(data.get("text_original"))
    if not text:
        return None
    return TopComment(
        text=text,
        like_count=parse_count(data.get("like_count")),
        reply_count=parse_count(data.get("reply_count")),
        author=clean_text(data.get("author")) or clean_text(data.get("author_display_name")),
        published_at=clean_text(data.get("published_at")),
    )


def local_video_to_record(data: dict[str, Any]) -> VideoRecord | None:
    """Map a local video row into a VideoRecord; None without an ID."""
    video_id = clean_text(data.get("video_id")) or clean_text(data.get("id"))
    if not video_id:
        return None

    tags = data.get("tags")
    return VideoRecord(
        id=video_id,
        title=clean_text(data.get("title")) or UNTITLED_VIDEO,
        published_at=clean_text(data.get("published_at")) or "",
        thumbnail_url=clean_text(data.get("thumbnail_url")) or "",
        view_count=parse_count(data.get("view_count")),
        like_count=parse_count(data.get("like_count")),
        favorite_count=parse_count(data.get("favorite_count")),
        comment_count=parse_count(data.get("comment_count")),
        top_comment=local_top_comment(data.get("top_comment")),
        channel_id=clean_text(data.get("channel_id")),
        channel_title=clean_text(data.get("channel_title")),
        description=data.get("description") if isinstance(data.get("description"), str) else None,
        duration=clean_text(data.get("duration")),
        tags=[tag for tag in tags if isinstance(tag, str) and tag] if isinstance(tags, list) else [],
        source="local",
    )


# =============================================================================
# YouTube Data API (camelCase)
# =============================================================================


def remote_channel_to_record(item: dict[str, Any], query: str = "") -> ChannelRecord:
    """Map a ``channels.list`` item into a ChannelRecord."""
    snippet = item.get("snippet") or {}
    stats = item.get("statistics") or {}
    channel_id = clean_text(item.get("id")) or ""

    handle_source = clean_text(snippet.get("customUrl")) or clean_text(item.get("handle")) or query
    return ChannelRecord(
        id=channel_id,
        title=clean_text(snippet.get("title")) or query or channel_id,
        handle=display_handle(handle_source) if handle_source else "",
        description=clean_text(snippet.get("description")) or "",
        subscriber_count=parse_count(stats.get("subscriberCount")),
        video_count=parse_count(stats.get("videoCount")),
        view_count=parse_count(stats.get("viewCount")),
    )


def uploads_playlist_id(item: dict[str, Any]) -> str | None:
    """Uploads playlist ID from a ``channels.list`` item."""
    related = (item.get("contentDetails") or {}).get("relatedPlaylists") or {}
    return clean_text(related.get("uploads"))


def playlist_item_to_entry(item: dict[str, Any]) -> PlaylistEntry | None:
    """Map a ``playlistItems.list`` item into fallback metadata; None without a video ID."""
    snippet = item.get("snippet") or {}
    content = item.get("contentDetails") or {}
    video_id = clean_text(content.get("videoId")) or clean_text(
        (snippet.get("resourceId") or {}).get("videoId")
    )
    if not video_id:
        return None
    return PlaylistEntry(
        video_id=video_id,
        title=clean_text(snippet.get("title")),
        published_at=clean_text(content.get("videoPublishedAt"))
        or clean_text(snippet.get("publishedAt")),
        thumbnail_url=pick_thumbnail(snippet.get("thumbnails")),
    )


def remote_video_to_record(
    item: dict[str, Any],
    fallback: PlaylistEntry | None = None,
    top_comment: TopComment | None = None,
) -> VideoRecord | None:
    """
    Map a ``videos.list`` item into a VideoRecord.

    Title, publish date and thumbnail fall back to the playlist entry. Items without
    an ID or without a snippet are dropped (None).
    """
    video_id = clean_text(item.get("id"))
    snippet = item.get("snippet")
    if not video_id or not isinstance(snippet, dict):
        return None

    stats = item.get("statistics") or {}
    content = item.get("contentDetails") or {}
    tags = snippet.get("tags")

    return VideoRecord(
        id=video_id,
        title=clean_text(snippet.get("title"))
        or (fallback.title if fallback else None)
        or UNTITLED_VIDEO,
        published_at=clean_text(snippet.get("publishedAt"))
        or (fallback.published_at if fallback else None)
        or "",
        thumbnail_url=pick_thumbnail(snippet.get("thumbnails"))
        or (fallback.thumbnail_url if fallback else None)
        or "",
        view_count=parse_count(stats.get("viewCount")),
        like_count=parse_count(stats.get("likeCount")),
        favorite_count=parse_count(stats.get("favoriteCount")),
        comment_count=parse_count(stats.get("commentCount")),
        top_comment=top_comment,
        channel_id=clean_text(snippet.get("channelId")),
        channel_title=clean_text(snippet.get("channelTitle")),
        description=snippet.get("description") if isinstance(snippet.get("description"), str) else None,
        duration=clean_text(content.get("duration")),
        tags=[tag for tag in tags if isinstance(tag, str) and tag] if isinstance(tags, list) else [],
        source="remote",
    )
