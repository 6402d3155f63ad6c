"""Normalizer & sorter - merges video records into one deduplicated, ordered list."""

from collections.abc import Iterable, Mapping
from typing import Any

from workbench.channel.adapters import parse_timestamp, remote_video_to_record
from workbench.channel.schemas import PlaylistEntry, TopComment, VideoRecord


def video_sort_key(video: VideoRecord) -> tuple[int, int, float]:
    """Descending views, then likes, then publish time (unparsable dates count as 0)."""
    return (-video.view_count, -video.like_count, -parse_timestamp(video.published_at))


def dedupe_videos(videos: Iterable[VideoRecord]) -> list[VideoRecord]:
    """Drop repeated video IDs; the first occurrence wins."""
    seen: set[str] = set()
    unique: list[VideoRecord] = []
    for video in videos:
        if video.id in seen:
            continue
        seen.add(video.id)
        unique.append(video)
    return unique


def sort_videos(videos: Iterable[VideoRecord]) -> list[VideoRecord]:
    """Deduplicate and sort into display order."""
    # sorted() is stable, so equal keys keep their first-seen order
    return sorted(dedupe_videos(videos), key=video_sort_key)


def build_remote_rows(
    items: Iterable[dict[str, Any]],
    playlist: Mapping[str, PlaylistEntry],
    comments: Mapping[str, TopComment] | None = None,
) -> list[VideoRecord]:
    """
    Merge ``videos.list`` items with playlist fallbacks and top comments.

    Args:
        items: Raw ``videos.list`` items from every batch
        playlist: Fallback metadata keyed by video ID
        comments: Top comment per video ID (videos without one omit the field)

    Returns:
        Deduplicated rows in display order
    """
    comments = comments or {}
    rows: list[VideoRecord] = []
    for item in items:
        video_id = item.get("id")
        key = video_id.strip() if isinstance(video_id, str) else ""
        record = remote_video_to_record(item, playlist.get(key), comments.get(key))
        if record is not None:
            rows.append(record)
    return sort_videos(rows)
