"""Query normalizer - interprets raw search input without touching the network."""

from workbench.channel.schemas import ChannelQuery, VideoNavigation
from workbench.core.constants import CHANNEL_ID_PATTERN, VIDEO_URL_PATTERNS


def extract_video_id(raw: str) -> str | None:
    """
    Extract an 11-character video ID from a pasted video URL.

    Supports youtu.be short links, ``watch?v=`` URLs and ``/embed/``, ``/v/``,
    ``/shorts/`` and ``/live/`` paths.

    Args:
        raw: Raw user input

    Returns:
        Video ID, or None if the input is not a video URL
    """
    for pattern in VIDEO_URL_PATTERNS:
        match = pattern.search(raw)
        if match:
            return match.group(1)
    return None


def is_channel_id(value: str) -> bool:
    """Check whether a string has the canonical ``UC`` + 22 characters shape."""
    return bool(CHANNEL_ID_PATTERN.match(value))


def strip_handle(value: str) -> str:
    """Handle without its leading ``@`` (the form ``channels.list(forHandle=)`` takes)."""
    return value.strip().lstrip("@")


def display_handle(value: str) -> str:
    """Handle with exactly one leading ``@``."""
    stripped = strip_handle(value)
    return f"@{stripped}" if stripped else ""


def custom_url_candidates(query: str) -> list[str]:
    """
    Build the deduplicated custom-URL forms to try against the local source.

    Order: as typed, without leading ``@``, with leading ``@``.
    """
    trimmed = query.strip()
    if not trimmed:
        return []
    bare = strip_handle(trimmed)
    candidates: list[str] = []
    for candidate in (trimmed, bare, f"@{bare}" if bare else ""):
        if candidate and candidate not in candidates:
            candidates.append(candidate)
    return candidates


def parse_query(
    raw: str,
    explicit_channel_id: str | None = None,
) -> ChannelQuery | VideoNavigation | None:
    """
    Interpret raw search input.

    Rules, in priority order:
    1. A video URL short-circuits to a :class:`VideoNavigation`.
    2. A canonical channel ID becomes the explicit channel ID.
    3. Anything else is a handle / custom-URL candidate.

    Args:
        raw: Raw user input
        explicit_channel_id: Channel ID carried by a suggestion click

    Returns:
        ChannelQuery, VideoNavigation, or None when the input is empty
    """
    explicit = (explicit_channel_id or "").strip() or None

    if explicit is None:
        video_id = extract_video_id(raw)
        if video_id:
            return VideoNavigation(video_id=video_id)

    trimmed = raw.strip()
    if not trimmed and explicit is None:
        return None

    if explicit is None and is_channel_id(trimmed):
        explicit = trimmed

    return ChannelQuery(raw=trimmed, explicit_channel_id=explicit)
