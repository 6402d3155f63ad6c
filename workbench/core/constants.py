"""Application constants and metadata.

This module centralizes all application-wide constants for:
- Application metadata
- External API limits and paging
- Query recognition patterns
- User-facing error strings
"""

import re

# =============================================================================
# Application Metadata
# =============================================================================

APP_NAME = "Creator Workbench API"
APP_DESCRIPTION = """
Channel and video resolution service for YouTube creators.

## Features

- **Channel Search**: Resolve a handle, channel ID or custom URL into a channel
- **Video Catalogue**: Full upload list, local cache first, YouTube Data API fallback
- **Hot Comments**: Optional top non-owner comment per video
- **Live Updates**: Incremental state snapshots over NDJSON or WebSocket
"""
APP_VERSION = "0.3.0"

API_V1_PREFIX = "/api/v1"

# =============================================================================
# YouTube Data API
# =============================================================================

YOUTUBE_MAX_IDS_PER_CALL = 50

# (upper bound of declared video count, playlistItems page size)
PLAYLIST_PAGE_SIZE_TIERS: tuple[tuple[int, int], ...] = (
    (200, 50),
    (601, 25),
)
PLAYLIST_PAGE_SIZE_FLOOR = 10

CHANNEL_PARTS = "id,contentDetails,snippet,statistics"
PLAYLIST_ITEM_PARTS = "snippet,contentDetails"
VIDEO_PARTS = "snippet,statistics,contentDetails"
VIDEO_DETAIL_PARTS = "snippet,statistics,contentDetails"
CHANNEL_SNAPSHOT_PARTS = "snippet,statistics"

THUMBNAIL_PREFERENCE = ("high", "medium", "default")
DETAIL_THUMBNAIL_PREFERENCE = ("high", "medium", "standard", "default")

DETAIL_COMMENT_LIMIT = 6
DETAIL_TAG_LIMIT = 8

# =============================================================================
# Local data API
# =============================================================================

LOCAL_SOFT_MISS_STATUSES = frozenset({400, 401, 403, 404})

LOCAL_CHANNEL_PATH = "/api/youtube/channels/{channel_id}"
LOCAL_CHANNEL_BY_CUSTOM_URL_PATH = "/api/youtube/channels/by-custom-url"
LOCAL_CHANNEL_VIDEOS_PATH = "/api/youtube/channels/{channel_id}/videos"
SUBSCRIPTION_STATUS_PATH = "/api/youtube/subscription-status"
SUBSCRIBE_PATH = "/api/youtube/subscribe"
YOUTUBE_KEY_PATH = "/api/config/youtube-api-key"

# =============================================================================
# Query recognition
# =============================================================================

VIDEO_URL_PATTERNS = (
    re.compile(r"youtu\.be/([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"),
    re.compile(r"youtube(?:-nocookie)?\.com/.*[?&]v=([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"),
    re.compile(r"youtube(?:-nocookie)?\.com/(?:embed|v|shorts|live)/([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"),
)
CHANNEL_ID_PATTERN = re.compile(r"^UC[A-Za-z0-9_-]{22}$")

# =============================================================================
# User-facing messages
# =============================================================================

CHANNEL_NOT_FOUND_MESSAGE = "Channel or playlist not found"
LOAD_FAILED_MESSAGE = "Failed to load channel videos"
UNTITLED_VIDEO = "Untitled"
UNTITLED_DETAIL_VIDEO = "Untitled video"
ANONYMOUS_AUTHOR = "Anonymous"
