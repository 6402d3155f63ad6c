"""Channel/video resolution pipeline."""

from .normalizer import build_remote_rows, dedupe_videos, sort_videos, video_sort_key
from .pipeline import ChannelVideosController, build_local_source
from .publisher import StatePublisher
from .query import custom_url_candidates, extract_video_id, is_channel_id, parse_query
from .schemas import (
    ChannelQuery,
    ChannelRecord,
    ResultState,
    TopComment,
    VideoDetail,
    VideoNavigation,
    VideoRecord,
)
from .session import ResolutionSession, SessionManager
from .video_detail import fetch_video_detail, format_count, format_duration
from .youtube_api import YouTubeDataClient

__all__ = [
    # Controller
    "ChannelVideosController",
    "build_local_source",
    # Query
    "parse_query",
    "extract_video_id",
    "is_channel_id",
    "custom_url_candidates",
    # Sessions
    "SessionManager",
    "ResolutionSession",
    "StatePublisher",
    # Normalizer
    "video_sort_key",
    "dedupe_videos",
    "sort_videos",
    "build_remote_rows",
    # Schemas
    "ChannelQuery",
    "ChannelRecord",
    "VideoRecord",
    "TopComment",
    "ResultState",
    "VideoNavigation",
    "VideoDetail",
    # External API
    "YouTubeDataClient",
    "fetch_video_detail",
    "format_count",
    "format_duration",
]
