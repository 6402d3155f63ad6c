"""Pydantic schemas for the channel resolution pipeline."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChannelQuery(BaseModel):
    """A search submission or suggestion click."""

    model_config = ConfigDict(frozen=True)

    raw: str
    explicit_channel_id: str | None = None

    @property
    def trimmed(self) -> str:
        return self.raw.strip()


class ChannelRecord(BaseModel):
    """Canonical channel metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    handle: str = ""
    description: str = ""
    subscriber_count: int = 0
    video_count: int = 0
    view_count: int = 0


class TopComment(BaseModel):
    """Most relevant non-owner comment on a video."""

    text: str
    like_count: int = 0
    reply_count: int = 0
    author: str | None = None
    published_at: str | None = None


class VideoRecord(BaseModel):
    """Canonical video row shared by local and remote sources."""

    id: str
    title: str
    published_at: str = ""
    thumbnail_url: str = ""
    view_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)
    favorite_count: int = Field(default=0, ge=0)
    comment_count: int = Field(default=0, ge=0)
    top_comment: TopComment | None = None
    channel_id: str | None = None
    channel_title: str | None = None
    description: str | None = None
    duration: str | None = None
    tags: list[str] = Field(default_factory=list)
    source: Literal["local", "remote"] = "remote"


class PlaylistEntry(BaseModel):
    """Per-video fallback metadata collected while walking the uploads playlist."""

    video_id: str
    title: str | None = None
    published_at: str | None = None
    thumbnail_url: str | None = None


class RemoteChannel(BaseModel):
    """Channel resolved from the YouTube Data API."""

    channel: ChannelRecord
    uploads_playlist_id: str


class LocalHit(BaseModel):
    """Channel and videos found in the local data source."""

    channel_id: str
    channel: ChannelRecord
    videos: list[VideoRecord]


class ResultState(BaseModel):
    """Snapshot published to the observer after every stage."""

    channel_name: str = ""
    channel_id: str | None = None
    channel_metadata: ChannelRecord | None = None
    videos: list[VideoRecord] = Field(default_factory=list)
    error: str | None = None
    is_loading: bool = False
    is_subscribed: bool = False
    is_subscription_loading: bool = False


class VideoNavigation(BaseModel):
    """Outcome of a query that named a single video instead of a channel."""

    video_id: str


class CommentPreview(BaseModel):
    """Comment listed on the video detail view."""

    id: str
    author: str
    text: str
    like_count: int = 0
    reply_count: int = 0
    published_at: str = ""


class ChannelSnapshot(BaseModel):
    """Channel header shown on the video detail view."""

    handle: str = ""
    title: str = ""
    description: str = ""
    subscriber_count: int = 0
    video_count: int = 0
    view_count: int = 0
    thumbnail_url: str | None = None


class VideoDetail(BaseModel):
    """Single-video detail with channel snapshot and comment previews."""

    id: str
    title: str
    description: str = ""
    published_at: str = ""
    duration: str = ""
    channel_id: str = ""
    channel_title: str = ""
    thumbnail_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    channel: ChannelSnapshot | None = None
    comments: list[CommentPreview] = Field(default_factory=list)
