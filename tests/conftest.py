"""Pytest fixtures and configuration.

This module provides:
- Test settings (no network, no database)
- A fake YouTube Data API and local backend served through httpx.MockTransport
- Controller, client and app fixtures wired to the fake backend
- An in-memory stand-in for the MongoDB collections
"""

import asyncio
import json
import logging
from collections.abc import Callable, Generator
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from workbench.api.app import create_app
from workbench.api.dependencies import get_controller_factory, get_youtube_client
from workbench.channel.pipeline import ChannelVideosController
from workbench.channel.schemas import ResultState
from workbench.channel.youtube_api import YouTubeDataClient
from workbench.core.config import Settings
from workbench.database.local_api import LocalApiClient
from workbench.database.manager import MongoDBManager

# =============================================================================
# Test Configuration
# =============================================================================

YOUTUBE_HOST = "youtube.test"
YOUTUBE_BASE_URL = f"https://{YOUTUBE_HOST}/youtube/v3"
LOCAL_BASE_URL = "http://backend.test"

EXAMPLE_CHANNEL_ID = "UCexample_channel_000001"
LOCAL_CHANNEL_ID = "UClocal_channel_00000001"


# =============================================================================
# Record builders
# =============================================================================


def video_id(n: int) -> str:
    """11-character video ID."""
    return f"vid{n:08d}"


def youtube_video(
    vid: str,
    views: int | str = 0,
    likes: int | str = 0,
    published_at: str = "2024-01-01T00:00:00Z",
    title: str | None = None,
    channel_id: str = EXAMPLE_CHANNEL_ID,
) -> dict[str, Any]:
    """``videos.list`` item."""
    return {
        "id": vid,
        "snippet": {
            "title": title if title is not None else f"Video {vid}",
            "publishedAt": published_at,
            "channelId": channel_id,
            "channelTitle": "Example Channel",
            "description": f"About {vid}",
            "tags": ["music", "live"],
            "thumbnails": {"high": {"url": f"https://img.test/{vid}/hq.jpg"}},
        },
        "statistics": {
            "viewCount": str(views),
            "likeCount": str(likes),
            "favoriteCount": "0",
            "commentCount": "3",
        },
        "contentDetails": {"duration": "PT4M13S"},
    }


def playlist_item(video: dict[str, Any]) -> dict[str, Any]:
    """``playlistItems.list`` item for a video."""
    snippet = video.get("snippet") or {}
    return {
        "snippet": {
            "title": snippet.get("title", "Playlist title"),
            "publishedAt": snippet.get("publishedAt", ""),
            "thumbnails": {"default": {"url": f"https://img.test/{video['id']}/default.jpg"}},
        },
        "contentDetails": {
            "videoId": video["id"],
            "videoPublishedAt": snippet.get("publishedAt", ""),
        },
    }


def youtube_channel(
    channel_id: str,
    title: str,
    custom_url: str,
    video_count: int,
    with_uploads: bool = True,
) -> dict[str, Any]:
    """``channels.list`` item."""
    related = {"uploads": "UU" + channel_id[2:]} if with_uploads else {}
    return {
        "id": channel_id,
        "snippet": {
            "title": title,
            "customUrl": custom_url,
            "description": f"{title} description",
            "thumbnails": {"medium": {"url": f"https://img.test/{channel_id}.jpg"}},
        },
        "statistics": {
            "subscriberCount": "12000",
            "videoCount": str(video_count),
            "viewCount": "990000",
        },
        "contentDetails": {"relatedPlaylists": related},
    }


def comment_thread(
    text: str,
    author_channel_id: str,
    comment_id: str = "c1",
    likes: int = 0,
    replies: int = 0,
    author: str = "Viewer",
) -> dict[str, Any]:
    """``commentThreads.list`` item."""
    return {
        "id": comment_id,
        "snippet": {
            "totalReplyCount": replies,
            "topLevelComment": {
                "id": comment_id,
                "snippet": {
                    "textOriginal": text,
                    "authorDisplayName": author,
                    "authorChannelId": {"value": author_channel_id},
                    "likeCount": likes,
                    "publishedAt": "2024-03-01T00:00:00Z",
                },
            },
        },
    }


def local_video(
    vid: str,
    views: int = 0,
    likes: int = 0,
    published_at: str = "2024-01-01T00:00:00Z",
    channel_id: str = LOCAL_CHANNEL_ID,
) -> dict[str, Any]:
    """Row as served by the local backend (snake_case)."""
    return {
        "video_id": vid,
        "channel_id": channel_id,
        "title": f"Local {vid}",
        "published_at": published_at,
        "thumbnail_url": f"https://img.test/{vid}/local.jpg",
        "view_count": views,
        "like_count": likes,
        "comment_count": 1,
    }


def _error(status_code: int, message: str) -> httpx.Response:
    return httpx.Response(
        status_code, json={"error": {"code": status_code, "message": message}}
    )


# =============================================================================
# Fake backend
# =============================================================================


class FakeBackend:
    """In-memory YouTube Data API and local backend behind one MockTransport."""

    def __init__(self) -> None:
        # YouTube Data API
        self.channels: dict[str, dict[str, Any]] = {}
        self.handles: dict[str, str] = {}
        self.playlists: dict[str, list[dict[str, Any]]] = {}
        self.videos: dict[str, dict[str, Any]] = {}
        self.comment_threads: dict[str, list[dict[str, Any]] | int] = {}
        self.comments: dict[str, dict[str, Any] | int] = {}

        # Local backend
        self.local_channels: dict[str, dict[str, Any]] = {}
        self.local_custom_urls: dict[str, str] = {}
        self.local_videos: dict[str, list[dict[str, Any]]] = {}
        self.local_failure: int | None = None
        self.signed_in = True
        self.subscriptions: dict[str, bool] = {}
        self.youtube_api_key: str | None = "backend-key"

        # Instrumentation
        self.requests: list[httpx.Request] = []
        self.holds: dict[str, asyncio.Event] = {}
        self.entered: dict[str, asyncio.Event] = {}

    def add_remote_channel(
        self,
        channel_id: str,
        handle: str,
        title: str,
        videos: list[dict[str, Any]],
        declared_count: int | None = None,
    ) -> None:
        count = len(videos) if declared_count is None else declared_count
        self.channels[channel_id] = youtube_channel(channel_id, title, f"@{handle}", count)
        self.handles[handle.lower()] = channel_id
        self.playlists["UU" + channel_id[2:]] = [playlist_item(video) for video in videos]
        for video in videos:
            self.videos[video["id"]] = video

    def add_local_channel(
        self,
        channel_id: str,
        custom_url: str,
        title: str,
        rows: list[dict[str, Any]],
    ) -> None:
        self.local_channels[channel_id] = {
            "channel_id": channel_id,
            "title": title,
            "custom_url": custom_url,
            "description": "Cached channel",
            "subscriber_count": 10,
            "video_count": len(rows),
            "view_count": 100,
        }
        self.local_custom_urls[custom_url] = channel_id
        self.local_videos[channel_id] = rows

    def hold(self, key: str) -> asyncio.Event:
        """Block requests matching ``key`` until the returned event is set."""
        self.holds[key] = asyncio.Event()
        self.entered[key] = asyncio.Event()
        return self.holds[key]

    def youtube_calls(self, resource: str | None = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.url.host == YOUTUBE_HOST
            and (resource is None or request.url.path.endswith(f"/{resource}"))
        ]

    def local_calls(self, path_fragment: str = "") -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.url.host != YOUTUBE_HOST and path_fragment in request.url.path
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == YOUTUBE_HOST:
            return await self._youtube(request)
        return await self._local(request)

    async def _wait(self, key: str) -> None:
        if key in self.holds:
            self.entered[key].set()
            await self.holds[key].wait()

    async def _youtube(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        resource = request.url.path.rsplit("/", 1)[-1]

        if resource == "channels":
            requested_id = params.get("id")
            handle = params.get("forHandle")
            await self._wait(f"channels:{requested_id or handle}")
            channel_id = requested_id or self.handles.get((handle or "").lower())
            item = self.channels.get(channel_id or "")
            # The real API omits "items" entirely when nothing matches
            body: dict[str, Any] = {"kind": "youtube#channelListResponse"}
            if item:
                body["items"] = [item]
            return httpx.Response(200, json=body)

        if resource == "playlistItems":
            entries = self.playlists.get(params["playlistId"])
            if entries is None:
                return _error(404, "playlistNotFound")
            size = int(params["maxResults"])
            start = int(params.get("pageToken") or 0)
            body = {"items": entries[start : start + size]}
            if start + size < len(entries):
                body["nextPageToken"] = str(start + size)
            return httpx.Response(200, json=body)

        if resource == "videos":
            ids = params["id"].split(",")
            return httpx.Response(
                200, json={"items": [self.videos[vid] for vid in ids if vid in self.videos]}
            )

        if resource == "commentThreads":
            threads = self.comment_threads.get(params["videoId"], [])
            if isinstance(threads, int):
                return _error(threads, "commentsDisabled")
            return httpx.Response(200, json={"items": threads[: int(params["maxResults"])]})

        if resource == "comments":
            item = self.comments.get(params["id"])
            if isinstance(item, int):
                return _error(item, "processingFailure")
            return httpx.Response(200, json={"items": [item] if item else []})

        return _error(404, "Not Found")

    async def _local(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        params = request.url.params

        if path == "/api/config/youtube-api-key":
            return httpx.Response(200, json={"youtubeApiKey": self.youtube_api_key})

        if path == "/api/youtube/subscription-status":
            if not self.signed_in:
                return _error(401, "Unauthorized")
            subscribed = self.subscriptions.get(params["channel_id"], False)
            return httpx.Response(200, json={"data": {"subscribed": subscribed}})

        if path == "/api/youtube/subscribe":
            if request.method == "POST":
                channel_id = json.loads(request.content)["channelId"]
                self.subscriptions[channel_id] = True
                return httpx.Response(200, json={"data": {"subscribed": True}})
            was_subscribed = self.subscriptions.pop(params["channelId"], False)
            return httpx.Response(200, json={"data": {"unsubscribed": was_subscribed}})

        if self.local_failure is not None:
            return _error(self.local_failure, "Local backend failure")

        if path == "/api/youtube/channels/by-custom-url":
            custom_url = params["custom_url"]
            await self._wait(f"local:{custom_url}")
            channel_id = self.local_custom_urls.get(custom_url)
            if channel_id is None:
                return _error(404, "Channel not found")
            return httpx.Response(200, json={"data": self.local_channels[channel_id]})

        rest = path.removeprefix("/api/youtube/channels/")
        if rest.endswith("/videos"):
            rows = self.local_videos.get(rest.removesuffix("/videos"))
            if rows is None:
                return _error(404, "Channel not found")
            offset = int(params.get("offset", 0))
            limit = int(params.get("limit", 200))
            return httpx.Response(
                200,
                json={"data": rows[offset : offset + limit], "meta": {"total": len(rows)}},
            )

        channel = self.local_channels.get(rest)
        if channel is None:
            return _error(404, "Channel not found")
        return httpx.Response(200, json={"data": channel})


class StateRecorder:
    """Observer collecting every published state."""

    def __init__(self) -> None:
        self.states: list[ResultState] = []

    def __call__(self, state: ResultState) -> None:
        self.states.append(state)

    @property
    def last(self) -> ResultState:
        return self.states[-1]


# =============================================================================
# In-memory MongoDB collections
# =============================================================================


class FakeCursor:
    """Subset of the motor cursor API used by the store."""

    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._docs = sorted(self._docs, key=lambda doc: doc.get(key) or "", reverse=direction < 0)
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._docs = self._docs[count:]
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._docs = self._docs[:count]
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._docs:
            yield dict(doc)


class FakeCollection:
    """Subset of the motor collection API used by the store."""

    def __init__(self) -> None:
        self.docs: list[dict[str, Any]] = []
        self.indexes: list[Any] = []
        self._next_id = 1

    @staticmethod
    def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
        return all(doc.get(key) == value for key, value in query.items())

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self.docs:
            if self._matches(doc, query):
                return dict(doc)
        return None

    async def count_documents(self, query: dict[str, Any]) -> int:
        return sum(1 for doc in self.docs if self._matches(doc, query))

    def find(self, query: dict[str, Any], projection: dict[str, int] | None = None) -> FakeCursor:
        excluded = {key for key, flag in (projection or {}).items() if not flag}
        docs = [
            {key: value for key, value in doc.items() if key not in excluded}
            for doc in self.docs
            if self._matches(doc, query)
        ]
        return FakeCursor(docs)

    async def update_one(
        self, query: dict[str, Any], update: dict[str, Any], upsert: bool = False
    ) -> SimpleNamespace:
        for doc in self.docs:
            if self._matches(doc, query):
                doc.update(update.get("$set", {}))
                return SimpleNamespace(upserted_id=None, modified_count=1)
        if not upsert:
            return SimpleNamespace(upserted_id=None, modified_count=0)
        doc = {"_id": self._next_id, **query, **update.get("$set", {})}
        self._next_id += 1
        self.docs.append(doc)
        return SimpleNamespace(upserted_id=doc["_id"], modified_count=0)

    async def bulk_write(self, operations: list[Any], ordered: bool = True) -> SimpleNamespace:
        upserted = modified = 0
        for operation in operations:
            result = await self.update_one(
                operation._filter, operation._doc, upsert=operation._upsert
            )
            upserted += 1 if result.upserted_id is not None else 0
            modified += result.modified_count
        return SimpleNamespace(upserted_count=upserted, modified_count=modified)

    async def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append(keys)
        return str(keys)


class FakeDatabase:
    def __init__(self) -> None:
        self.channels = FakeCollection()
        self.videos = FakeCollection()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def restore_workbench_logger() -> Generator[None, None, None]:
    """Undo handler/propagation changes made by ``setup_logging`` (CLI tests)."""
    logger = logging.getLogger("workbench")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the fake backend."""
    return Settings(
        youtube_api_key="test-key",
        youtube_api_base_url=YOUTUBE_BASE_URL,
        local_api_base_url=LOCAL_BASE_URL,
        local_source="api",
        http_max_retries=0,
    )


@pytest.fixture
def remote_only_settings(settings: Settings) -> Settings:
    """Settings without a local data source."""
    return settings.model_copy(update={"local_source": "none"})


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http_client(backend: FakeBackend) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def youtube(http_client: httpx.AsyncClient, settings: Settings) -> YouTubeDataClient:
    return YouTubeDataClient(http_client=http_client, settings=settings)


@pytest.fixture
def local_api(http_client: httpx.AsyncClient, settings: Settings) -> LocalApiClient:
    return LocalApiClient(http_client=http_client, settings=settings)


@pytest.fixture
def recorder() -> StateRecorder:
    return StateRecorder()


@pytest.fixture
def make_controller(
    settings: Settings,
    youtube: YouTubeDataClient,
    local_api: LocalApiClient,
) -> Callable[..., ChannelVideosController]:
    """Build controllers wired to the fake backend.

    Local source and subscriptions default to the fake backend API unless the
    given settings disable the local source.
    """

    def factory(
        observer: Callable[[ResultState], Any] | None = None,
        controller_settings: Settings | None = None,
        **kwargs: Any,
    ) -> ChannelVideosController:
        active = controller_settings or settings
        kwargs.setdefault("youtube", youtube)
        if active.local_source_enabled:
            kwargs.setdefault("local_source", local_api)
            kwargs.setdefault("subscriptions", local_api)
        return ChannelVideosController(observer=observer, settings=active, **kwargs)

    return factory


@pytest.fixture
def mongo_store(settings: Settings) -> MongoDBManager:
    """MongoDB store backed by in-memory collections."""
    return MongoDBManager(
        settings=settings.model_copy(update={"local_source": "mongo"}),
        db=FakeDatabase(),
    )


@pytest.fixture
def app(remote_only_settings: Settings, youtube: YouTubeDataClient) -> FastAPI:
    """FastAPI application whose controllers talk to the fake backend."""
    test_app = create_app()

    def controller_factory_override():
        def factory(observer):
            return ChannelVideosController(
                observer=observer, settings=remote_only_settings, youtube=youtube
            )

        return factory

    test_app.dependency_overrides[get_controller_factory] = controller_factory_override
    test_app.dependency_overrides[get_youtube_client] = lambda: youtube
    return test_app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create test client for FastAPI application."""
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
