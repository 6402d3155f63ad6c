"""Tests for the remote resolution stages."""

import logging

import httpx
import pytest

from workbench.channel.remote import (
    PlaylistPaginator,
    RemoteChannelResolver,
    VideoBatchFetcher,
    playlist_page_size,
)
from workbench.channel.schemas import ChannelQuery
from workbench.channel.youtube_api import YouTubeDataClient, build_params
from workbench.core.exceptions import ChannelNotFoundError, ConfigurationError, YouTubeAPIError
from tests.conftest import EXAMPLE_CHANNEL_ID, youtube_channel, youtube_video, video_id

UPLOADS_ID = "UU" + EXAMPLE_CHANNEL_ID[2:]


class TestPlaylistPageSize:
    @pytest.mark.parametrize(
        ("video_count", "expected"),
        [(0, 50), (199, 50), (200, 25), (600, 25), (601, 10), (50_000, 10)],
    )
    def test_tiers(self, video_count, expected):
        assert playlist_page_size(video_count) == expected


class TestBuildParams:
    def test_flattening(self):
        assert build_params(
            {"part": "snippet", "id": ["a", "b"], "pageToken": None, "empty": [], "flag": True}
        ) == [("part", "snippet"), ("id", "a,b"), ("flag", "true")]


@pytest.mark.asyncio
class TestRemoteChannelResolver:
    """Tests for channel resolution."""

    async def test_resolve_by_handle(self, backend, youtube):
        backend.add_remote_channel(EXAMPLE_CHANNEL_ID, "exampleChan", "Example", [])
        resolver = RemoteChannelResolver(youtube)

        remote = await resolver.resolve(ChannelQuery(raw="@exampleChan"))

        assert remote.channel.id == EXAMPLE_CHANNEL_ID
        assert remote.channel.handle == "@exampleChan"
        assert remote.uploads_playlist_id == UPLOADS_ID
        params = backend.youtube_calls("channels")[0].url.params
        assert params["forHandle"] == "exampleChan"
        assert "id" not in params
        assert params["key"] == "test-key"

    async def test_resolve_by_explicit_id(self, backend, youtube):
        backend.add_remote_channel(EXAMPLE_CHANNEL_ID, "exampleChan", "Example", [])
        resolver = RemoteChannelResolver(youtube)

        await resolver.resolve(
            ChannelQuery(raw="Example", explicit_channel_id=EXAMPLE_CHANNEL_ID)
        )

        params = backend.youtube_calls("channels")[0].url.params
        assert params["id"] == EXAMPLE_CHANNEL_ID
        assert "forHandle" not in params

    async def test_unknown_channel(self, backend, youtube):
        resolver = RemoteChannelResolver(youtube)

        with pytest.raises(ChannelNotFoundError, match="Channel or playlist not found"):
            await resolver.resolve(ChannelQuery(raw="@ghost"))

    async def test_channel_without_uploads(self, backend, youtube):
        backend.channels[EXAMPLE_CHANNEL_ID] = youtube_channel(
            EXAMPLE_CHANNEL_ID, "Example", "@exampleChan", 0, with_uploads=False
        )
        resolver = RemoteChannelResolver(youtube)

        with pytest.raises(ChannelNotFoundError):
            await resolver.resolve(
                ChannelQuery(raw=EXAMPLE_CHANNEL_ID, explicit_channel_id=EXAMPLE_CHANNEL_ID)
            )


@pytest.mark.asyncio
class TestPlaylistPaginator:
    """Tests for the uploads playlist walk."""

    async def _walk(self, youtube, video_count: int) -> list[list[str]]:
        paginator = PlaylistPaginator(youtube)
        return [
            [entry.video_id for entry in page]
            async for page in paginator.pages(UPLOADS_ID, video_count)
        ]

    async def test_walks_all_pages(self, backend, youtube):
        videos = [youtube_video(video_id(n)) for n in range(120)]
        backend.add_remote_channel(EXAMPLE_CHANNEL_ID, "exampleChan", "Example", videos)

        pages = await self._walk(youtube, video_count=120)

        assert [len(page) for page in pages] == [50, 50, 20]
        assert pages[0][0] == video_id(0)
        tokens = [
            request.url.params.get("pageToken") for request in backend.youtube_calls("playlistItems")
        ]
        assert tokens == [None, "50", "100"]

    async def test_page_size_follows_declared_count(self, backend, youtube):
        videos = [youtube_video(video_id(n)) for n in range(30)]
        backend.add_remote_channel(EXAMPLE_CHANNEL_ID, "exampleChan", "Example", videos)

        pages = await self._walk(youtube, video_count=700)

        assert [len(page) for page in pages] == [10, 10, 10]
        sizes = {request.url.params["maxResults"] for request in backend.youtube_calls("playlistItems")}
        assert sizes == {"10"}

    async def test_repeated_token_stops(self, youtube, caplog):
        """
        Given an API that keeps returning the same next-page token
        When walking the playlist
        Then the walk stops instead of looping forever
        """
        calls = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            item = {"contentDetails": {"videoId": video_id(calls)}}
            return httpx.Response(200, json={"items": [item], "nextPageToken": "again"})

        client = YouTubeDataClient(
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            settings=youtube.settings,
        )

        with caplog.at_level(logging.WARNING, logger="workbench"):
            pages = await self._walk(client, video_count=1)

        assert calls == 2
        assert len(pages) == 2
        assert "repeated page token" in caplog.text

    async def test_missing_playlist(self, backend, youtube):
        with pytest.raises(YouTubeAPIError) as exc_info:
            await self._walk(youtube, video_count=1)
        assert exc_info.value.status_code == 404


@pytest.mark.asyncio
class TestVideoBatchFetcher:
    """Tests for batched videos.list calls."""

    async def test_batches_of_fifty(self, backend, youtube):
        ids = [video_id(n) for n in range(120)]
        for vid in ids:
            backend.videos[vid] = youtube_video(vid)
        fetcher = VideoBatchFetcher(youtube)

        batches = [batch async for batch in fetcher.batches(ids)]

        assert [len(batch) for batch in batches] == [50, 50, 20]
        requested = [request.url.params["id"].split(",") for request in backend.youtube_calls("videos")]
        assert [len(chunk) for chunk in requested] == [50, 50, 20]
        assert sum(requested, []) == ids

    async def test_batch_size_is_capped(self, youtube):
        assert VideoBatchFetcher(youtube, batch_size=500).batch_size == 50
        assert VideoBatchFetcher(youtube, batch_size=0).batch_size == 1

    async def test_items_without_snippet_dropped(self, backend, youtube):
        backend.videos[video_id(1)] = youtube_video(video_id(1))
        backend.videos[video_id(2)] = {"id": video_id(2)}
        fetcher = VideoBatchFetcher(youtube)

        batches = [batch async for batch in fetcher.batches([video_id(1), video_id(2)])]

        assert [item["id"] for item in batches[0]] == [video_id(1)]


@pytest.mark.asyncio
class TestApiKey:
    """Tests for API key resolution."""

    async def test_key_from_provider_is_cached(self, backend, http_client, remote_only_settings):
        settings = remote_only_settings.model_copy(update={"youtube_api_key": ""})
        asked = 0

        async def provider() -> str | None:
            nonlocal asked
            asked += 1
            return " provided-key "

        client = YouTubeDataClient(http_client=http_client, settings=settings, key_provider=provider)
        await client.videos_list([video_id(1)], "snippet")
        await client.videos_list([video_id(2)], "snippet")

        assert asked == 1
        assert {request.url.params["key"] for request in backend.youtube_calls()} == {"provided-key"}

    async def test_missing_key(self, http_client, remote_only_settings):
        settings = remote_only_settings.model_copy(update={"youtube_api_key": ""})
        client = YouTubeDataClient(http_client=http_client, settings=settings)

        with pytest.raises(ConfigurationError):
            await client.videos_list([video_id(1)], "snippet")
