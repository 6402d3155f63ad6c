"""Tests for record adapters and the normalizer/sorter."""

import math

import pytest

from workbench.channel.adapters import (
    local_channel_to_record,
    local_video_to_record,
    parse_count,
    parse_timestamp,
    playlist_item_to_entry,
    remote_channel_to_record,
    remote_video_to_record,
    uploads_playlist_id,
)
from workbench.channel.normalizer import build_remote_rows, dedupe_videos, sort_videos
from workbench.channel.schemas import PlaylistEntry, TopComment, VideoRecord
from workbench.core.constants import UNTITLED_VIDEO
from tests.conftest import EXAMPLE_CHANNEL_ID, playlist_item, youtube_channel, youtube_video


def _video(vid: str, views: int = 0, likes: int = 0, published_at: str = "") -> VideoRecord:
    return VideoRecord(
        id=vid, title=vid, view_count=views, like_count=likes, published_at=published_at
    )


class TestParseCount:
    """Numeric fields never produce NaN or raise."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1200", 1200),
            (" 42 ", 42),
            (17, 17),
            (3.9, 3),
            ("7.0", 7),
            (None, 0),
            ("", 0),
            ("abc", 0),
            ("-5", 0),
            (-5, 0),
            (math.nan, 0),
            (math.inf, 0),
            ("NaN", 0),
            (True, 0),
            ({"nested": 1}, 0),
            ([1], 0),
        ],
    )
    def test_parse_count(self, value, expected):
        assert parse_count(value) == expected


class TestParseTimestamp:
    def test_zulu_and_offset(self):
        assert parse_timestamp("2024-01-01T00:00:00Z") == parse_timestamp(
            "2024-01-01T01:00:00+01:00"
        )

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-01T00:00:00") == parse_timestamp("2024-01-01T00:00:00Z")

    @pytest.mark.parametrize("value", [None, "", "yesterday", 20240101])
    def test_unparsable_is_zero(self, value):
        assert parse_timestamp(value) == 0.0


class TestSortVideos:
    """Tests for dedup and display order."""

    def test_dedupe_first_occurrence_wins(self):
        first = _video("a", views=1)
        videos = dedupe_videos([first, _video("b"), _video("a", views=99)])

        assert [video.id for video in videos] == ["a", "b"]
        assert videos[0] is first

    def test_sort_order(self):
        """
        Given videos tied on views and likes
        When sorted
        Then ties break on publish date, newest first, unparsable dates last
        """
        videos = sort_videos(
            [
                _video("no-date", views=10, likes=1, published_at="garbage"),
                _video("old", views=10, likes=1, published_at="2023-01-01T00:00:00Z"),
                _video("top", views=100),
                _video("liked", views=10, likes=5, published_at="2020-01-01T00:00:00Z"),
                _video("new", views=10, likes=1, published_at="2024-02-01T00:00:00Z"),
            ]
        )

        assert [video.id for video in videos] == ["top", "liked", "new", "old", "no-date"]

    def test_sorted_result_has_unique_ids_and_ordered_neighbours(self):
        videos = sort_videos(
            _video(f"v{n % 7}", views=n % 3, likes=n % 2, published_at=f"2024-01-{n % 9 + 1:02d}")
            for n in range(40)
        )

        assert len({video.id for video in videos}) == len(videos) == 7
        for left, right in zip(videos, videos[1:]):
            left_key = (left.view_count, left.like_count, parse_timestamp(left.published_at))
            right_key = (right.view_count, right.like_count, parse_timestamp(right.published_at))
            assert left_key >= right_key


class TestAdapters:
    """Tests for the source-specific adapters."""

    def test_local_channel(self):
        record = local_channel_to_record(
            {"channel_id": "UC1", "title": " Name ", "custom_url": "name", "video_count": "12"}
        )

        assert record is not None
        assert record.title == "Name"
        assert record.handle == "@name"
        assert record.video_count == 12

    def test_local_channel_without_id(self):
        assert local_channel_to_record({"title": "Nameless"}) is None

    def test_local_channel_falls_back_to_query(self):
        record = local_channel_to_record({"id": "UC1"}, query="@typed")

        assert record is not None
        assert record.title == "@typed"
        assert record.handle == "@typed"

    def test_local_video(self):
        record = local_video_to_record(
            {
                "video_id": "vid00000001",
                "view_count": "not a number",
                "like_count": 4,
                "top_comment": {"text": " nice ", "like_count": 2},
            }
        )

        assert record is not None
        assert record.title == UNTITLED_VIDEO
        assert record.view_count == 0
        assert record.like_count == 4
        assert record.top_comment == TopComment(text="nice", like_count=2)
        assert record.source == "local"

    def test_local_top_comment_without_text_is_dropped(self):
        record = local_video_to_record({"id": "vid00000001", "top_comment": {"text": " "}})
        assert record is not None
        assert record.top_comment is None

    def test_remote_channel(self):
        item = youtube_channel(EXAMPLE_CHANNEL_ID, "Example", "@examplechan", 3)
        record = remote_channel_to_record(item)

        assert record.id == EXAMPLE_CHANNEL_ID
        assert record.handle == "@examplechan"
        assert record.subscriber_count == 12000
        assert uploads_playlist_id(item) == "UU" + EXAMPLE_CHANNEL_ID[2:]

    def test_channel_without_uploads(self):
        item = youtube_channel(EXAMPLE_CHANNEL_ID, "Example", "@examplechan", 3, with_uploads=False)
        assert uploads_playlist_id(item) is None

    def test_playlist_entry(self):
        entry = playlist_item_to_entry(playlist_item(youtube_video("vid00000001")))

        assert entry is not None
        assert entry.video_id == "vid00000001"
        assert entry.thumbnail_url == "https://img.test/vid00000001/default.jpg"

    def test_playlist_entry_without_video_id(self):
        assert playlist_item_to_entry({"snippet": {"title": "Private video"}}) is None

    def test_remote_video_falls_back_to_playlist(self):
        """
        Given a videos.list item with an empty snippet
        When mapped with a playlist entry
        Then title, date and thumbnail come from the entry
        """
        fallback = PlaylistEntry(
            video_id="vid00000001",
            title="From playlist",
            published_at="2024-05-01T00:00:00Z",
            thumbnail_url="https://img.test/fallback.jpg",
        )
        record = remote_video_to_record(
            {"id": "vid00000001", "snippet": {}, "statistics": {"viewCount": "9"}}, fallback
        )

        assert record is not None
        assert record.title == "From playlist"
        assert record.published_at == "2024-05-01T00:00:00Z"
        assert record.thumbnail_url == "https://img.test/fallback.jpg"
        assert record.view_count == 9

    def test_remote_video_without_snippet_is_dropped(self):
        assert remote_video_to_record({"id": "vid00000001"}) is None


class TestBuildRemoteRows:
    def test_merges_comments_and_sorts(self):
        items = [
            youtube_video("vid00000001", views=5),
            youtube_video("vid00000002", views=50),
            youtube_video("vid00000001", views=5),
            {"id": "vid00000003"},
        ]
        comment = TopComment(text="first!")

        rows = build_remote_rows(items, {}, {"vid00000001": comment})

        assert [row.id for row in rows] == ["vid00000002", "vid00000001"]
        assert rows[1].top_comment == comment
        assert rows[0].top_comment is None
