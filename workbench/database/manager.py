"""MongoDB channel store.

This module handles MongoDB connection management and the channel/video
collections used as the local cache of the resolution pipeline.
"""

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from workbench.channel.schemas import ChannelRecord, VideoRecord
from workbench.core.config import Settings, get_settings
from workbench.core.exceptions import LocalDataError
from workbench.core.http_session import AbortSignal


def _strip_id(doc: dict[str, Any]) -> dict[str, Any]:
    doc.pop("_id", None)
    return doc


class MongoDBManager:
    """Manage MongoDB operations for the local channel cache.

    This class provides:
    - Connection lifecycle management
    - Channel lookups by ID and custom URL
    - Paged video listing
    - Write-through persistence of remotely resolved channels

    Usage:
        # Context manager (recommended)
        async with MongoDBManager() as db:
            channel = await db.get_channel("UC...")

        # Manual lifecycle management
        db = MongoDBManager()
        try:
            await db.get_channel("UC...")
        finally:
            await db.close()
    """

    writable = True

    def __init__(self, settings: Settings | None = None, db: Any = None) -> None:
        """Initialize MongoDB manager.

        Args:
            settings: Settings to read the connection from
            db: Pre-built database handle (skips connecting)
        """
        self.settings = settings or get_settings()
        self.client: AsyncIOMotorClient | None = None
        self.db: AsyncIOMotorDatabase | None = db
        self.channels: Any | None = db.channels if db is not None else None
        self.videos: Any | None = db.videos if db is not None else None
        self._initialized = db is not None

    async def initialize(self) -> None:
        """Initialize MongoDB connection."""
        if self._initialized:
            return

        try:
            self.client = AsyncIOMotorClient(self.settings.mongodb_url)
        except (PyMongoError, ValueError) as e:
            raise LocalDataError(f"Cannot connect to MongoDB: {e}") from e
        self.db = self.client[self.settings.mongodb_database]
        self.channels = self.db.channels
        self.videos = self.db.videos
        self._initialized = True

    async def close(self) -> None:
        """Close MongoDB connection."""
        if self.client and self._initialized:
            self.client.close()
            self._initialized = False

    async def __aenter__(self) -> "MongoDBManager":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def init_indexes(self) -> None:
        """Initialize database indexes."""
        await self.initialize()
        try:
            await self.channels.create_index("channel_id", unique=True)
            await self.channels.create_index("custom_url")
            await self.videos.create_index("video_id", unique=True)
            await self.videos.create_index("channel_id")
            await self.videos.create_index("published_at")
        except PyMongoError as e:
            raise LocalDataError(f"Failed to create indexes: {e}") from e

    async def get_channel(
        self, channel_id: str, signal: AbortSignal | None = None
    ) -> dict[str, Any]:
        """Retrieve a cached channel by ID.

        Raises:
            LocalDataError: 404 when absent, status None on database failure
        """
        if signal is not None:
            signal.raise_if_aborted()
        await self.initialize()
        try:
            doc = await self.channels.find_one({"channel_id": channel_id})
        except PyMongoError as e:
            raise LocalDataError(f"Channel lookup failed: {e}") from e
        if doc is None:
            raise LocalDataError(f"Channel {channel_id} not found", status_code=404)
        return _strip_id(doc)

    async def get_channel_by_custom_url(
        self, custom_url: str, signal: AbortSignal | None = None
    ) -> dict[str, Any]:
        """Retrieve a cached channel by custom URL.

        Raises:
            LocalDataError: 404 when absent, status None on database failure
        """
        if signal is not None:
            signal.raise_if_aborted()
        await self.initialize()
        try:
            doc = await self.channels.find_one({"custom_url": custom_url})
        except PyMongoError as e:
            raise LocalDataError(f"Channel lookup failed: {e}") from e
        if doc is None:
            raise LocalDataError(f"Channel {custom_url} not found", status_code=404)
        return _strip_id(doc)

    async def list_channel_videos(
        self,
        channel_id: str,
        offset: int = 0,
        limit: int = 200,
        include_top_comment: bool = False,
        signal: AbortSignal | None = None,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """List one page of cached videos for a channel, newest first.

        Returns:
            Tuple of (rows, total video count for the channel)
        """
        if signal is not None:
            signal.raise_if_aborted()
        await self.initialize()
        query = {"channel_id": channel_id}
        projection = None if include_top_comment else {"top_comment": 0}

        try:
            total = await self.videos.count_documents(query)
            cursor = (
                self.videos.find(query, projection)
                .sort("published_at", -1)
                .skip(offset)
                .limit(limit)
            )
            results = [_strip_id(doc) async for doc in cursor]
        except PyMongoError as e:
            raise LocalDataError(f"Video listing failed: {e}") from e

        return results, total

    async def save_channel_videos(
        self,
        channel: ChannelRecord,
        videos: Sequence[VideoRecord],
    ) -> int:
        """Upsert a channel and its videos.

        Args:
            channel: Channel metadata
            videos: Video rows to store under the channel

        Returns:
            Number of video documents written
        """
        await self.initialize()
        now = datetime.now(timezone.utc).isoformat()
        channel_doc = {
            "channel_id": channel.id,
            "title": channel.title,
            "custom_url": channel.handle,
            "description": channel.description,
            "subscriber_count": channel.subscriber_count,
            "video_count": channel.video_count,
            "view_count": channel.view_count,
            "synced_at": now,
        }
        operations = []
        for video in videos:
            doc = video.model_dump(exclude={"id", "source"})
            doc["video_id"] = video.id
            doc["channel_id"] = video.channel_id or channel.id
            doc["synced_at"] = now
            operations.append(UpdateOne({"video_id": video.id}, {"$set": doc}, upsert=True))

        try:
            await self.channels.update_one(
                {"channel_id": channel.id}, {"$set": channel_doc}, upsert=True
            )
            if not operations:
                return 0
            result = await self.videos.bulk_write(operations, ordered=False)
        except PyMongoError as e:
            raise LocalDataError(f"Failed to save channel {channel.id}: {e}") from e

        return result.upserted_count + result.modified_count


# Singleton instance for application-wide use
_db_manager: MongoDBManager | None = None


def get_db_manager() -> MongoDBManager:
    """Get or create the global database manager instance.

    Returns:
        MongoDBManager instance
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = MongoDBManager()
    return _db_manager
