"""Channel videos controller - orchestrates one resolution session at a time.

Flow per session:
    local cache -> (hit) subscription status -> ready
                -> (miss) remote channel -> uploads playlist -> video batches
                   -> [top comments] -> normalize/sort -> subscription status -> ready

Every externally visible transition goes through the session's
:class:`StatePublisher`; a superseded session halts at its next check without
publishing anything.
"""

from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, Protocol

from workbench.channel.comments import CommentEnrichmentEngine
from workbench.channel.local_cache import LocalCacheAdapter, LocalDataSource
from workbench.channel.normalizer import build_remote_rows, sort_videos
from workbench.channel.publisher import StateObserver, StatePublisher
from workbench.channel.query import parse_query
from workbench.channel.remote import PlaylistPaginator, RemoteChannelResolver, VideoBatchFetcher
from workbench.channel.schemas import (
    ChannelQuery,
    ChannelRecord,
    PlaylistEntry,
    ResultState,
    TopComment,
    VideoNavigation,
    VideoRecord,
)
from workbench.channel.session import ResolutionSession, SessionManager
from workbench.channel.youtube_api import YouTubeDataClient
from workbench.core.config import Settings, get_settings
from workbench.core.constants import LOAD_FAILED_MESSAGE
from workbench.core.exceptions import (
    ApiError,
    ChannelNotFoundError,
    RequestAborted,
    ResolutionError,
)
from workbench.core.http_session import AbortSignal
from workbench.core.logging_config import get_logger, log_resolution_event

logger = get_logger(__name__)


class SubscriptionSource(Protocol):
    """Backend answering subscription status and managing subscriptions."""

    async def get_subscription_status(
        self, channel_id: str, signal: AbortSignal | None = None
    ) -> bool | None: ...

    async def subscribe(self, channel_id: str) -> bool: ...

    async def unsubscribe(self, channel_id: str) -> bool: ...

    async def get_youtube_api_key(self) -> str | None: ...


def build_local_source(settings: Settings) -> LocalDataSource | None:
    """
    Create the configured local data source.

    Args:
        settings: Application settings (``local_source`` selects the backend)

    Returns:
        Backend API client, MongoDB store, or None for remote-only operation
    """
    if settings.local_source == "mongo":
        from workbench.database.manager import get_db_manager

        return get_db_manager()
    if settings.local_source == "api":
        from workbench.database.local_api import LocalApiClient

        return LocalApiClient(settings=settings)
    return None


def build_subscription_source(
    settings: Settings, local_source: LocalDataSource | None = None
) -> SubscriptionSource | None:
    """Backend client for subscription status, reusing the local source when it is one."""
    from workbench.database.local_api import LocalApiClient

    if isinstance(local_source, LocalApiClient):
        return local_source
    if settings.local_source == "none":
        return None
    return LocalApiClient(settings=settings)


@dataclass
class _SessionRun:
    """Per-session working set: query, publisher and the stage being executed."""

    session: ResolutionSession
    publisher: StatePublisher
    hot_comments: bool
    stage: str = "local_cache"
    playlist: dict[str, PlaylistEntry] = field(default_factory=dict)

    @property
    def query(self) -> ChannelQuery:
        return self.session.query

    def is_current(self) -> bool:
        return self.publisher.is_current

    def check(self) -> None:
        """Halt a superseded session before its next request or publish."""
        if not self.publisher.is_current:
            raise RequestAborted("Session superseded")


class ChannelVideosController:
    """Owns the session manager and runs channel resolutions.

    Created when a view mounts, closed when it unmounts. Each :meth:`submit`
    supersedes the previous session.

    Usage:
        controller = ChannelVideosController(observer=render)
        outcome = await controller.submit("@somechannel")
        ...
        controller.close()
    """

    def __init__(
        self,
        observer: StateObserver | None = None,
        settings: Settings | None = None,
        youtube: YouTubeDataClient | None = None,
        local_source: LocalDataSource | None = None,
        subscriptions: SubscriptionSource | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            observer: Called with every published ResultState
            settings: Application settings
            youtube: YouTube Data API client (built from settings when omitted)
            local_source: Local data source (built from settings when omitted)
            subscriptions: Subscription backend (built from settings when omitted)
        """
        self.settings = settings or get_settings()
        self.observer = observer

        if local_source is None and self.settings.local_source_enabled:
            local_source = build_local_source(self.settings)
        if subscriptions is None:
            subscriptions = build_subscription_source(self.settings, local_source)

        self.local_source = local_source
        self.subscriptions = subscriptions
        self.youtube = youtube or YouTubeDataClient(
            settings=self.settings,
            key_provider=subscriptions.get_youtube_api_key if subscriptions else None,
        )

        self.sessions = SessionManager()
        self.local_cache = (
            LocalCacheAdapter(local_source, page_size=self.settings.local_page_size)
            if local_source is not None
            else None
        )
        self.resolver = RemoteChannelResolver(self.youtube)
        self.paginator = PlaylistPaginator(self.youtube)
        self.batcher = VideoBatchFetcher(self.youtube, batch_size=self.settings.video_batch_size)
        self.comments = CommentEnrichmentEngine(
            self.youtube,
            thread_limit=self.settings.comment_thread_limit,
            concurrency=self.settings.comment_concurrency,
        )

        self._state = ResultState()
        self._publisher: StatePublisher | None = None

    @property
    def state(self) -> ResultState:
        """Most recently delivered snapshot."""
        return self._state

    def _deliver(self, state: ResultState) -> None:
        self._state = state
        if self.observer is not None:
            self.observer(state)

    async def submit(
        self,
        raw: str,
        channel_id: str | None = None,
        hot_comments: bool | None = None,
    ) -> VideoNavigation | ResultState | None:
        """
        Interpret a search submission (or suggestion click) and act on it.

        Args:
            raw: Raw search input
            channel_id: Explicit channel ID from a suggestion
            hot_comments: Attach top comments (defaults to settings)

        Returns:
            VideoNavigation for video URLs, the final ResultState for channel
            queries, or None when the input was empty and the state was reset
        """
        parsed = parse_query(raw, channel_id)
        if parsed is None:
            self.reset()
            return None
        if isinstance(parsed, VideoNavigation):
            return parsed
        return await self.load_channel_videos(parsed, hot_comments=hot_comments)

    def reset(self) -> None:
        """Cancel the active session and publish the empty idle state."""
        self.sessions.cancel()
        self._publisher = None
        self._deliver(ResultState())

    def close(self) -> None:
        """Tear down: cancel the active session; nothing is published afterwards."""
        self.sessions.cancel()
        self._publisher = None

    async def load_channel_videos(
        self,
        query: ChannelQuery,
        hot_comments: bool | None = None,
    ) -> ResultState:
        """
        Run one resolution session for a channel query.

        Args:
            query: Normalized query
            hot_comments: Attach top comments (defaults to settings)

        Returns:
            The session's last state (stale sessions return what they last saw)
        """
        session = self.sessions.begin(query)
        publisher = StatePublisher(self.sessions, session.token, self._deliver)
        self._publisher = publisher
        run = _SessionRun(
            session=session,
            publisher=publisher,
            hot_comments=self.settings.hot_comments if hot_comments is None else hot_comments,
        )

        log_resolution_event(logger, query.raw, run.stage, "started")
        publisher.publish(
            channel_name=query.trimmed,
            channel_id=query.explicit_channel_id,
            channel_metadata=None,
            videos=[],
            error=None,
            is_loading=True,
            is_subscribed=False,
            is_subscription_loading=False,
        )

        try:
            await self._resolve(run)
        except RequestAborted:
            logger.debug("Session %s for %r superseded at %s", session.token, query.raw, run.stage)
        except ChannelNotFoundError as e:
            log_resolution_event(logger, query.raw, run.stage, "not_found", error=str(e))
            publisher.publish(error=str(e), is_loading=False, is_subscription_loading=False)
        except Exception as e:
            log_resolution_event(
                logger,
                query.raw,
                run.stage,
                "failed",
                error=f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            publisher.publish(
                error=LOAD_FAILED_MESSAGE,
                videos=[],
                channel_metadata=None,
                is_loading=False,
                is_subscription_loading=False,
            )

        return publisher.state

    async def _resolve(self, run: _SessionRun) -> None:
        if await self._resolve_local(run):
            return
        await self._resolve_remote(run)

    async def _resolve_local(self, run: _SessionRun) -> bool:
        if self.local_cache is None:
            return False

        run.stage = "local_cache"
        hit = await self.local_cache.lookup(
            run.query,
            signal=run.session.signal,
            include_top_comment=run.hot_comments,
            is_current=run.is_current,
        )
        run.check()

        if hit is None:
            log_resolution_event(logger, run.query.raw, run.stage, "local_miss")
            return False

        videos = sort_videos(hit.videos)
        log_resolution_event(
            logger, run.query.raw, run.stage, "local_hit", channel_id=hit.channel_id
        )
        run.publisher.publish(
            channel_name=hit.channel.title,
            channel_id=hit.channel_id,
            channel_metadata=hit.channel,
            videos=videos,
            error=None,
            is_loading=False,
        )
        await self._hydrate_subscription(run, hit.channel_id)
        run.stage = "ready"
        log_resolution_event(
            logger,
            run.query.raw,
            run.stage,
            "completed",
            channel_id=hit.channel_id,
            video_count=len(videos),
            source="local",
        )
        return True

    async def _resolve_remote(self, run: _SessionRun) -> None:
        signal = run.session.signal

        run.stage = "remote_channel"
        run.check()
        remote = await self.resolver.resolve(run.query, signal=signal)
        run.check()

        channel = remote.channel
        run.publisher.publish(
            channel_name=channel.title,
            channel_id=channel.id,
            channel_metadata=channel,
        )

        run.stage = "playlist"
        async with aclosing(
            self.paginator.pages(remote.uploads_playlist_id, channel.video_count, signal=signal)
        ) as pages:
            async for page in pages:
                run.check()
                for entry in page:
                    run.playlist.setdefault(entry.video_id, entry)

        run.stage = "videos"
        items: list[dict[str, Any]] = []
        run.check()
        async with aclosing(self.batcher.batches(list(run.playlist), signal=signal)) as batches:
            async for batch in batches:
                run.check()
                items.extend(batch)

        comments: dict[str, TopComment] = {}
        if run.hot_comments and items:
            run.stage = "comments"
            comments = await self.comments.top_comments(
                (item.get("id") for item in items if isinstance(item.get("id"), str)),
                channel.id,
                signal=signal,
                is_current=run.is_current,
            )
            run.check()

        videos = build_remote_rows(items, run.playlist, comments)
        run.publisher.publish(videos=videos, error=None, is_loading=False)

        await self._hydrate_subscription(run, channel.id)
        run.stage = "ready"
        log_resolution_event(
            logger,
            run.query.raw,
            run.stage,
            "completed",
            channel_id=channel.id,
            video_count=len(videos),
            source="remote",
        )
        await self._write_through(run, channel, videos)

    async def _hydrate_subscription(self, run: _SessionRun, channel_id: str) -> None:
        if self.subscriptions is None:
            return

        run.stage = "subscription"
        run.check()
        run.publisher.publish(is_subscription_loading=True)
        try:
            subscribed = await self.subscriptions.get_subscription_status(
                channel_id, signal=run.session.signal
            )
        except RequestAborted:
            raise
        except Exception as e:
            logger.warning("Subscription status unavailable for %s: %s", channel_id, e)
            subscribed = None
        run.publisher.publish(is_subscribed=bool(subscribed), is_subscription_loading=False)

    async def _write_through(
        self, run: _SessionRun, channel: ChannelRecord, videos: list[VideoRecord]
    ) -> None:
        source = self.local_source
        if not self.settings.cache_write_through or source is None:
            return
        if not getattr(source, "writable", False) or not run.is_current():
            return

        run.stage = "write_through"
        try:
            written = await source.save_channel_videos(channel, videos)  # type: ignore[attr-defined]
        except RequestAborted:
            raise
        except ApiError as e:
            logger.warning("Failed to cache channel %s locally: %s", channel.id, e)
            return
        except Exception as e:
            # The result is already published; a failed write only costs the cache
            logger.warning(
                "Failed to cache channel %s locally: %s: %s",
                channel.id,
                type(e).__name__,
                e,
                exc_info=True,
            )
            return
        logger.info("Cached %d videos of channel %s locally", written, channel.id)

    async def set_subscription(self, subscribed: bool) -> bool:
        """
        Subscribe to or unsubscribe from the channel currently shown.

        Args:
            subscribed: Desired subscription state

        Returns:
            The subscription state after the call

        Raises:
            ResolutionError: If no channel is loaded
            ApiError: If the backend call fails
        """
        publisher = self._publisher
        channel_id = self._state.channel_id
        if self.subscriptions is None or publisher is None or not channel_id:
            raise ResolutionError("No channel loaded")

        publisher.publish(is_subscription_loading=True)
        try:
            if subscribed:
                result = await self.subscriptions.subscribe(channel_id)
            else:
                # False only means there was nothing to undo
                await self.subscriptions.unsubscribe(channel_id)
                result = False
        except ApiError:
            publisher.publish(is_subscription_loading=False)
            raise

        publisher.publish(is_subscribed=result, is_subscription_loading=False)
        return result
