"""FastAPI dependencies for the API module."""

from collections.abc import Callable

from fastapi import Depends

from workbench.channel.pipeline import ChannelVideosController, build_subscription_source
from workbench.channel.publisher import StateObserver
from workbench.channel.youtube_api import YouTubeDataClient
from workbench.core.config import Settings, get_settings

ControllerFactory = Callable[[StateObserver], ChannelVideosController]

# Shared so the API key is fetched from the backend once per process
_youtube_client: YouTubeDataClient | None = None


def get_settings_dep() -> Settings:
    """Dependency to get application settings.

    Returns:
        Settings: Application settings instance
    """
    return get_settings()


def get_youtube_client(settings: Settings = Depends(get_settings_dep)) -> YouTubeDataClient:
    """Dependency to get the shared YouTube Data API client.

    Returns:
        YouTubeDataClient: Client whose API key is cached across requests
    """
    global _youtube_client
    if _youtube_client is None:
        subscriptions = build_subscription_source(settings)
        _youtube_client = YouTubeDataClient(
            settings=settings,
            key_provider=subscriptions.get_youtube_api_key if subscriptions else None,
        )
    return _youtube_client


def get_controller_factory(
    settings: Settings = Depends(get_settings_dep),
    youtube: YouTubeDataClient = Depends(get_youtube_client),
) -> ControllerFactory:
    """Dependency returning a factory for per-request (or per-socket) controllers.

    Returns:
        Callable building a ChannelVideosController around an observer
    """

    def factory(observer: StateObserver) -> ChannelVideosController:
        return ChannelVideosController(observer=observer, settings=settings, youtube=youtube)

    return factory


def reset_youtube_client() -> None:
    """Forget the shared client (used on shutdown)."""
    global _youtube_client
    _youtube_client = None
