"""Creator Workbench - resolve YouTube channels and browse their videos."""

from workbench.channel import ChannelVideosController, fetch_video_detail

__version__ = "0.3.0"
__all__ = ["ChannelVideosController", "fetch_video_detail"]
