"""Video detail endpoint."""

from fastapi import APIRouter, Depends, Path

from workbench.api.dependencies import get_youtube_client
from workbench.channel.schemas import VideoDetail
from workbench.channel.video_detail import fetch_video_detail
from workbench.channel.youtube_api import YouTubeDataClient

router = APIRouter(prefix="/videos", tags=["videos"])


@router.get(
    "/{video_id}",
    response_model=VideoDetail,
    summary="Get video detail",
    description="""
    Video statistics, a snapshot of its channel and up to six of the most
    relevant comments. Comments are empty when the video has them disabled.
    """,
    operation_id="get_video_detail",
    responses={404: {"description": "Video not found"}},
)
async def get_video(
    video_id: str = Path(
        ...,
        pattern=r"^[A-Za-z0-9_-]{11}$",
        description="11-character YouTube video ID",
        examples=["dQw4w9WgXcQ"],
    ),
    youtube: YouTubeDataClient = Depends(get_youtube_client),
) -> VideoDetail:
    """Fetch a video's detail from the YouTube Data API."""
    return await fetch_video_detail(youtube, video_id)
