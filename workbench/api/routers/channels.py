"""Channel resolution endpoints.

- GET /channels/videos streams every published state of one resolution as NDJSON
- WS /channels/ws keeps one controller per connection; each message starts a
  new resolution that supersedes the previous one
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse, StreamingResponse

from workbench.api.dependencies import ControllerFactory, get_controller_factory
from workbench.channel.query import parse_query
from workbench.channel.schemas import ChannelQuery, ResultState, VideoNavigation
from workbench.core.constants import API_V1_PREFIX
from workbench.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/channels", tags=["channels"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def _video_detail_url(video_id: str) -> str:
    return f"{API_V1_PREFIX}/videos/{video_id}"


async def _stream_states(
    factory: ControllerFactory,
    query: ChannelQuery,
    hot_comments: bool | None,
) -> AsyncIterator[str]:
    """Run one resolution and yield each published state as a JSON line."""
    queue: asyncio.Queue[ResultState | None] = asyncio.Queue()
    controller = factory(queue.put_nowait)

    async def run() -> None:
        try:
            await controller.load_channel_videos(query, hot_comments=hot_comments)
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run())
    try:
        while True:
            state = await queue.get()
            if state is None:
                break
            yield state.model_dump_json() + "\n"
        await task
    finally:
        # Client went away mid-stream: tear the session down
        controller.close()
        if not task.done():
            task.cancel()


@router.get(
    "/videos",
    summary="Resolve a channel and stream its videos",
    description="""
    Resolve a channel handle, channel ID or pasted video URL.

    Channel queries stream one JSON document per line (`application/x-ndjson`),
    one for every state transition: loading, channel found, videos loaded,
    subscription status, or an error. The last line is the final state.

    Video URLs are answered with `{"video_id", "detail_url"}` instead.
    """,
    operation_id="stream_channel_videos",
    responses={
        200: {
            "description": "NDJSON stream of result states, or a video navigation",
            "content": {NDJSON_MEDIA_TYPE: {}, "application/json": {}},
        },
    },
)
async def stream_channel_videos(
    q: str = Query(..., min_length=1, description="Handle, channel ID or video URL"),
    channel_id: str | None = Query(None, description="Explicit channel ID (suggestion click)"),
    hot_comments: bool | None = Query(None, description="Attach top comments to videos"),
    factory: ControllerFactory = Depends(get_controller_factory),
) -> Any:
    """Stream the resolution of a channel query."""
    parsed = parse_query(q, channel_id)
    if parsed is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Query must not be empty",
        )
    if isinstance(parsed, VideoNavigation):
        return JSONResponse(
            {"video_id": parsed.video_id, "detail_url": _video_detail_url(parsed.video_id)}
        )

    return StreamingResponse(
        _stream_states(factory, parsed, hot_comments),
        media_type=NDJSON_MEDIA_TYPE,
    )


async def _pump(websocket: WebSocket, outbox: asyncio.Queue[dict[str, Any]]) -> None:
    while True:
        message = await outbox.get()
        await websocket.send_json(message)


@router.websocket("/ws")
async def channel_socket(
    websocket: WebSocket,
    factory: ControllerFactory = Depends(get_controller_factory),
) -> None:
    """
    Interactive search session.

    Inbound: ``{"query": str, "channel_id"?: str, "hot_comments"?: bool}``.
    Outbound: ``{"type": "state", "state": {...}}`` per publish,
    ``{"type": "video", "video_id": str}`` for video URLs and
    ``{"type": "error", "message": str}`` for malformed messages.
    """
    await websocket.accept()
    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def observe(state: ResultState) -> None:
        outbox.put_nowait({"type": "state", "state": state.model_dump(mode="json")})

    controller = factory(observe)
    sender = asyncio.create_task(_pump(websocket, outbox))
    running: set[asyncio.Task[Any]] = set()

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (KeyError, ValueError):
                # KeyError: binary frame where a text frame was expected
                outbox.put_nowait({"type": "error", "message": "Invalid JSON message"})
                continue
            if not isinstance(message, dict) or not isinstance(message.get("query", ""), str):
                outbox.put_nowait({"type": "error", "message": "Expected {\"query\": string}"})
                continue

            channel_id = message.get("channel_id")
            parsed = parse_query(
                message.get("query", ""),
                channel_id if isinstance(channel_id, str) else None,
            )
            if parsed is None:
                controller.reset()
                continue
            if isinstance(parsed, VideoNavigation):
                outbox.put_nowait({"type": "video", "video_id": parsed.video_id})
                continue

            hot_comments = message.get("hot_comments")
            task = asyncio.create_task(
                controller.load_channel_videos(
                    parsed,
                    hot_comments=hot_comments if isinstance(hot_comments, bool) else None,
                )
            )
            running.add(task)
            task.add_done_callback(running.discard)
    except WebSocketDisconnect:
        logger.debug("Channel socket disconnected")
    finally:
        controller.close()
        for task in list(running):
            task.cancel()
        sender.cancel()
        (outcome,) = await asyncio.gather(sender, return_exceptions=True)
        if isinstance(outcome, Exception):
            logger.debug("Channel socket sender stopped: %s", outcome)
