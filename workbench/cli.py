"""CLI for the Creator Workbench."""

import asyncio
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from workbench.channel import ChannelVideosController, fetch_video_detail
from workbench.channel.pipeline import build_subscription_source
from workbench.channel.query import extract_video_id
from workbench.channel.schemas import ResultState, VideoDetail, VideoNavigation
from workbench.channel.video_detail import format_count, format_duration
from workbench.channel.youtube_api import YouTubeDataClient
from workbench.core.config import Settings, get_settings_with_yaml
from workbench.core.http_session import close_all_clients
from workbench.core.logging_config import setup_logging

app = typer.Typer(help="Creator Workbench - resolve YouTube channels and browse their videos")
console = Console()


def _load_settings(config: Path | None) -> Settings:
    settings = get_settings_with_yaml(config)
    setup_logging(level=settings.log_level, log_file=settings.log_file)
    return settings


async def _close_resources(settings: Settings) -> None:
    await close_all_clients()
    if settings.local_source == "mongo":
        from workbench.database import get_db_manager

        await get_db_manager().close()


@app.command()
def search(
    query: str = typer.Argument(..., help="Channel handle, channel ID or video URL"),
    channel_id: str | None = typer.Option(None, "--channel-id", help="Explicit channel ID"),
    hot_comments: bool = typer.Option(
        False, "--hot-comments", help="Attach the top non-owner comment to each video"
    ),
    limit: int = typer.Option(20, "-l", "--limit", help="Maximum videos to show"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.yaml"),
):
    """
    Resolve a channel and list its videos.

    The local cache is consulted first; the YouTube Data API is used on a miss.
    A video URL shows that video's detail instead.
    """
    settings = _load_settings(config)

    async def _run() -> ResultState | VideoDetail | None:
        controller = ChannelVideosController(settings=settings)
        try:
            outcome = await controller.submit(query, channel_id, hot_comments=hot_comments)
            if isinstance(outcome, VideoNavigation):
                return await fetch_video_detail(controller.youtube, outcome.video_id)
            return outcome
        finally:
            controller.close()
            await _close_resources(settings)

    try:
        with console.status(f"Resolving {escape(query)}..."):
            outcome = asyncio.run(_run())
    except Exception as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    if outcome is None:
        rprint("[yellow]Nothing to search for[/yellow]")
        raise typer.Exit(1)

    if isinstance(outcome, VideoDetail):
        _display_video(outcome, as_json)
        return

    if outcome.error:
        rprint(f"[red]✗ Error: {escape(outcome.error)}[/red]")
        raise typer.Exit(1)

    shown = outcome.model_copy(update={"videos": outcome.videos[: max(limit, 0)]})
    if as_json:
        console.print_json(shown.model_dump_json())
        return

    _display_channel(outcome)
    _display_videos(shown, total=len(outcome.videos), hot_comments=hot_comments)


@app.command()
def video(
    video: str = typer.Argument(..., help="Video URL or 11-character video ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.yaml"),
):
    """Show a video's statistics, channel and most relevant comments."""
    settings = _load_settings(config)
    video_id = extract_video_id(video) or video.strip()

    async def _run() -> VideoDetail:
        subscriptions = build_subscription_source(settings)
        youtube = YouTubeDataClient(
            settings=settings,
            key_provider=subscriptions.get_youtube_api_key if subscriptions else None,
        )
        try:
            return await fetch_video_detail(youtube, video_id)
        finally:
            await _close_resources(settings)

    try:
        with console.status(f"Fetching video {escape(video_id)}..."):
            detail = asyncio.run(_run())
    except Exception as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    _display_video(detail, as_json)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "workbench.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


def _display_channel(state: ResultState):
    """Display the channel header."""
    channel = state.channel_metadata
    if channel is None:
        rprint(f"\n[bold blue]{escape(state.channel_name)}[/bold blue]\n")
        return

    subscribed = "✓ subscribed" if state.is_subscribed else ""
    rprint(
        Panel(
            f"[bold]{escape(channel.title)}[/bold] {escape(channel.handle)}\n"
            f"[dim]{channel.id}[/dim]\n"
            f"Subscribers: {format_count(channel.subscriber_count)}  "
            f"Videos: {channel.video_count:,}  "
            f"Views: {format_count(channel.view_count)}  {subscribed}",
            expand=False,
        )
    )


def _display_videos(state: ResultState, total: int, hot_comments: bool):
    """Display the videos table."""
    if not state.videos:
        rprint("\n[yellow]No videos found[/yellow]\n")
        return

    table = Table(title=f"Videos ({len(state.videos)} of {total})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="white", max_width=50)
    table.add_column("Published", style="cyan")
    table.add_column("Duration", justify="right")
    table.add_column("Views", justify="right", style="green")
    table.add_column("Likes", justify="right")
    table.add_column("Comments", justify="right")
    if hot_comments:
        table.add_column("Top comment", max_width=40)

    for index, video in enumerate(state.videos, 1):
        row = [
            str(index),
            escape(video.title),
            video.published_at[:10] or "-",
            format_duration(video.duration),
            f"{video.view_count:,}",
            f"{video.like_count:,}",
            f"{video.comment_count:,}",
        ]
        if hot_comments:
            row.append(escape(video.top_comment.text[:80]) if video.top_comment else "")
        table.add_row(*row)

    console.print(table)


def _display_video(detail: VideoDetail, as_json: bool):
    """Display a video detail."""
    if as_json:
        console.print_json(detail.model_dump_json())
        return

    summary = Table(show_header=False, box=None)
    summary.add_column("Field", style="cyan", width=14)
    summary.add_column("Value", style="white")
    summary.add_row("Title", escape(detail.title))
    summary.add_row("Video ID", detail.id)
    summary.add_row("Channel", escape(detail.channel_title or detail.channel_id or "-"))
    summary.add_row("Published", detail.published_at[:10] or "-")
    summary.add_row("Duration", format_duration(detail.duration))
    summary.add_row("Views", f"{detail.view_count:,}")
    summary.add_row("Likes", f"{detail.like_count:,}")
    summary.add_row("Comments", f"{detail.comment_count:,}")
    if detail.tags:
        summary.add_row("Tags", escape(", ".join(detail.tags)))
    if detail.channel is not None:
        summary.add_row(
            "Subscribers",
            f"{format_count(detail.channel.subscriber_count)} ({escape(detail.channel.handle)})",
        )

    rprint("\n[bold blue]🎬 Video Detail[/bold blue]\n")
    console.print(summary)

    if detail.comments:
        rprint("\n[bold]Top comments:[/bold]")
        for comment in detail.comments:
            rprint(
                f"  [cyan]{escape(comment.author)}[/cyan] "
                f"[dim]👍 {comment.like_count:,} · 💬 {comment.reply_count:,}[/dim]\n"
                f"    {escape(comment.text)}"
            )


if __name__ == "__main__":
    app()
