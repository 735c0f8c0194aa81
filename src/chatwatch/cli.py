"""Command line entry points."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console

from chatwatch.channels import BaseChannel, ChannelManager, MessageBus, StdioChannel, TerminalChannel
from chatwatch.config import Settings, load_settings
from chatwatch.detect import detect_source
from chatwatch.errors import ConfigurationError, DetectionError
from chatwatch.logging_utils import LogProfile, configure_logging
from chatwatch.models import AgentTool
from chatwatch.parsers import parser_for

app = typer.Typer(
    name="chatwatch",
    help="Follow the conversation of a coding agent running inside tmux.",
    add_completion=False,
)


def _setup(profile: LogProfile, log_level: str | None, summary_max_chars: int | None) -> Settings:
    try:
        settings = load_settings(log_level=log_level, summary_max_chars=summary_max_chars)
    except ConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(2) from exc
    configure_logging(profile=profile, level=settings.log_level)
    return settings


async def _run_channels(bus: MessageBus, settings: Settings, *channels: BaseChannel) -> None:
    manager = ChannelManager(bus, settings)
    for channel in channels:
        manager.register(channel)
    await manager.start()
    try:
        await manager.wait_closed()
    finally:
        await manager.stop()


@app.command()
def watch(
    session: str = typer.Argument(..., help="tmux session name"),
    window: int = typer.Argument(..., min=0, help="tmux window index"),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level, e.g. DEBUG"),
    summary_max_chars: int | None = typer.Option(None, "--summary-max-chars", help="Maximum summary length"),
) -> None:
    """Render the live conversation of one tmux window."""
    settings = _setup("console", log_level, summary_max_chars)
    bus = MessageBus()
    channel = TerminalChannel(bus, session, window, console=Console(), pending_limit=settings.pending_echo_limit)
    try:
        asyncio.run(_run_channels(bus, settings, channel))
    except KeyboardInterrupt:
        return
    if channel.error is not None:
        raise typer.Exit(1)


@app.command()
def serve(
    log_level: str | None = typer.Option(None, "--log-level", help="Log level, e.g. DEBUG"),
    summary_max_chars: int | None = typer.Option(None, "--summary-max-chars", help="Maximum summary length"),
) -> None:
    """Speak the JSON watch protocol on stdin and stdout."""
    settings = _setup("default", log_level, summary_max_chars)
    bus = MessageBus()
    try:
        asyncio.run(_run_channels(bus, settings, StdioChannel(bus)))
    except KeyboardInterrupt:
        return


@app.command()
def detect(
    session: str = typer.Argument(..., help="tmux session name"),
    window: int = typer.Argument(..., min=0, help="tmux window index"),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level, e.g. DEBUG"),
) -> None:
    """Print the agent and log file found for one tmux window."""
    settings = _setup("default", log_level, None)
    try:
        source = asyncio.run(detect_source(session, window, settings))
    except DetectionError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(f"{source.tool.value}\t{source.path}")


@app.command()
def parse(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Log file to read"),  # noqa: B008
    tool: AgentTool = typer.Option(..., "--tool", help="Grammar the log is written in"),  # noqa: B008
    log_level: str | None = typer.Option(None, "--log-level", help="Log level, e.g. DEBUG"),
    summary_max_chars: int | None = typer.Option(None, "--summary-max-chars", help="Maximum summary length"),
) -> None:
    """Print the normalized messages of a log file as JSON lines."""
    settings = _setup("default", log_level, summary_max_chars)
    parser = parser_for(tool, max_chars=settings.summary_max_chars)
    with path.open(encoding="utf-8", errors="replace") as handle:
        for line in handle:
            message = parser(line)
            if message is not None:
                typer.echo(json.dumps(message.to_payload(), ensure_ascii=False))
