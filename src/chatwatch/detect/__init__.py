"""Agent and log file detection for one tmux window."""

from __future__ import annotations

import asyncio

from loguru import logger

from chatwatch.config import Settings
from chatwatch.detect.locators import find_claude_log, find_sidecar_log
from chatwatch.detect.process import AGENT_BINARIES, AgentProcess, find_agent, locate, pane_pid
from chatwatch.errors import LogNotFoundError
from chatwatch.models import AgentTool, DetectedSource


def locate_log(agent: AgentProcess, settings: Settings) -> DetectedSource:
    if agent.tool is AgentTool.CLAUDE:
        if agent.cwd is None:
            raise LogNotFoundError(f"working directory of pid {agent.pid} is unknown")
        path = find_claude_log(agent.cwd, settings.claude_projects_dir)
    else:
        path = find_sidecar_log(settings.sidecar_dir, settings.sidecar_glob)
    return DetectedSource(path=path, tool=agent.tool, pid=agent.pid)


async def detect_source(session_name: str, window_index: int, settings: Settings) -> DetectedSource:
    """Run the full detection pipeline. Not retried; failures raise ``DetectionError``."""
    agent = await locate(session_name, window_index, tmux_command=settings.tmux_command)
    source = await asyncio.to_thread(locate_log, agent, settings)
    logger.info("detect.log tool={} path={}", source.tool.value, source.path)
    return source


__all__ = [
    "AGENT_BINARIES",
    "AgentProcess",
    "detect_source",
    "find_agent",
    "locate",
    "locate_log",
    "pane_pid",
]
