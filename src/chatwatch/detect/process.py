"""Resolve a tmux window to the agent process running inside it."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from pathlib import Path

import psutil
from loguru import logger

from chatwatch.errors import AgentNotFoundError, PaneNotFoundError
from chatwatch.models import AgentTool

# Process command names of the supported agents.
AGENT_BINARIES: dict[str, AgentTool] = {
    "claude": AgentTool.CLAUDE,
    "codex": AgentTool.CODEX,
}

_SKIPPABLE = (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess)


@dataclass(frozen=True)
class AgentProcess:
    pid: int
    tool: AgentTool
    cwd: Path | None


async def pane_pid(session_name: str, window_index: int, *, tmux_command: str = "tmux") -> int:
    """Ask tmux for the root process of the window's active pane."""
    target = f"{session_name}:{window_index}"
    try:
        process = await asyncio.create_subprocess_exec(
            tmux_command,
            "display-message",
            "-p",
            "-t",
            target,
            "#{pane_pid}",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise PaneNotFoundError(f"failed to run {tmux_command}: {exc}") from exc
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip() or f"exit={process.returncode}"
        raise PaneNotFoundError(f"tmux could not resolve {target}: {detail}")

    raw = stdout.decode("utf-8", errors="replace").strip()
    try:
        return int(raw)
    except ValueError:
        raise PaneNotFoundError(f"invalid pane pid for {target}: {raw!r}") from None


def find_agent(root_pid: int, agents: dict[str, AgentTool] | None = None) -> AgentProcess:
    """Breadth-first walk from ``root_pid`` (inclusive) to the first known agent.

    Processes that exit or deny access mid-walk are skipped.
    """
    agents = AGENT_BINARIES if agents is None else agents
    queue: deque[int] = deque([root_pid])
    seen: set[int] = set()

    while queue:
        pid = queue.popleft()
        if pid in seen:
            continue
        seen.add(pid)
        try:
            process = psutil.Process(pid)
            name = process.name()
        except _SKIPPABLE:
            logger.debug("detect.walk.skip pid={}", pid)
            continue

        tool = agents.get(name)
        if tool is not None:
            try:
                cwd: Path | None = Path(process.cwd())
            except _SKIPPABLE:
                if tool is AgentTool.CLAUDE:
                    # The project log cannot be located without the cwd.
                    logger.debug("detect.walk.no_cwd pid={} name={}", pid, name)
                    continue
                cwd = None
            logger.info("detect.agent pid={} tool={} cwd={}", pid, tool.value, cwd)
            return AgentProcess(pid=pid, tool=tool, cwd=cwd)

        try:
            children = process.children()
        except _SKIPPABLE:
            continue
        queue.extend(child.pid for child in children)

    raise AgentNotFoundError(
        f"no agent ({'/'.join(sorted(agents))}) found among descendants of pane pid {root_pid}"
    )


async def locate(session_name: str, window_index: int, *, tmux_command: str = "tmux") -> AgentProcess:
    root = await pane_pid(session_name, window_index, tmux_command=tmux_command)
    return await asyncio.to_thread(find_agent, root)
