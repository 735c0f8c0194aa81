"""Filesystem conventions used to find each agent's log file."""

from __future__ import annotations

import re
import stat
from collections.abc import Iterable
from pathlib import Path

from chatwatch.errors import LogNotFoundError

LOG_SUFFIX = ".jsonl"

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def encode_project_dir(cwd: Path) -> str:
    """Claude Code keys project folders by the absolute cwd with ``/`` turned into ``-``."""
    return str(cwd).replace("/", "-")


def _normalized_project_dir(cwd: Path) -> str:
    return _NON_ALNUM.sub("-", str(cwd))


def newest(paths: Iterable[Path]) -> Path | None:
    """Most recently modified file among ``paths``; files that vanish are ignored."""
    best: tuple[float, Path] | None = None
    for path in paths:
        try:
            info = path.stat()
        except OSError:
            continue
        if not stat.S_ISREG(info.st_mode):
            continue
        if best is None or info.st_mtime > best[0]:
            best = (info.st_mtime, path)
    return best[1] if best else None


def resolve_project_dir(projects_root: Path, cwd: Path) -> Path:
    if not projects_root.is_dir():
        raise LogNotFoundError(f"Claude projects directory does not exist: {projects_root}")

    exact = projects_root / encode_project_dir(cwd)
    if exact.is_dir():
        return exact

    normalized = _normalized_project_dir(cwd)
    for entry in projects_root.iterdir():
        if entry.is_dir() and entry.name == normalized:
            return entry
    raise LogNotFoundError(f"no Claude project directory for {cwd} in {projects_root}")


def find_claude_log(cwd: Path, projects_root: Path) -> Path:
    project_dir = resolve_project_dir(projects_root, cwd)
    log = newest(project_dir.glob(f"*{LOG_SUFFIX}"))
    if log is None:
        raise LogNotFoundError(f"no {LOG_SUFFIX} files in {project_dir}")
    return log


def find_sidecar_log(sidecar_dir: Path, pattern: str) -> Path:
    """Newest sidecar log system-wide.

    The sidecar name does not identify the process that wrote it, so two
    concurrent sessions of the same agent can be confused.
    """
    if not sidecar_dir.is_dir():
        raise LogNotFoundError(f"sidecar directory does not exist: {sidecar_dir}")
    log = newest(sidecar_dir.glob(pattern))
    if log is None:
        raise LogNotFoundError(f"no {pattern} files found in {sidecar_dir}")
    return log
