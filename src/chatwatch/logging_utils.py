"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from logging import Handler
from typing import Literal

import loguru
from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "console"]

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "console": "{extra[watch]} | {message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[watch]} | {message}",
}
_CONFIGURED_PROFILE: LogProfile | None = None
_current_watch: ContextVar[str] = ContextVar("chatwatch_watch", default="-")


def current_watch() -> str:
    return _current_watch.get()


@contextmanager
def watch_context(label: str) -> Iterator[None]:
    """Tag log records emitted inside the block with the watch label."""
    token = _current_watch.set(label)
    try:
        yield
    finally:
        _current_watch.reset(token)


def _build_console_handler() -> Handler:
    return RichHandler(
        console=get_console(),
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Configure process-level logging once."""

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["watch"] = current_watch()

    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    level = (level or os.getenv("CHATWATCH_LOG_LEVEL", "INFO")).upper()
    logger.remove()
    if profile == "console":
        logger.add(
            _build_console_handler(),
            level=level,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    logger.configure(patcher=inject_context)
    _CONFIGURED_PROFILE = profile
