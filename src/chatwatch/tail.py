"""Incremental reader for a log file that another process keeps appending to."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator, Callable
from contextlib import suppress
from pathlib import Path
from typing import BinaryIO

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from chatwatch.errors import LogUnreadableError
from chatwatch.models import DetectedSource, Message
from chatwatch.parsers import Parser

_RELEVANT_EVENTS = frozenset({"modified", "created", "deleted", "moved", "closed"})
_OBSERVER_JOIN_SECONDS = 2.0


class _LogFileHandler(FileSystemEventHandler):
    """Forward changes of one file inside a watched directory."""

    def __init__(self, path: Path, notify: Callable[[], None]) -> None:
        self._path = os.fsdecode(path)
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _RELEVANT_EVENTS:
            return
        paths = {os.fsdecode(event.src_path), os.fsdecode(getattr(event, "dest_path", "") or "")}
        if self._path in paths:
            self._notify()


class LogTailer:
    """Own the open handle, read offset and pending partial line of one watch.

    ``backfill()`` reads everything present at attach time; ``follow()`` then
    yields messages parsed from lines appended afterwards. A trailing line
    without ``\\n`` is held back until its terminator arrives.
    """

    def __init__(
        self,
        source: DetectedSource,
        parser: Parser,
        *,
        poll_interval: float = 1.0,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        self.source = source
        self._path = source.path.absolute()
        self._parser = parser
        self._poll_interval = poll_interval
        self._observer_factory = observer_factory
        self._handle: BinaryIO | None = None
        self._identity: tuple[int, int] | None = None
        self._offset = 0
        self._pending = b""
        self._backfilled = False
        self._observer: BaseObserver | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._changes: asyncio.Queue[None] | None = None

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    async def __aenter__(self) -> LogTailer:
        self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        if self._handle is not None:
            return
        try:
            handle = self._path.open("rb")
        except OSError as exc:
            raise LogUnreadableError(f"failed to open log file {self._path}: {exc}") from exc
        info = os.fstat(handle.fileno())
        self._handle = handle
        self._identity = (info.st_dev, info.st_ino)
        self._loop = asyncio.get_running_loop()
        self._changes = asyncio.Queue()
        self._start_observer()

    def close(self) -> None:
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(_OBSERVER_JOIN_SECONDS)
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()
            logger.debug("tail.close path={} offset={}", self._path, self._offset)
        self._loop = None
        self._changes = None

    def _start_observer(self) -> None:
        observer = self._observer_factory()
        try:
            observer.schedule(_LogFileHandler(self._path, self._notify), str(self._path.parent), recursive=False)
            observer.start()
        except OSError as exc:
            logger.warning("tail.observer.unavailable path={} error={} fallback=poll", self._path, exc)
            return
        self._observer = observer

    def _notify(self) -> None:
        # Runs on the observer thread.
        loop, changes = self._loop, self._changes
        if loop is None or changes is None:
            return
        # The loop may already be closed while the observer shuts down.
        with suppress(RuntimeError):
            loop.call_soon_threadsafe(changes.put_nowait, None)

    def backfill(self) -> list[Message]:
        """Parse every complete line present now. Only valid once per tailer."""
        if self._backfilled:
            raise RuntimeError("backfill was already read")
        messages = self._parse(self._read_lines())
        self._backfilled = True
        logger.info("tail.attach path={} backfill={} offset={}", self._path, len(messages), self._offset)
        return messages

    async def follow(self) -> AsyncIterator[Message]:
        """Yield messages from appended lines until cancelled or the file becomes unreadable."""
        if not self._backfilled:
            raise RuntimeError("backfill must be read before following")
        changes = self._changes
        if changes is None:
            raise RuntimeError("tailer is not open")

        while True:
            try:
                await asyncio.wait_for(changes.get(), timeout=self._poll_interval)
            except TimeoutError:
                pass
            # One read covers a burst of notifications.
            while not changes.empty():
                changes.get_nowait()

            for message in self._parse(self._read_lines()):
                yield message
            self._check_source()

    def _read_lines(self) -> list[str]:
        handle = self._handle
        if handle is None:
            raise RuntimeError("tailer is not open")
        try:
            chunk = handle.read()
        except OSError as exc:
            raise LogUnreadableError(f"failed to read log file {self._path}: {exc}") from exc
        if not chunk:
            return []
        self._offset += len(chunk)
        *complete, self._pending = (self._pending + chunk).split(b"\n")
        return [raw.decode("utf-8", errors="replace") for raw in complete if raw.strip()]

    def _parse(self, lines: list[str]) -> list[Message]:
        messages: list[Message] = []
        for line in lines:
            message = self._parser(line)
            if message is not None:
                messages.append(message)
        return messages

    def _check_source(self) -> None:
        try:
            info = self._path.stat()
        except FileNotFoundError:
            raise LogUnreadableError(f"log file was removed: {self._path}") from None
        except OSError as exc:
            raise LogUnreadableError(f"log file is unreadable: {self._path}: {exc}") from exc
        if (info.st_dev, info.st_ino) != self._identity:
            raise LogUnreadableError(f"log file was replaced: {self._path}")
        if info.st_size < self._offset:
            raise LogUnreadableError(f"log file was truncated: {self._path}")
