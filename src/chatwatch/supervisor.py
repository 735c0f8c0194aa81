"""Per-subscriber watch lifecycle: at most one detection+tail task at a time."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum

from loguru import logger

from chatwatch.config import Settings
from chatwatch.detect import detect_source
from chatwatch.errors import ChatWatchError
from chatwatch.logging_utils import watch_context
from chatwatch.models import DetectedSource
from chatwatch.parsers import parser_for
from chatwatch.protocol import ChatEvent, ChatHistory, ChatLogError, ServerEvent
from chatwatch.tail import LogTailer

type EventSink = Callable[[ServerEvent], Awaitable[None]]
type Detector = Callable[[str, int], Awaitable[DetectedSource]]
type TailerFactory = Callable[[DetectedSource], LogTailer]


class WatchState(StrEnum):
    IDLE = "idle"
    DETECTING = "detecting"
    WATCHING = "watching"
    FAILED = "failed"


class WatchSupervisor:
    """Own the single live watch of one subscriber.

    Every watch gets a fresh ``watch_id``. Events are only handed to the sink
    while their watch is current, so nothing from a cancelled or superseded
    watch reaches the subscriber.
    """

    def __init__(
        self,
        subscriber_id: str,
        sink: EventSink,
        settings: Settings,
        *,
        detector: Detector | None = None,
        tailer_factory: TailerFactory | None = None,
    ) -> None:
        self.subscriber_id = subscriber_id
        self.settings = settings
        self._sink = sink
        self._detector = detector or self._detect
        self._tailer_factory = tailer_factory or self._build_tailer
        self._state = WatchState.IDLE
        self._watch_id = 0
        self._target: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def watch_id(self) -> int:
        return self._watch_id

    @property
    def target(self) -> str | None:
        return self._target

    def is_current(self, watch_id: int | None) -> bool:
        return watch_id is not None and watch_id == self._watch_id and self._task is not None

    async def watch(self, session_name: str, window_index: int) -> int:
        """Cancel any running watch, then start a new one. Returns its ``watch_id``."""
        async with self._lock:
            await self._cancel_current()
            self._watch_id += 1
            watch_id = self._watch_id
            self._target = f"{session_name}:{window_index}"
            self._state = WatchState.DETECTING
            logger.info("watch.start subscriber={} target={} watch_id={}", self.subscriber_id, self._target, watch_id)
            self._task = asyncio.create_task(
                self._run(watch_id, session_name, window_index),
                name=f"chatwatch:{self.subscriber_id}:{watch_id}",
            )
            return watch_id

    async def unwatch(self) -> None:
        async with self._lock:
            if self._task is not None:
                logger.info("watch.stop subscriber={} target={}", self.subscriber_id, self._target)
            await self._cancel_current()
            self._state = WatchState.IDLE
            self._target = None

    async def close(self) -> None:
        await self.unwatch()

    async def _cancel_current(self) -> None:
        task, self._task = self._task, None
        # Invalidate before awaiting so nothing queued by the old task gets through.
        self._watch_id += 1
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("watch.task_error subscriber={}", self.subscriber_id)

    async def _run(self, watch_id: int, session_name: str, window_index: int) -> None:
        with watch_context(f"{session_name}:{window_index}"):
            try:
                source = await self._detector(session_name, window_index)
                async with self._tailer_factory(source) as tailer:
                    history = tailer.backfill()
                    await self._emit(watch_id, ChatHistory(tuple(history), source.tool, watch_id=watch_id))
                    if watch_id == self._watch_id:
                        self._state = WatchState.WATCHING
                    async for message in tailer.follow():
                        await self._emit(watch_id, ChatEvent(message, watch_id=watch_id))
            except ChatWatchError as exc:
                logger.warning("watch.failed subscriber={} error={}", self.subscriber_id, exc)
                await self._fail(watch_id, str(exc))
            except Exception as exc:
                logger.exception("watch.crashed subscriber={}", self.subscriber_id)
                await self._fail(watch_id, f"internal error: {exc}")

    async def _emit(self, watch_id: int, event: ServerEvent) -> None:
        if watch_id != self._watch_id:
            logger.debug("watch.drop_stale subscriber={} watch_id={}", self.subscriber_id, watch_id)
            return
        await self._sink(event)

    async def _fail(self, watch_id: int, error: str) -> None:
        if watch_id != self._watch_id:
            return
        self._state = WatchState.FAILED
        await self._sink(ChatLogError(error, watch_id=watch_id))

    async def _detect(self, session_name: str, window_index: int) -> DetectedSource:
        return await detect_source(session_name, window_index, self.settings)

    def _build_tailer(self, source: DetectedSource) -> LogTailer:
        parser = parser_for(source.tool, max_chars=self.settings.summary_max_chars)
        return LogTailer(source, parser, poll_interval=self.settings.poll_interval_seconds)
