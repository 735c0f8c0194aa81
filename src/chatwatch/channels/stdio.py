"""Newline-delimited JSON protocol over standard streams."""

from __future__ import annotations

import asyncio
import sys
import threading
from contextlib import suppress
from typing import TextIO

from loguru import logger

from chatwatch.channels.base import BaseChannel
from chatwatch.channels.bus import MessageBus
from chatwatch.channels.events import OutboundEvent
from chatwatch.protocol import encode_event


class StdioChannel(BaseChannel):
    """Single subscriber speaking one JSON object per line.

    Reading ends at end of input, which counts as the subscriber disconnecting.
    Lines are read on a daemon thread so a blocked read never holds up
    shutdown.
    """

    name = "stdio"

    def __init__(
        self,
        bus: MessageBus,
        *,
        subscriber_id: str = "stdin",
        reader: TextIO | None = None,
        writer: TextIO | None = None,
    ) -> None:
        super().__init__(bus)
        self.subscriber_id = subscriber_id
        self._reader = reader or sys.stdin
        self._writer = writer or sys.stdout
        self._write_lock = asyncio.Lock()
        self._lines: asyncio.Queue[str | None] | None = None

    async def start(self) -> None:
        self._running = True
        loop = asyncio.get_running_loop()
        lines: asyncio.Queue[str | None] = asyncio.Queue()
        self._lines = lines
        threading.Thread(
            target=self._read_lines, args=(loop, lines), name="chatwatch.stdio.reader", daemon=True
        ).start()
        logger.info("stdio.channel.start subscriber={}", self.subscriber_id)
        try:
            while self._running:
                line = await lines.get()
                if line is None:
                    break
                if not line.strip():
                    continue
                await self.submit(self.subscriber_id, line)
        finally:
            self._running = False
            self._lines = None
            await self.bus.publish_disconnect(self.name, self.subscriber_id)
            logger.info("stdio.channel.closed subscriber={}", self.subscriber_id)

    async def stop(self) -> None:
        self._running = False
        if self._lines is not None:
            self._lines.put_nowait(None)

    async def send(self, message: OutboundEvent) -> None:
        async with self._write_lock:
            self._writer.write(encode_event(message.event) + "\n")
            self._writer.flush()

    def _read_lines(self, loop: asyncio.AbstractEventLoop, lines: asyncio.Queue[str | None]) -> None:
        # Runs on the reader thread; None marks end of input.
        try:
            while line := self._reader.readline():
                loop.call_soon_threadsafe(lines.put_nowait, line)
        except (OSError, ValueError) as exc:
            logger.warning("stdio.channel.read_error subscriber={} error={}", self.subscriber_id, exc)
        finally:
            # The loop may already be closed after shutdown.
            with suppress(RuntimeError):
                loop.call_soon_threadsafe(lines.put_nowait, None)
