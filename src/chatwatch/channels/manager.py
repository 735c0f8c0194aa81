"""Channel manager."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from chatwatch.channels.base import BaseChannel
from chatwatch.channels.bus import MessageBus
from chatwatch.channels.events import InboundCommand, OutboundEvent
from chatwatch.config import Settings
from chatwatch.protocol import ServerEvent, UnwatchCommand, WatchCommand
from chatwatch.supervisor import EventSink, WatchSupervisor

type SupervisorFactory = Callable[[str, EventSink], WatchSupervisor]


class ChannelManager:
    """Route subscriber commands to their supervisor and deliver its events.

    Holds one ``WatchSupervisor`` per subscriber; a supervisor is only
    replaced after the previous one has been closed.
    """

    def __init__(
        self,
        bus: MessageBus,
        settings: Settings,
        *,
        supervisor_factory: SupervisorFactory | None = None,
    ) -> None:
        self.bus = bus
        self.settings = settings
        self._supervisor_factory = supervisor_factory or self._default_supervisor
        self._channels: dict[str, BaseChannel] = {}
        self._supervisors: dict[str, WatchSupervisor] = {}
        self._tasks: list[asyncio.Task[None]] = []
        self._unsubscribers: list[Callable[[], None]] = []

    def register(self, channel: BaseChannel) -> None:
        self._channels[channel.name] = channel

    @property
    def channels(self) -> dict[str, BaseChannel]:
        return dict(self._channels)

    @property
    def supervisors(self) -> dict[str, WatchSupervisor]:
        return dict(self._supervisors)

    async def start(self) -> None:
        self._unsubscribers = [
            self.bus.on_inbound(self._handle_inbound),
            self.bus.on_outbound(self._handle_outbound),
            self.bus.on_disconnect(self._handle_disconnect),
        ]
        for channel in self._channels.values():
            self._tasks.append(asyncio.create_task(channel.start(), name=f"chatwatch.channel:{channel.name}"))
        logger.info("manager.start channels={}", ",".join(self._channels) or "-")

    async def wait_closed(self) -> None:
        """Wait until any channel runs out of input."""
        if not self._tasks:
            return
        done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]

    async def stop(self) -> None:
        for channel in self._channels.values():
            await channel.stop()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                continue
            except Exception:
                logger.exception("manager.channel.error")
        self._tasks.clear()
        supervisors, self._supervisors = self._supervisors, {}
        for supervisor in supervisors.values():
            await supervisor.close()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        logger.info("manager.stopped")

    async def _handle_inbound(self, message: InboundCommand) -> None:
        supervisor = self._supervisor_for(message.channel, message.subscriber_id)
        match message.command:
            case WatchCommand(session_name=session_name, window_index=window_index):
                await supervisor.watch(session_name, window_index)
            case UnwatchCommand():
                await supervisor.unwatch()

    async def _handle_outbound(self, message: OutboundEvent) -> None:
        channel = self._channels.get(message.channel)
        if channel is None:
            return
        if message.watch_id is not None:
            supervisor = self._supervisors.get(message.subscriber_key)
            if supervisor is None or not supervisor.is_current(message.watch_id):
                logger.debug("manager.drop_stale subscriber={} watch_id={}", message.subscriber_key, message.watch_id)
                return
        await channel.send(message)

    async def _handle_disconnect(self, channel: str, subscriber_id: str) -> None:
        supervisor = self._supervisors.pop(f"{channel}:{subscriber_id}", None)
        if supervisor is not None:
            await supervisor.close()
            logger.info("manager.subscriber.closed channel={} subscriber={}", channel, subscriber_id)

    def _supervisor_for(self, channel: str, subscriber_id: str) -> WatchSupervisor:
        key = f"{channel}:{subscriber_id}"
        supervisor = self._supervisors.get(key)
        if supervisor is None:

            async def sink(event: ServerEvent) -> None:
                await self.bus.publish_outbound(OutboundEvent(channel, subscriber_id, event))

            supervisor = self._supervisor_factory(key, sink)
            self._supervisors[key] = supervisor
        return supervisor

    def _default_supervisor(self, subscriber_key: str, sink: EventSink) -> WatchSupervisor:
        return WatchSupervisor(subscriber_key, sink, self.settings)
