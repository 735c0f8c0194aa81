"""In-process routing of subscriber commands and watch events."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Any

from blinker import Signal

from chatwatch.channels.events import InboundCommand, OutboundEvent

type CommandHandler = Callable[[InboundCommand], Coroutine[Any, Any, None]]
type EventHandler = Callable[[OutboundEvent], Coroutine[Any, Any, None]]
type DisconnectHandler = Callable[[str, str], Coroutine[Any, Any, None]]
type Unsubscribe = Callable[[], None]


def _subscribe(signal: Signal, receiver: Callable[..., Coroutine[Any, Any, None]]) -> Unsubscribe:
    signal.connect(receiver, weak=False)
    return lambda: signal.disconnect(receiver)


class MessageBus:
    """Blinker signals joining channels to the channel manager.

    Commands flow from a channel to the manager, watch events flow back to
    the channel that owns the subscriber, and a disconnect tells the
    manager to close that subscriber's watch. Publishing awaits every
    handler in turn.
    """

    def __init__(self) -> None:
        self._commands = Signal("chatwatch.commands")
        self._events = Signal("chatwatch.events")
        self._disconnects = Signal("chatwatch.disconnects")

    async def publish_inbound(self, message: InboundCommand) -> None:
        await self._commands.send_async(self, message=message)

    async def publish_outbound(self, message: OutboundEvent) -> None:
        await self._events.send_async(self, message=message)

    async def publish_disconnect(self, channel: str, subscriber_id: str) -> None:
        await self._disconnects.send_async(self, channel=channel, subscriber_id=subscriber_id)

    def on_inbound(self, handler: CommandHandler) -> Unsubscribe:
        async def _on_command(sender: Any, *, message: InboundCommand) -> None:
            await handler(message)

        return _subscribe(self._commands, _on_command)

    def on_outbound(self, handler: EventHandler) -> Unsubscribe:
        async def _on_event(sender: Any, *, message: OutboundEvent) -> None:
            await handler(message)

        return _subscribe(self._events, _on_event)

    def on_disconnect(self, handler: DisconnectHandler) -> Unsubscribe:
        async def _on_disconnect(sender: Any, *, channel: str, subscriber_id: str) -> None:
            await handler(channel, subscriber_id)

        return _subscribe(self._disconnects, _on_disconnect)
