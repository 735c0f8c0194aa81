"""Base channel interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from loguru import logger

from chatwatch.channels.bus import MessageBus
from chatwatch.channels.events import InboundCommand, OutboundEvent
from chatwatch.errors import ProtocolError
from chatwatch.protocol import Command, ProtocolErrorEvent, parse_command


class BaseChannel(ABC):
    """Abstract base class for subscriber transports."""

    name: str = "base"

    def __init__(self, bus: MessageBus) -> None:
        self.bus = bus
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @abstractmethod
    async def start(self) -> None:
        """Start the channel; returns when the channel has no more input."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop the channel."""

    @abstractmethod
    async def send(self, message: OutboundEvent) -> None:
        """Deliver one event to its subscriber."""

    async def submit(self, subscriber_id: str, payload: Mapping[str, Any] | str) -> Command | None:
        """Decode a raw command and publish it; protocol errors are answered directly."""
        try:
            command = parse_command(payload)
        except ProtocolError as exc:
            logger.warning("{}.channel.bad_command subscriber={} error={}", self.name, subscriber_id, exc)
            await self.bus.publish_outbound(OutboundEvent(self.name, subscriber_id, ProtocolErrorEvent(str(exc))))
            return None
        await self.bus.publish_inbound(InboundCommand(self.name, subscriber_id, command))
        return command
