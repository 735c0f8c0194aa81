"""Channel bus event models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from chatwatch.protocol import Command, ProtocolErrorEvent, ServerEvent


@dataclass(frozen=True)
class InboundCommand:
    """Command received from one subscriber of a channel."""

    channel: str
    subscriber_id: str
    command: Command
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def subscriber_key(self) -> str:
        return f"{self.channel}:{self.subscriber_id}"


@dataclass(frozen=True)
class OutboundEvent:
    """Event to be delivered to one subscriber of a channel."""

    channel: str
    subscriber_id: str
    event: ServerEvent | ProtocolErrorEvent

    @property
    def subscriber_key(self) -> str:
        return f"{self.channel}:{self.subscriber_id}"

    @property
    def watch_id(self) -> int | None:
        return self.event.watch_id
