"""Channel adapters and bus exports."""

from chatwatch.channels.base import BaseChannel
from chatwatch.channels.bus import MessageBus
from chatwatch.channels.events import InboundCommand, OutboundEvent
from chatwatch.channels.manager import ChannelManager
from chatwatch.channels.stdio import StdioChannel
from chatwatch.channels.terminal import TerminalChannel

__all__ = [
    "BaseChannel",
    "ChannelManager",
    "InboundCommand",
    "MessageBus",
    "OutboundEvent",
    "StdioChannel",
    "TerminalChannel",
]
