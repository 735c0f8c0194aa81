"""Inbound commands and outbound events exchanged with subscribers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from chatwatch.errors import ProtocolError
from chatwatch.models import AgentTool, Message

WATCH_COMMAND = "watch-chat-log"
UNWATCH_COMMAND = "unwatch-chat-log"


@dataclass(frozen=True)
class WatchCommand:
    session_name: str
    window_index: int

    @property
    def target(self) -> str:
        return f"{self.session_name}:{self.window_index}"


@dataclass(frozen=True)
class UnwatchCommand:
    pass


type Command = WatchCommand | UnwatchCommand


@dataclass(frozen=True)
class ChatHistory:
    """Backfill batch, always the first event of a watch."""

    messages: tuple[Message, ...]
    tool: AgentTool | None
    watch_id: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "chat-history",
            "messages": [message.to_payload() for message in self.messages],
            "tool": self.tool.value if self.tool else None,
        }


@dataclass(frozen=True)
class ChatEvent:
    message: Message
    watch_id: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {"type": "chat-event", "message": self.message.to_payload()}


@dataclass(frozen=True)
class ChatLogError:
    """Terminal failure of one watch attempt."""

    error: str
    watch_id: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {"type": "chat-log-error", "error": self.error}


type ServerEvent = ChatHistory | ChatEvent | ChatLogError


@dataclass(frozen=True)
class ProtocolErrorEvent:
    """Reply to a command that could not be decoded. Not tied to any watch."""

    error: str
    watch_id: int | None = field(default=None)

    def to_payload(self) -> dict[str, Any]:
        return {"type": "error", "error": self.error}


def parse_command(payload: Mapping[str, Any] | str) -> Command:
    """Decode one inbound command from its JSON form."""
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ProtocolError(f"invalid JSON: {exc.msg}") from exc
    if not isinstance(payload, Mapping):
        raise ProtocolError("command must be a JSON object")

    kind = payload.get("type")
    if kind == UNWATCH_COMMAND:
        return UnwatchCommand()
    if kind != WATCH_COMMAND:
        raise ProtocolError(f"unknown command type: {kind!r}")

    session_name = payload.get("sessionName")
    window_index = payload.get("windowIndex")
    if not isinstance(session_name, str) or not session_name:
        raise ProtocolError("sessionName must be a non-empty string")
    # bool is an int subclass
    if not isinstance(window_index, int) or isinstance(window_index, bool) or window_index < 0:
        raise ProtocolError("windowIndex must be a non-negative integer")
    return WatchCommand(session_name=session_name, window_index=window_index)


def encode_event(event: ServerEvent | ProtocolErrorEvent) -> str:
    return json.dumps(event.to_payload(), ensure_ascii=False)
