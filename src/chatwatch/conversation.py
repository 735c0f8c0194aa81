"""Subscriber-side view of a watched conversation."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from chatwatch.models import ContentBlock, Message, Role, TextBlock


@dataclass
class Turn:
    """Consecutive messages of one role, displayed together."""

    role: Role
    blocks: list[ContentBlock] = field(default_factory=list)
    timestamp: datetime | None = None


class ConversationView:
    """Coalesce same-role messages and hide the log echo of locally sent input.

    Input typed by the local user is shown right away (``note_local_input``)
    and remembered as a pending echo. When the agent later logs the same
    trimmed text as a user message, that one message is dropped and the
    pending entry is consumed.
    """

    def __init__(self, pending_limit: int = 16) -> None:
        self.turns: list[Turn] = []
        self._pending: deque[str] = deque(maxlen=pending_limit)

    @property
    def pending_echoes(self) -> tuple[str, ...]:
        return tuple(self._pending)

    def load_history(self, messages: Iterable[Message]) -> None:
        self.turns.clear()
        self._pending.clear()
        for message in messages:
            self._merge(message)

    def note_local_input(self, text: str) -> bool:
        stripped = text.strip()
        if not stripped:
            return False
        self._pending.append(stripped)
        self._merge(Message(role="user", blocks=(TextBlock(stripped),)))
        return True

    def apply(self, message: Message) -> bool:
        """Add an incremental message. Returns ``False`` when it was an echo of local input."""
        if message.role == "user" and self._consume_echo(message):
            return False
        self._merge(message)
        return True

    def _consume_echo(self, message: Message) -> bool:
        text = message.text.strip()
        if not text or text not in self._pending:
            return False
        self._pending.remove(text)
        return True

    def _merge(self, message: Message) -> None:
        last = self.turns[-1] if self.turns else None
        if last is not None and last.role == message.role:
            last.blocks.extend(message.blocks)
            return
        self.turns.append(Turn(role=message.role, blocks=list(message.blocks), timestamp=message.timestamp))
