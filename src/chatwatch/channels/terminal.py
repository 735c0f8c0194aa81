"""Human-readable rendering of one watch."""

from __future__ import annotations

import asyncio

from loguru import logger
from rich.console import Console
from rich.text import Text

from chatwatch.channels.base import BaseChannel
from chatwatch.channels.bus import MessageBus
from chatwatch.channels.events import InboundCommand, OutboundEvent
from chatwatch.conversation import ConversationView, Turn
from chatwatch.models import ContentBlock, TextBlock, ToolCallBlock, ToolResultBlock
from chatwatch.protocol import ChatEvent, ChatHistory, ChatLogError, ProtocolErrorEvent, WatchCommand

_ROLE_STYLES = {"user": ("You", "bold cyan"), "assistant": ("Agent", "bold yellow")}


class TerminalChannel(BaseChannel):
    """Watch a single tmux window and print its conversation as it grows."""

    name = "terminal"

    def __init__(
        self,
        bus: MessageBus,
        session_name: str,
        window_index: int,
        *,
        console: Console | None = None,
        pending_limit: int = 16,
    ) -> None:
        super().__init__(bus)
        self.command = WatchCommand(session_name=session_name, window_index=window_index)
        self.console = console or Console()
        self.view = ConversationView(pending_limit=pending_limit)
        self.error: str | None = None
        self._done = asyncio.Event()
        self._rendered_turns = 0

    @property
    def subscriber_id(self) -> str:
        return self.command.target

    async def start(self) -> None:
        self._running = True
        self._done.clear()
        await self.bus.publish_inbound(InboundCommand(self.name, self.subscriber_id, self.command))
        await self._done.wait()
        self._running = False

    async def stop(self) -> None:
        self._running = False
        self._done.set()

    async def send(self, message: OutboundEvent) -> None:
        match message.event:
            case ChatHistory(messages=messages, tool=tool):
                self.view.load_history(messages)
                self._rendered_turns = 0
                label = tool.value if tool else "unknown"
                self.console.print(Text(f"watching {self.subscriber_id} ({label})", style="dim"))
                for turn in self.view.turns:
                    self._render_turn(turn)
                self._rendered_turns = len(self.view.turns)
            case ChatEvent(message=chat_message):
                if not self.view.apply(chat_message):
                    return
                self._render_tail(len(chat_message.blocks))
            case ChatLogError(error=error) | ProtocolErrorEvent(error=error):
                self.error = error
                self.console.print(Text.assemble(("Error: ", "bold red"), error))
                logger.warning("terminal.channel.error target={} error={}", self.subscriber_id, error)
                self._done.set()

    def note_local_input(self, text: str) -> None:
        """Show text sent to the agent from here before the agent logs it.

        The channel reads no keyboard input itself. Code embedding it that
        forwards user input to the agent (for example with ``tmux send-keys``)
        calls this so the later log echo of the same text is not shown twice.
        """
        if self.view.note_local_input(text):
            self._render_tail(1)

    def _render_tail(self, block_count: int) -> None:
        last = self.view.turns[-1]
        if len(self.view.turns) > self._rendered_turns:
            self._rendered_turns = len(self.view.turns)
            self._render_turn(last)
            return
        for block in last.blocks[-block_count:]:
            self.console.print(render_block(block))

    def _render_turn(self, turn: Turn) -> None:
        label, style = _ROLE_STYLES[turn.role]
        self.console.print(Text(f"{label}:", style=style))
        for block in turn.blocks:
            self.console.print(render_block(block))


def render_block(block: ContentBlock) -> Text:
    match block:
        case TextBlock(text=text):
            return Text(text)
        case ToolCallBlock(name=name, summary=summary):
            return Text.assemble(("  > ", "dim"), (name, "magenta"), f" {summary}")
        case ToolResultBlock(summary=summary):
            return Text(f"    = {summary}", style="dim")
    raise TypeError(f"unsupported block: {block!r}")
