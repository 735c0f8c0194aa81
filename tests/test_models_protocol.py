import json

import pytest

from chatwatch.errors import ProtocolError
from chatwatch.models import AgentTool, Message, TextBlock, ToolCallBlock, ToolResultBlock
from chatwatch.protocol import (
    ChatEvent,
    ChatHistory,
    ChatLogError,
    ProtocolErrorEvent,
    UnwatchCommand,
    WatchCommand,
    encode_event,
    parse_command,
)


def test_message_requires_blocks_and_known_role() -> None:
    with pytest.raises(ValueError):
        Message(role="user", blocks=())
    with pytest.raises(ValueError):
        Message(role="system", blocks=(TextBlock("x"),))  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        TextBlock("")


def test_message_text_joins_text_blocks_only() -> None:
    message = Message(
        role="assistant",
        blocks=(TextBlock("first"), ToolCallBlock(name="Bash", summary="ls"), TextBlock("second")),
    )
    assert message.text == "first\nsecond"


def test_message_payload_uses_wire_names() -> None:
    message = Message(
        role="assistant",
        blocks=(
            ToolCallBlock(name="Bash", summary="ls", input={"command": "ls"}),
            ToolResultBlock(tool_name="Bash", summary="2 lines", content="a\nb"),
            ToolResultBlock(tool_name="Read", summary="no output"),
        ),
    )

    assert message.to_payload() == {
        "role": "assistant",
        "timestamp": None,
        "blocks": [
            {"type": "tool_call", "name": "Bash", "summary": "ls", "input": {"command": "ls"}},
            {"type": "tool_result", "toolName": "Bash", "summary": "2 lines", "content": "a\nb"},
            {"type": "tool_result", "toolName": "Read", "summary": "no output"},
        ],
    }


def test_parse_watch_command() -> None:
    command = parse_command('{"type": "watch-chat-log", "sessionName": "dev", "windowIndex": 2}')

    assert command == WatchCommand(session_name="dev", window_index=2)
    assert command.target == "dev:2"
    assert parse_command({"type": "unwatch-chat-log"}) == UnwatchCommand()


@pytest.mark.parametrize(
    "payload",
    [
        "{broken",
        "[1, 2]",
        {"type": "subscribe"},
        {"type": "watch-chat-log", "sessionName": "", "windowIndex": 0},
        {"type": "watch-chat-log", "sessionName": "dev", "windowIndex": -1},
        {"type": "watch-chat-log", "sessionName": "dev", "windowIndex": True},
        {"type": "watch-chat-log", "sessionName": "dev", "windowIndex": "1"},
    ],
)
def test_parse_command_rejects_malformed_input(payload) -> None:
    with pytest.raises(ProtocolError):
        parse_command(payload)


def test_encode_events() -> None:
    message = Message(role="user", blocks=(TextBlock("hi"),))

    history = json.loads(encode_event(ChatHistory((message,), AgentTool.CODEX, watch_id=4)))
    assert history == {
        "type": "chat-history",
        "messages": [{"role": "user", "timestamp": None, "blocks": [{"type": "text", "text": "hi"}]}],
        "tool": "codex",
    }
    assert json.loads(encode_event(ChatEvent(message)))["type"] == "chat-event"
    assert json.loads(encode_event(ChatLogError("gone"))) == {"type": "chat-log-error", "error": "gone"}
    assert json.loads(encode_event(ProtocolErrorEvent("bad"))) == {"type": "error", "error": "bad"}
