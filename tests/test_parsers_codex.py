import json

import pytest

from chatwatch.models import TextBlock, ToolCallBlock, ToolResultBlock
from chatwatch.parsers.codex import parse_record


def _completed(item: dict) -> str:
    return json.dumps({"type": "item.completed", "item": item}) + "\n"


def test_agent_message() -> None:
    message = parse_record(_completed({"id": "i1", "type": "agent_message", "text": "All tests pass."}))

    assert message is not None
    assert message.role == "assistant"
    assert message.timestamp is None
    assert message.blocks == (TextBlock("All tests pass."),)


def test_command_execution_with_output() -> None:
    message = parse_record(
        _completed({
            "type": "command_execution",
            "command": "pytest -q",
            "aggregated_output": "3 passed\n0 failed\n",
            "exit_code": 0,
        })
    )

    assert message is not None
    assert message.blocks == (
        ToolCallBlock(name="Bash", summary="pytest -q", input={"command": "pytest -q"}),
        ToolResultBlock(tool_name="Bash", summary="2 lines", content="3 passed\n0 failed\n"),
    )


def test_command_execution_without_output() -> None:
    message = parse_record(_completed({"type": "command_execution", "command": "true", "aggregated_output": ""}))

    assert message is not None
    assert len(message.blocks) == 1


def test_file_change_summaries() -> None:
    single = parse_record(_completed({"type": "file_change", "changes": [{"path": "src/a.py", "kind": "update"}]}))
    several = parse_record(
        _completed({"type": "file_change", "changes": [{"path": "a.py"}, {"path": "b.py"}, {"path": "c.py"}]})
    )

    assert single is not None and single.blocks == (ToolCallBlock(name="Edit", summary="src/a.py"),)
    assert several is not None and several.blocks == (ToolCallBlock(name="Edit", summary="3 files"),)


def test_mcp_tool_call() -> None:
    message = parse_record(_completed({"type": "mcp_tool_call", "server": "docs", "tool": "search"}))
    partial = parse_record(_completed({"type": "mcp_tool_call", "tool": "search"}))

    assert message is not None and message.blocks[0].summary == "docs/search"
    assert partial is not None and partial.blocks[0].summary == "unknown/search"


def test_in_flight_and_session_events_are_skipped() -> None:
    started = json.dumps({"type": "item.started", "item": {"type": "command_execution", "command": "ls"}})

    assert parse_record(started) is None
    assert parse_record(json.dumps({"type": "turn.completed", "usage": {}})) is None
    assert parse_record(json.dumps({"type": "thread.started", "thread_id": "x"})) is None


def test_unknown_and_malformed_items_are_skipped() -> None:
    assert parse_record(_completed({"type": "reasoning", "text": "thinking"})) is None
    assert parse_record(_completed({"type": "agent_message", "text": ""})) is None
    assert parse_record(_completed({"type": "command_execution", "command": ""})) is None
    assert parse_record(json.dumps({"type": "item.completed"})) is None
    assert parse_record("not json") is None


@pytest.mark.parametrize("line", ["1" * 5000, "[" * 100000, '{"type": "item.completed", "n": ' + "9" * 5000 + "}"])
def test_oversized_or_deeply_nested_json_is_skipped(line: str) -> None:
    assert parse_record(line) is None
