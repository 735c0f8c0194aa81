"""Codex ``--json`` event stream records.

Only ``item.completed`` events are rendered; ``item.started`` and
``item.updated`` describe in-flight state that is repeated once the item
completes, and ``thread.*`` / ``turn.*`` events carry no conversation.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from loguru import logger

from chatwatch.models import ContentBlock, Message, TextBlock, ToolCallBlock, ToolResultBlock
from chatwatch.parsers.summary import DEFAULT_SUMMARY_CHARS, summarize_output, truncate

COMPLETED_EVENT = "item.completed"
SHELL_TOOL = "Bash"
EDIT_TOOL = "Edit"
MCP_TOOL = "MCP"


def parse_record(line: str, *, max_chars: int = DEFAULT_SUMMARY_CHARS) -> Message | None:
    raw = line.strip()
    if not raw:
        return None
    try:
        event = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        logger.warning("parser.codex.invalid_json error={}", exc)
        return None
    if not isinstance(event, dict) or event.get("type") != COMPLETED_EVENT:
        return None

    item = event.get("item")
    if not isinstance(item, dict):
        logger.debug("parser.codex.missing_item")
        return None
    converter = _CONVERTERS.get(item.get("type")) if isinstance(item.get("type"), str) else None
    if converter is None:
        return None
    blocks = converter(item, max_chars)
    if not blocks:
        return None
    return Message(role="assistant", blocks=tuple(blocks))


def _text_field(item: dict[str, Any], key: str) -> str:
    value = item.get(key)
    return value if isinstance(value, str) else ""


def _agent_message(item: dict[str, Any], max_chars: int) -> list[ContentBlock]:
    text = _text_field(item, "text")
    return [TextBlock(text)] if text else []


def _command_execution(item: dict[str, Any], max_chars: int) -> list[ContentBlock]:
    command = _text_field(item, "command")
    if not command:
        return []
    blocks: list[ContentBlock] = [
        ToolCallBlock(name=SHELL_TOOL, summary=truncate(command, max_chars), input={"command": command})
    ]
    output = _text_field(item, "aggregated_output")
    if output:
        blocks.append(ToolResultBlock(tool_name=SHELL_TOOL, summary=summarize_output(output, max_chars), content=output))
    return blocks


def _file_change(item: dict[str, Any], max_chars: int) -> list[ContentBlock]:
    changes = item.get("changes")
    if not isinstance(changes, list):
        return []
    paths = [change["path"] for change in changes if isinstance(change, dict) and isinstance(change.get("path"), str)]
    if not paths:
        return []
    summary = paths[0] if len(paths) == 1 else f"{len(paths)} files"
    return [ToolCallBlock(name=EDIT_TOOL, summary=summary)]


def _mcp_tool_call(item: dict[str, Any], max_chars: int) -> list[ContentBlock]:
    server = _text_field(item, "server") or "unknown"
    tool = _text_field(item, "tool") or "unknown"
    return [ToolCallBlock(name=MCP_TOOL, summary=truncate(f"{server}/{tool}", max_chars))]


_CONVERTERS: dict[str, Callable[[dict[str, Any], int], list[ContentBlock]]] = {
    "agent_message": _agent_message,
    "command_execution": _command_execution,
    "file_change": _file_change,
    "mcp_tool_call": _mcp_tool_call,
}
