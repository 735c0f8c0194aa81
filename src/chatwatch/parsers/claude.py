"""Claude Code transcript records (one JSON object per line).

Each record carries a ``type`` discriminant. Only ``user`` and ``assistant``
records describe conversation; ``summary``, ``system`` and the other
housekeeping kinds are skipped. The ``message.content`` payload is either a
plain string or a list of typed items (``text``, ``tool_use``,
``tool_result``); unknown item types such as ``thinking`` or ``image`` are
ignored.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from loguru import logger

from chatwatch.models import ROLES, ContentBlock, Message, TextBlock, ToolCallBlock, ToolResultBlock
from chatwatch.parsers.summary import DEFAULT_SUMMARY_CHARS, summarize_output, summarize_tool_call


def parse_record(line: str, *, max_chars: int = DEFAULT_SUMMARY_CHARS) -> Message | None:
    raw = line.strip()
    if not raw:
        return None
    try:
        record = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        logger.warning("parser.claude.invalid_json error={}", exc)
        return None
    if not isinstance(record, dict):
        return None

    kind = record.get("type")
    if not isinstance(kind, str) or kind not in ROLES:
        return None
    message = record.get("message")
    if not isinstance(message, dict):
        logger.debug("parser.claude.missing_message type={}", kind)
        return None

    blocks = _convert_content(message.get("content"), max_chars)
    if not blocks:
        return None
    return Message(role=kind, blocks=tuple(blocks), timestamp=_parse_timestamp(record.get("timestamp")))


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _convert_content(content: Any, max_chars: int) -> list[ContentBlock]:
    if isinstance(content, str):
        return [TextBlock(content)] if content else []
    if not isinstance(content, list):
        return []

    tool_names = {
        item.get("id"): item.get("name")
        for item in content
        if isinstance(item, dict) and item.get("type") == "tool_use" and isinstance(item.get("id"), str)
    }
    blocks: list[ContentBlock] = []
    for item in content:
        if not isinstance(item, dict):
            continue
        block = _convert_item(item, tool_names, max_chars)
        if block is not None:
            blocks.append(block)
    return blocks


def _convert_item(item: dict[str, Any], tool_names: dict[str, Any], max_chars: int) -> ContentBlock | None:
    match item.get("type"):
        case "text":
            text = item.get("text")
            if not isinstance(text, str) or not text:
                return None
            return TextBlock(text)
        case "tool_use":
            name = item.get("name")
            if not isinstance(name, str):
                name = ""
            tool_input = item.get("input")
            return ToolCallBlock(
                name=name,
                summary=summarize_tool_call(name, tool_input, max_chars),
                input=tool_input,
            )
        case "tool_result":
            tool_use_id = item.get("tool_use_id")
            if not isinstance(tool_use_id, str):
                tool_use_id = ""
            tool_name = tool_names.get(tool_use_id) or tool_use_id
            content = _result_text(item.get("content"))
            return ToolResultBlock(
                tool_name=tool_name if isinstance(tool_name, str) else "",
                summary=summarize_output(content, max_chars),
                content=content,
            )
        case _:
            return None


def _result_text(content: Any) -> str | None:
    """Flatten tool_result content: a string, a list of text fragments, or any other JSON value."""
    if content is None:
        return None
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        fragments: list[str] = []
        for fragment in content:
            if isinstance(fragment, str):
                fragments.append(fragment)
            elif isinstance(fragment, dict) and isinstance(fragment.get("text"), str):
                fragments.append(fragment["text"])
        return "\n".join(fragments) if fragments else None
    return json.dumps(content, ensure_ascii=False, separators=(",", ":"))
