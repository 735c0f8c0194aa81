"""One-line summaries of tool calls and tool output."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

DEFAULT_SUMMARY_CHARS = 120
ELLIPSIS = "..."
NO_OUTPUT = "no output"

# Tool name -> input argument that best describes the call.
_SUMMARY_FIELDS: dict[str, str] = {
    "Read": "file_path",
    "Edit": "file_path",
    "MultiEdit": "file_path",
    "Write": "file_path",
    "NotebookEdit": "notebook_path",
    "Bash": "command",
    "Glob": "pattern",
    "Grep": "pattern",
    "WebSearch": "query",
    "WebFetch": "url",
    "Task": "description",
}
_TRUNCATED_FIELDS = frozenset({"command", "description"})


def truncate(text: str, max_chars: int = DEFAULT_SUMMARY_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ELLIPSIS


def summarize_tool_call(name: str, tool_input: Any, max_chars: int = DEFAULT_SUMMARY_CHARS) -> str:
    """Pick the most informative argument of a known tool, else the tool name."""
    field = _SUMMARY_FIELDS.get(name)
    if field is None or not isinstance(tool_input, Mapping):
        return name
    value = tool_input.get(field)
    if not isinstance(value, str) or not value:
        return name
    if field in _TRUNCATED_FIELDS:
        return truncate(value, max_chars)
    return value


def summarize_output(content: str | None, max_chars: int = DEFAULT_SUMMARY_CHARS) -> str:
    """Line count for multi-line output, the truncated text otherwise."""
    if content is None:
        return NO_OUTPUT
    line_count = len(content.splitlines())
    if line_count > 1:
        return f"{line_count} lines"
    return truncate(content, max_chars)
