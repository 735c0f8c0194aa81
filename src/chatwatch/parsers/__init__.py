"""Log grammars, one record parser per supported agent."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial

from chatwatch.models import AgentTool, Message
from chatwatch.parsers import claude, codex
from chatwatch.parsers.summary import DEFAULT_SUMMARY_CHARS

type Parser = Callable[[str], Message | None]

PARSERS: dict[AgentTool, Callable[..., Message | None]] = {
    AgentTool.CLAUDE: claude.parse_record,
    AgentTool.CODEX: codex.parse_record,
}


def parser_for(tool: AgentTool, *, max_chars: int = DEFAULT_SUMMARY_CHARS) -> Parser:
    """Bind the record parser for ``tool``; chosen once per watch."""
    return partial(PARSERS[tool], max_chars=max_chars)


__all__ = ["PARSERS", "Parser", "parser_for"]
