"""Canonical conversation model shared by every log grammar."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Literal

type Role = Literal["user", "assistant"]
ROLES: frozenset[str] = frozenset({"user", "assistant"})


class AgentTool(StrEnum):
    """Supported agent CLIs, one log grammar each."""

    CLAUDE = "claude"
    CODEX = "codex"


@dataclass(frozen=True)
class TextBlock:
    text: str

    def __post_init__(self) -> None:
        if not self.text:
            raise ValueError("text block must not be empty")

    def to_payload(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolCallBlock:
    name: str
    summary: str
    input: Any = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": "tool_call", "name": self.name, "summary": self.summary}
        if self.input is not None:
            payload["input"] = self.input
        return payload


@dataclass(frozen=True)
class ToolResultBlock:
    tool_name: str
    summary: str
    content: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": "tool_result", "toolName": self.tool_name, "summary": self.summary}
        if self.content is not None:
            payload["content"] = self.content
        return payload


type ContentBlock = TextBlock | ToolCallBlock | ToolResultBlock


@dataclass(frozen=True)
class Message:
    """One conversational turn as read from a single log record."""

    role: Role
    blocks: tuple[ContentBlock, ...]
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"unsupported role: {self.role!r}")
        if not self.blocks:
            raise ValueError("message must carry at least one block")

    @property
    def text(self) -> str:
        """Concatenated text blocks, used to match local input against its echo."""
        return "\n".join(block.text for block in self.blocks if isinstance(block, TextBlock))

    def to_payload(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "blocks": [block.to_payload() for block in self.blocks],
        }


@dataclass(frozen=True)
class DetectedSource:
    """A located log file and the grammar it is written in."""

    path: Path
    tool: AgentTool
    pid: int | None = field(default=None, compare=False)
