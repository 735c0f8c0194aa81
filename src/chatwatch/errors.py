"""Application-level exception types for chatwatch."""

from __future__ import annotations


class ChatWatchError(Exception):
    """Base exception for chatwatch."""


class ConfigurationError(ChatWatchError):
    """Raised when settings are invalid."""


class ProtocolError(ChatWatchError):
    """Raised when an inbound command cannot be decoded."""


class DetectionError(ChatWatchError):
    """Base exception for agent and log detection failures."""


class PaneNotFoundError(DetectionError):
    """Raised when the multiplexer cannot resolve the target pane."""


class AgentNotFoundError(DetectionError):
    """Raised when no known agent process runs under the pane."""


class LogNotFoundError(DetectionError):
    """Raised when no log file matches the agent's convention."""


class TailError(ChatWatchError):
    """Base exception for tailing failures."""


class LogUnreadableError(TailError):
    """Raised when the log file is deleted, replaced, truncated or unreadable."""
