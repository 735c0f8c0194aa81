"""Configuration management for chatwatch."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatwatch.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHATWATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Log discovery
    claude_projects_dir: Path = Field(
        default_factory=lambda: Path.home() / ".claude" / "projects",
        description="Root directory of Claude Code per-project transcripts",
    )
    sidecar_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory holding sidecar logs written by the launch wrapper",
    )
    sidecar_glob: str = Field(default="webmux-codex-*.jsonl", description="Sidecar log file name pattern")
    tmux_command: str = Field(default="tmux", description="Terminal multiplexer executable")

    # Normalization
    summary_max_chars: int = Field(default=120, gt=0, description="Maximum length of one-line summaries")

    # Tailing
    poll_interval_seconds: float = Field(default=1.0, gt=0, description="Re-read cadence without notifications")

    # Conversation view
    pending_echo_limit: int = Field(default=16, gt=0, description="Pending local inputs awaiting their log echo")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")


def load_settings(**overrides: Any) -> Settings:
    """Load settings from env and .env, then apply explicit overrides.

    Overrides whose value is ``None`` are ignored so CLI options can be passed through directly.
    """
    updates = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**updates)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
