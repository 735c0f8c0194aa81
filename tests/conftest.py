from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from chatwatch.config import Settings
from chatwatch.models import DetectedSource
from chatwatch.parsers import parser_for
from chatwatch.tail import LogTailer


class FakeObserver:
    """Stands in for a watchdog observer; tests rely on the poll interval instead."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[Any, str, bool]] = []
        self.started = False
        self.stopped = False

    def schedule(self, handler: Any, path: str, recursive: bool = False) -> None:
        self.scheduled.append((handler, path, recursive))

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: float | None = None) -> None:
        return None


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        claude_projects_dir=tmp_path / "projects",
        sidecar_dir=tmp_path / "sidecar",
        poll_interval_seconds=0.05,
    )


@pytest.fixture
def tailer_factory() -> Callable[[DetectedSource], LogTailer]:
    def _build(source: DetectedSource) -> LogTailer:
        return LogTailer(source, parser_for(source.tool), poll_interval=0.05, observer_factory=FakeObserver)

    return _build


@pytest.fixture
def observer_factory() -> type[FakeObserver]:
    return FakeObserver
