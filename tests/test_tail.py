from __future__ import annotations

import asyncio
import json
from contextlib import aclosing
from pathlib import Path

import pytest
from watchdog.events import FileModifiedEvent, FileMovedEvent

from chatwatch.errors import LogUnreadableError
from chatwatch.models import AgentTool, DetectedSource, Message, TextBlock
from chatwatch.parsers import parser_for
from chatwatch.tail import LogTailer, _LogFileHandler


def _record(role: str, text: str) -> str:
    return json.dumps({"type": role, "message": {"content": text}}) + "\n"


def _append(path: Path, data: str) -> None:
    with path.open("a", encoding="utf-8") as handle:
        handle.write(data)


class _IdleObserver:
    """No filesystem notifications; the tailer falls back to its poll interval."""

    def schedule(self, handler, path: str, recursive: bool = False) -> None:
        return None

    def start(self) -> None:
        return None

    def stop(self) -> None:
        return None

    def join(self, timeout: float | None = None) -> None:
        return None


def _tailer(path: Path) -> LogTailer:
    source = DetectedSource(path=path, tool=AgentTool.CLAUDE)
    return LogTailer(source, parser_for(AgentTool.CLAUDE), poll_interval=0.05, observer_factory=_IdleObserver)


async def _take(tailer: LogTailer, count: int, timeout: float = 2.0) -> list[Message]:
    async def _collect() -> list[Message]:
        messages: list[Message] = []
        async with aclosing(tailer.follow()) as stream:
            async for message in stream:
                messages.append(message)
                if len(messages) == count:
                    break
        return messages

    return await asyncio.wait_for(_collect(), timeout)


@pytest.mark.asyncio
async def test_backfill_then_follow_appends(tmp_path: Path) -> None:
    log = tmp_path / "session.jsonl"
    log.write_text(_record("user", "one") + "garbage\n" + _record("assistant", "two"), encoding="utf-8")

    async with _tailer(log) as tailer:
        history = tailer.backfill()
        assert [message.text for message in history] == ["one", "two"]
        assert tailer.offset == log.stat().st_size

        _append(log, _record("user", "three") + _record("assistant", "four"))
        followed = await _take(tailer, 2)

    assert [message.text for message in followed] == ["three", "four"]
    assert not tailer.is_open


@pytest.mark.asyncio
async def test_partial_line_waits_for_terminator(tmp_path: Path) -> None:
    log = tmp_path / "session.jsonl"
    log.write_text("", encoding="utf-8")
    line = _record("assistant", "complete")

    async with _tailer(log) as tailer:
        assert tailer.backfill() == []
        _append(log, line[:10])
        with pytest.raises(TimeoutError):
            await _take(tailer, 1, timeout=0.3)

        _append(log, line[10:])
        (message,) = await _take(tailer, 1)

    assert message.blocks == (TextBlock("complete"),)


@pytest.mark.asyncio
async def test_partial_line_at_attach_is_completed_later(tmp_path: Path) -> None:
    log = tmp_path / "session.jsonl"
    line = _record("user", "late")
    log.write_text(_record("user", "early") + line[:5], encoding="utf-8")

    async with _tailer(log) as tailer:
        assert [message.text for message in tailer.backfill()] == ["early"]
        _append(log, line[5:])
        (message,) = await _take(tailer, 1)

    assert message.text == "late"


@pytest.mark.asyncio
async def test_removed_file_is_reported(tmp_path: Path) -> None:
    log = tmp_path / "session.jsonl"
    log.write_text(_record("user", "one"), encoding="utf-8")

    async with _tailer(log) as tailer:
        tailer.backfill()
        log.unlink()
        with pytest.raises(LogUnreadableError, match="removed"):
            await _take(tailer, 1)


@pytest.mark.asyncio
async def test_truncated_file_is_reported(tmp_path: Path) -> None:
    log = tmp_path / "session.jsonl"
    log.write_text(_record("user", "one") + _record("user", "two"), encoding="utf-8")

    async with _tailer(log) as tailer:
        tailer.backfill()
        with log.open("r+", encoding="utf-8") as handle:
            handle.truncate(5)
        with pytest.raises(LogUnreadableError, match="truncated"):
            await _take(tailer, 1)


@pytest.mark.asyncio
async def test_missing_file_cannot_be_opened(tmp_path: Path) -> None:
    with pytest.raises(LogUnreadableError):
        async with _tailer(tmp_path / "missing.jsonl"):
            pass


@pytest.mark.asyncio
async def test_backfill_is_read_once(tmp_path: Path) -> None:
    log = tmp_path / "session.jsonl"
    log.write_text("", encoding="utf-8")

    async with _tailer(log) as tailer:
        tailer.backfill()
        with pytest.raises(RuntimeError):
            tailer.backfill()


@pytest.mark.asyncio
async def test_observer_watches_parent_directory(tmp_path: Path, observer_factory) -> None:
    log = tmp_path / "session.jsonl"
    log.write_text("", encoding="utf-8")
    observers: list = []

    def _factory():
        observers.append(observer_factory())
        return observers[-1]

    source = DetectedSource(path=log, tool=AgentTool.CLAUDE)
    async with LogTailer(source, parser_for(AgentTool.CLAUDE), observer_factory=_factory):
        (observer,) = observers
        assert observer.started
        ((handler, watched, recursive),) = observer.scheduled
        assert isinstance(handler, _LogFileHandler)
        assert (watched, recursive) == (str(tmp_path.absolute()), False)
    assert observer.stopped


def test_handler_filters_other_files(tmp_path: Path) -> None:
    calls: list[None] = []
    handler = _LogFileHandler(tmp_path / "a.jsonl", lambda: calls.append(None))

    handler.on_any_event(FileModifiedEvent(str(tmp_path / "b.jsonl")))
    handler.on_any_event(FileModifiedEvent(str(tmp_path / "a.jsonl")))
    handler.on_any_event(FileMovedEvent(str(tmp_path / "a.jsonl"), str(tmp_path / "c.jsonl")))

    assert len(calls) == 2
