from pathlib import Path

import pytest

from chatwatch.config import load_settings
from chatwatch.errors import ConfigurationError


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CHATWATCH_SIDECAR_DIR", str(tmp_path))
    monkeypatch.setenv("CHATWATCH_SUMMARY_MAX_CHARS", "40")

    settings = load_settings()

    assert settings.sidecar_dir == tmp_path
    assert settings.summary_max_chars == 40
    assert settings.sidecar_glob == "webmux-codex-*.jsonl"


def test_explicit_overrides_win_and_none_is_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATWATCH_SUMMARY_MAX_CHARS", "40")

    assert load_settings(summary_max_chars=10).summary_max_chars == 10
    assert load_settings(summary_max_chars=None).summary_max_chars == 40


def test_invalid_values_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        load_settings(summary_max_chars=0)
    with pytest.raises(ConfigurationError):
        load_settings(poll_interval_seconds=-1)
