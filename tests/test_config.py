from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from backend.app.config import (
    DEFAULT_GENERATION_MODEL,
    DEFAULT_YOUTUBE_OEMBED_URL,
    load_settings,
)


def test_load_settings_defaults(tmp_path: Path) -> None:
    settings = load_settings()

    assert settings.data_dir == (tmp_path / "runtime-data").resolve()
    assert settings.log_dir == settings.data_dir / "logs"
    assert settings.openai_api_key is None
    assert settings.generation_model == DEFAULT_GENERATION_MODEL
    assert settings.youtube_oembed_url == DEFAULT_YOUTUBE_OEMBED_URL
    assert settings.metadata_http_timeout_seconds is None
    assert settings.seed_library is False
    assert settings.capture_session_idle_seconds == 3600.0


def test_load_settings_reads_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("REELMARK_LOG_DIR", str(tmp_path / "elsewhere"))
    monkeypatch.setenv("REELMARK_OPENAI_API_KEY", "  sk-test  ")
    monkeypatch.setenv("REELMARK_GENERATION_MODEL", " gpt-4o-mini ")
    monkeypatch.setenv("REELMARK_METADATA_HTTP_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("REELMARK_SEED_LIBRARY", "yes")

    settings = load_settings()

    assert settings.log_dir == (tmp_path / "elsewhere").resolve()
    assert settings.openai_api_key == "sk-test"
    assert settings.generation_model == "gpt-4o-mini"
    assert settings.metadata_http_timeout_seconds == 2.5
    assert settings.seed_library is True


def test_blank_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REELMARK_OPENAI_API_KEY", "   ")
    monkeypatch.setenv("REELMARK_METADATA_HTTP_TIMEOUT_SECONDS", "")
    monkeypatch.setenv("REELMARK_CAPTURE_SESSION_IDLE_SECONDS", " ")
    monkeypatch.setenv("REELMARK_TELEMETRY_ENABLED", "maybe")

    settings = load_settings()

    assert settings.openai_api_key is None
    assert settings.metadata_http_timeout_seconds is None
    assert settings.telemetry_enabled is True
    assert settings.capture_session_idle_seconds is None


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("REELMARK_TELEMETRY_SINK", "otlp"),
        ("REELMARK_GENERATION_MODEL", "  "),
        ("REELMARK_METADATA_HTTP_TIMEOUT_SECONDS", "0"),
        ("REELMARK_CAPTURE_SESSION_IDLE_SECONDS", "-5"),
    ],
)
def test_invalid_settings_are_rejected(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        load_settings()
