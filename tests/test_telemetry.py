from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from backend.app.telemetry import TelemetryClient, build_telemetry_client


class _CaptureSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))


def test_telemetry_client_redacts_user_content() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    client.emit(
        "thought.process.finish",
        request_id="req_123",
        thought="my private note about the video",
        description_text="generated text",
        api_key="secret",
        provider="youtube",
        pending_calls=3,
    )

    assert len(sink.events) == 1
    event_name, attributes = sink.events[0]
    assert event_name == "thought.process.finish"
    assert attributes["request_id"] == "req_123"
    assert attributes["provider"] == "youtube"
    assert attributes["pending_calls"] == 3
    assert attributes["thought"] == "[redacted]"
    assert attributes["description_text"] == "[redacted]"
    assert attributes["api_key"] == "[redacted]"


def test_long_strings_are_compacted_and_truncated() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    client.emit("metadata.fetch.finish", url="  https://youtu.be/x \n" + "a" * 400, extra=object())

    attributes = sink.events[0][1]
    assert attributes["url"].startswith("https://youtu.be/x a")
    assert attributes["url"].endswith("...")
    assert len(attributes["url"]) == 163
    assert attributes["extra"] == "object"


def test_disabled_telemetry_client_does_not_emit() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=False, sink=sink)

    client.emit("capture.cancel", request_id="req_1")
    assert sink.events == []


def test_build_telemetry_client_none_sink_is_disabled() -> None:
    client = build_telemetry_client(enabled=True, sink="none")
    assert client.enabled is False


def test_measure_emits_duration_and_outcome() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    with client.measure("metadata.fetch.finish", provider="vimeo") as outcome:
        outcome["ok"] = False
        outcome["error_code"] = "http_404"

    event_name, attributes = sink.events[0]
    assert event_name == "metadata.fetch.finish"
    assert attributes["provider"] == "vimeo"
    assert attributes["ok"] is False
    assert attributes["error_code"] == "http_404"
    assert isinstance(attributes["duration_ms"], int)


def test_measure_emits_even_when_block_raises() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    with pytest.raises(RuntimeError):
        with client.measure("reference.finalize"):
            raise RuntimeError("boom")

    assert [name for name, _ in sink.events] == ["reference.finalize"]
