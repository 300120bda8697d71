from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.app.dependencies import get_capture_service, reset_cached_dependencies
from backend.app.main import create_app
from backend.app.services.capture_service import CaptureService
from tests.support import (
    CAPTURE_IDLE_SECONDS,
    FakeClock,
    ScriptedGenerator,
    build_capture_service,
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.setenv("REELMARK_DATA_DIR", str(tmp_path / "runtime-data"))
    monkeypatch.setenv("REELMARK_TELEMETRY_SINK", "none")
    monkeypatch.delenv("REELMARK_OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("REELMARK_SEED_LIBRARY", raising=False)


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator(
        {
            "great intro to layout systems": {
                "tags": ["layout", "css"],
                "description": "A clear primer on layout systems.",
            },
            "use this for the dashboard grid": {
                "tags": ["css", "dashboard"],
                "description": "Applies directly to the dashboard grid work.",
            },
        }
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def capture_service(generator: ScriptedGenerator, clock: FakeClock) -> CaptureService:
    return build_capture_service(
        generator,
        idle_timeout_seconds=CAPTURE_IDLE_SECONDS,
        clock=clock,
    )


@pytest.fixture
def client(capture_service: CaptureService) -> Iterator[TestClient]:
    reset_cached_dependencies()
    app = create_app()
    app.dependency_overrides[get_capture_service] = lambda: capture_service
    with TestClient(app) as test_client:
        yield test_client

    reset_cached_dependencies()
