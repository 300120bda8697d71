from __future__ import annotations

import pytest

from backend.app.repositories.reference_repository import (
    STARTER_REFERENCES,
    InMemoryReferenceRepository,
)
from backend.app.services.capture_service import CaptureService, CaptureSessionNotFoundError
from backend.app.services.reference_assembler import ReferenceNotReadyError
from tests.support import FakeClock, GatedGenerator, ScriptedGenerator, build_capture_service


@pytest.mark.asyncio
async def test_finalize_appends_reference_and_closes_session(
    capture_service: CaptureService,
) -> None:
    session_id, session = capture_service.open_session()
    await session.submit_reference("https://vimeo.com/76979871")
    session.submit_thought("use this for the dashboard grid")
    await session.aggregator.wait_for_pending()

    reference = capture_service.finalize(session_id)

    assert reference.title == "Vimeo Staff Pick"
    assert reference.thumbnail == "https://i.vimeocdn.com/video/1.jpg"
    assert reference.tags == ("css", "dashboard")
    assert capture_service.list_references() == [reference]
    with pytest.raises(CaptureSessionNotFoundError):
        capture_service.get_session(session_id)


def test_refused_finalize_keeps_session_open(capture_service: CaptureService) -> None:
    session_id, _ = capture_service.open_session()

    with pytest.raises(ReferenceNotReadyError):
        capture_service.finalize(session_id)

    assert capture_service.get_session(session_id) is not None
    assert capture_service.list_references() == []


def test_cancel_closes_session_without_reference(capture_service: CaptureService) -> None:
    session_id, _ = capture_service.open_session()

    capture_service.cancel(session_id)

    assert capture_service.list_references() == []
    with pytest.raises(CaptureSessionNotFoundError):
        capture_service.cancel(session_id)


@pytest.mark.asyncio
async def test_reference_ids_are_unique_across_sessions(generator: ScriptedGenerator) -> None:
    service = build_capture_service(generator)
    ids: list[str] = []
    for _ in range(5):
        session_id, session = service.open_session()
        await session.submit_reference("https://youtu.be/tRpoI6vkqLs")
        ids.append(service.finalize(session_id).id)

    assert len(set(ids)) == 5


def test_repository_search_matches_title_description_and_tags() -> None:
    repository = InMemoryReferenceRepository(STARTER_REFERENCES)

    assert [ref.id for ref in repository.search("hooks")] == ["2"]
    assert [ref.id for ref in repository.search("TUTORIAL")] == ["2", "4", "6"]
    assert [ref.id for ref in repository.search("30 minutes")] == ["3"]
    assert len(repository.search("  ")) == len(STARTER_REFERENCES)
    assert repository.search("nothing matches this") == []


def test_idle_sessions_are_evicted_on_next_open(generator: ScriptedGenerator) -> None:
    clock = FakeClock()
    service = build_capture_service(generator, idle_timeout_seconds=60, clock=clock)
    abandoned_id, _ = service.open_session()
    clock.advance(30)
    active_id, _ = service.open_session()

    clock.advance(45)
    service.open_session()

    assert service.open_session_count == 2
    assert service.get_session(active_id) is not None
    with pytest.raises(CaptureSessionNotFoundError):
        service.get_session(abandoned_id)


def test_lookup_keeps_session_alive(generator: ScriptedGenerator) -> None:
    clock = FakeClock()
    service = build_capture_service(generator, idle_timeout_seconds=60, clock=clock)
    session_id, _ = service.open_session()

    for _ in range(3):
        clock.advance(50)
        service.get_session(session_id)

    clock.advance(61)
    with pytest.raises(CaptureSessionNotFoundError):
        service.get_session(session_id)
    assert service.open_session_count == 0


@pytest.mark.asyncio
async def test_evicted_session_drops_in_flight_thoughts() -> None:
    clock = FakeClock()
    generator = GatedGenerator({"slow note": {"tags": ["slow"], "description": "late"}})
    service = build_capture_service(generator, idle_timeout_seconds=60, clock=clock)
    session_id, session = service.open_session()
    await session.submit_reference("https://youtu.be/tRpoI6vkqLs")
    session.submit_thought("slow note")
    await generator.started["slow note"].wait()

    clock.advance(120)
    service.open_session()
    generator.gates["slow note"].set()
    await session.aggregator.wait_for_pending()

    assert session.observe_enrichment().tags == ()
    assert session.observe_metadata() is None
    assert service.list_references() == []
    with pytest.raises(CaptureSessionNotFoundError):
        service.get_session(session_id)


def test_eviction_disabled_without_timeout(generator: ScriptedGenerator) -> None:
    clock = FakeClock()
    service = build_capture_service(generator, idle_timeout_seconds=None, clock=clock)
    session_id, _ = service.open_session()

    clock.advance(10**6)

    assert service.get_session(session_id) is not None
