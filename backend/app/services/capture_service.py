from __future__ import annotations

import logging
from collections.abc import Callable
from time import monotonic
from uuid import uuid4

from backend.app.repositories.reference_repository import InMemoryReferenceRepository
from backend.app.services.capture_session import CaptureSession
from backend.app.services.metadata_fetcher import MetadataFetcher
from backend.app.services.reference_assembler import Reference, ReferenceIdFactory
from backend.app.services.thought_processor import ThoughtProcessor
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("reelmark.capture")


class CaptureServiceError(Exception):
    pass


class CaptureSessionNotFoundError(CaptureServiceError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"capture session not found: {session_id}")
        self.session_id = session_id


DEFAULT_SESSION_IDLE_SECONDS = 3600.0


class CaptureService:
    """Open capture sessions by id, plus the reference library they save into.

    Sessions untouched for longer than `idle_timeout_seconds` are cancelled
    and forgotten the next time a session is opened or looked up.
    """

    def __init__(
        self,
        *,
        fetcher: MetadataFetcher,
        processor: ThoughtProcessor,
        repository: InMemoryReferenceRepository,
        telemetry: TelemetryClient | None = None,
        idle_timeout_seconds: float | None = DEFAULT_SESSION_IDLE_SECONDS,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._processor = processor
        self._repository = repository
        self._telemetry = telemetry or TelemetryClient.disabled()
        self._idle_timeout_seconds = idle_timeout_seconds
        self._clock = clock
        # One factory for every session so ids stay unique across the library.
        self._id_factory = ReferenceIdFactory()
        self._sessions: dict[str, CaptureSession] = {}
        self._last_used: dict[str, float] = {}

    @property
    def repository(self) -> InMemoryReferenceRepository:
        return self._repository

    @property
    def open_session_count(self) -> int:
        return len(self._sessions)

    def open_session(self) -> tuple[str, CaptureSession]:
        self._evict_idle_sessions()
        session_id = f"cap_{uuid4().hex}"
        session = CaptureSession(
            fetcher=self._fetcher,
            processor=self._processor,
            id_factory=self._id_factory,
            telemetry=self._telemetry,
        )
        self._sessions[session_id] = session
        self._last_used[session_id] = self._clock()
        LOGGER.info("capture session opened session_id=%s", session_id)
        return session_id, session

    def get_session(self, session_id: str) -> CaptureSession:
        self._evict_idle_sessions()
        session = self._sessions.get(session_id)
        if session is None:
            raise CaptureSessionNotFoundError(session_id)
        self._last_used[session_id] = self._clock()
        return session

    def finalize(self, session_id: str) -> Reference:
        session = self.get_session(session_id)
        reference = session.finalize_reference()
        self._repository.add(reference)
        self._forget_session(session_id)
        LOGGER.info(
            "reference captured session_id=%s reference_id=%s tags=%s",
            session_id,
            reference.id,
            len(reference.tags),
        )
        return reference

    def cancel(self, session_id: str) -> None:
        session = self.get_session(session_id)
        session.cancel_session()
        self._forget_session(session_id)
        LOGGER.info("capture session cancelled session_id=%s", session_id)

    def list_references(self, query: str | None = None) -> list[Reference]:
        return self._repository.search(query)

    def _forget_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_used.pop(session_id, None)

    def _evict_idle_sessions(self) -> None:
        if self._idle_timeout_seconds is None:
            return
        cutoff = self._clock() - self._idle_timeout_seconds
        expired = [
            session_id for session_id, last_used in self._last_used.items() if last_used < cutoff
        ]
        for session_id in expired:
            self._sessions[session_id].cancel_session()
            self._forget_session(session_id)
            LOGGER.info("idle capture session evicted session_id=%s", session_id)
