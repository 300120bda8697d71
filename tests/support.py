from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from backend.app.repositories.reference_repository import InMemoryReferenceRepository
from backend.app.services.capture_service import CaptureService
from backend.app.services.metadata_fetcher import MetadataFetcher
from backend.app.services.thought_processor import ThoughtProcessor

CAPTURE_IDLE_SECONDS = 600.0


def thought_key(user_prompt: str) -> str:
    marker = 'Thought: "'
    start = user_prompt.index(marker) + len(marker)
    return user_prompt[start:-1]


class ScriptedGenerator:
    """Answers each thought with a canned JSON payload (or raises `error`)."""

    def __init__(
        self,
        responses: Mapping[str, Any] | None = None,
        *,
        error: Exception | None = None,
        raw: str | None = None,
    ) -> None:
        self._responses = dict(responses or {})
        self._error = error
        self._raw = raw
        self.prompts: list[str] = []

    async def complete_json(self, *, system_prompt: str, user_prompt: str) -> str | None:
        _ = system_prompt
        self.prompts.append(user_prompt)
        if self._error is not None:
            raise self._error
        if self._raw is not None:
            return self._raw
        payload = self._responses.get(thought_key(user_prompt), {"tags": [], "description": ""})
        return json.dumps(payload)


class GatedGenerator(ScriptedGenerator):
    """Holds every answer until the test opens the gate for that thought."""

    def __init__(self, responses: Mapping[str, Any]) -> None:
        super().__init__(responses)
        self.gates: dict[str, asyncio.Event] = {key: asyncio.Event() for key in responses}
        self.started: dict[str, asyncio.Event] = {key: asyncio.Event() for key in responses}

    async def complete_json(self, *, system_prompt: str, user_prompt: str) -> str | None:
        key = thought_key(user_prompt)
        self.started[key].set()
        await self.gates[key].wait()
        return await super().complete_json(system_prompt=system_prompt, user_prompt=user_prompt)


def oembed_transport(
    handler: Callable[[httpx.Request], httpx.Response] | None = None,
) -> httpx.MockTransport:
    def _default(request: httpx.Request) -> httpx.Response:
        if request.url.host == "www.youtube.com":
            return httpx.Response(200, json={"title": "Layout Systems Explained"})
        return httpx.Response(
            200,
            json={
                "title": "Vimeo Staff Pick",
                "thumbnail_url": "https://i.vimeocdn.com/video/1.jpg",
            },
        )

    return httpx.MockTransport(handler or _default)


def build_capture_service(
    generator: ScriptedGenerator | None = None,
    *,
    transport: httpx.MockTransport | None = None,
    idle_timeout_seconds: float | None = None,
    clock: Callable[[], float] | None = None,
) -> CaptureService:
    return CaptureService(
        fetcher=MetadataFetcher(transport=transport or oembed_transport()),
        processor=ThoughtProcessor(generator),
        repository=InMemoryReferenceRepository(),
        idle_timeout_seconds=idle_timeout_seconds,
        clock=clock or FakeClock(),
    )


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
