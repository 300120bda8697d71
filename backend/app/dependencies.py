from __future__ import annotations

from functools import lru_cache

from backend.app.config import AppSettings, load_settings
from backend.app.repositories.reference_repository import (
    STARTER_REFERENCES,
    InMemoryReferenceRepository,
)
from backend.app.services.capture_service import CaptureService
from backend.app.services.metadata_fetcher import MetadataFetcher
from backend.app.services.thought_processor import OpenAITextGenerator, ThoughtProcessor
from backend.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_capture_service() -> CaptureService:
    settings = get_settings()
    telemetry = get_telemetry()

    generator: OpenAITextGenerator | None = None
    if settings.openai_api_key is not None:
        generator = OpenAITextGenerator(
            api_key=settings.openai_api_key,
            model=settings.generation_model,
            base_url=settings.openai_base_url,
        )

    return CaptureService(
        fetcher=MetadataFetcher(
            youtube_oembed_url=settings.youtube_oembed_url,
            vimeo_oembed_url=settings.vimeo_oembed_url,
            timeout_seconds=settings.metadata_http_timeout_seconds,
            telemetry=telemetry,
        ),
        processor=ThoughtProcessor(generator, telemetry=telemetry),
        repository=InMemoryReferenceRepository(
            STARTER_REFERENCES if settings.seed_library else ()
        ),
        telemetry=telemetry,
        idle_timeout_seconds=settings.capture_session_idle_seconds,
    )


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def reset_cached_dependencies() -> None:
    get_capture_service.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
