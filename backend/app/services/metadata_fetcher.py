from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, cast

import httpx

from backend.app.config import DEFAULT_VIMEO_OEMBED_URL, DEFAULT_YOUTUBE_OEMBED_URL
from backend.app.services.outcome import Outcome
from backend.app.services.url_resolver import VideoIdentity, VideoProvider
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("reelmark.metadata")

_GENERIC_TITLES: dict[VideoProvider, str] = {
    VideoProvider.YOUTUBE: "YouTube Video",
    VideoProvider.VIMEO: "Vimeo Video",
}


@dataclass(frozen=True)
class VideoMetadata:
    title: str
    thumbnail_url: str


class MetadataLookupError(Exception):
    def __init__(self, error_code: str) -> None:
        super().__init__(error_code)
        self.error_code = error_code


def thumbnail_url_for(identity: VideoIdentity) -> str:
    video_id = _require_external_id(identity)
    if identity.provider is VideoProvider.YOUTUBE:
        return f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"
    return f"https://vumbnail.com/{video_id}.jpg"


def fallback_metadata(identity: VideoIdentity) -> VideoMetadata:
    _require_external_id(identity)
    return VideoMetadata(
        title=_GENERIC_TITLES[identity.provider],
        thumbnail_url=thumbnail_url_for(identity),
    )


class MetadataFetcher:
    """Looks up preview metadata through the providers' public oEmbed endpoints."""

    def __init__(
        self,
        *,
        youtube_oembed_url: str = DEFAULT_YOUTUBE_OEMBED_URL,
        vimeo_oembed_url: str = DEFAULT_VIMEO_OEMBED_URL,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._youtube_oembed_url = youtube_oembed_url
        self._vimeo_oembed_url = vimeo_oembed_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._telemetry = telemetry or TelemetryClient.disabled()

    async def fetch(self, identity: VideoIdentity) -> Outcome[VideoMetadata]:
        _require_external_id(identity)
        with self._telemetry.measure(
            "metadata.fetch.finish",
            provider=str(identity.provider),
        ) as outcome_attributes:
            try:
                payload = await self._lookup(identity)
            except MetadataLookupError as exc:
                LOGGER.warning(
                    "oembed lookup failed provider=%s video_id=%s error=%s",
                    identity.provider,
                    identity.external_id,
                    exc.error_code,
                )
                outcome_attributes.update(ok=False, error_code=exc.error_code)
                return Outcome.degraded(fallback_metadata(identity), error_code=exc.error_code)

            outcome_attributes.update(ok=True)
            return Outcome.succeeded(_metadata_from_payload(identity, payload))

    async def fetch_metadata(self, identity: VideoIdentity) -> VideoMetadata:
        outcome = await self.fetch(identity)
        return outcome.value

    async def _lookup(self, identity: VideoIdentity) -> dict[str, Any]:
        endpoint, params = self._oembed_request(identity)
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._timeout_seconds,
                follow_redirects=True,
            ) as client:
                response = await client.get(endpoint, params=params)
        except httpx.HTTPError as exc:
            raise MetadataLookupError(f"network_error:{type(exc).__name__}") from exc

        if not response.is_success:
            raise MetadataLookupError(f"http_{response.status_code}")

        try:
            parsed = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MetadataLookupError("invalid_payload") from exc
        if not isinstance(parsed, dict):
            raise MetadataLookupError("invalid_payload")
        return cast(dict[str, Any], parsed)

    def _oembed_request(self, identity: VideoIdentity) -> tuple[str, dict[str, str]]:
        video_id = _require_external_id(identity)
        if identity.provider is VideoProvider.YOUTUBE:
            return (
                self._youtube_oembed_url,
                {"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"},
            )
        return self._vimeo_oembed_url, {"url": f"https://vimeo.com/{video_id}"}


def _metadata_from_payload(identity: VideoIdentity, payload: dict[str, Any]) -> VideoMetadata:
    title = _coerce_nonempty_string(payload.get("title")) or _GENERIC_TITLES[identity.provider]
    if identity.provider is VideoProvider.YOUTUBE:
        # Derived from the id so a preview exists even when oEmbed omits one.
        return VideoMetadata(title=title, thumbnail_url=thumbnail_url_for(identity))

    thumbnail = _coerce_nonempty_string(payload.get("thumbnail_url"))
    return VideoMetadata(title=title, thumbnail_url=thumbnail or thumbnail_url_for(identity))


def _require_external_id(identity: VideoIdentity) -> str:
    if identity.external_id is None:
        raise ValueError("metadata lookup requires a resolved video identity")
    return identity.external_id


def _coerce_nonempty_string(raw_value: object) -> str | None:
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value.strip()
    return None
