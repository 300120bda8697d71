from __future__ import annotations

import logging
from collections.abc import Callable

from backend.app.services.enrichment_aggregator import EnrichmentAggregator, EnrichmentState
from backend.app.services.metadata_fetcher import MetadataFetcher, VideoMetadata
from backend.app.services.reference_assembler import (
    Reference,
    ReferenceIdFactory,
    assemble_reference,
)
from backend.app.services.thought_processor import ThoughtProcessor
from backend.app.services.url_resolver import UNKNOWN_VIDEO, VideoIdentity, resolve_video_url
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("reelmark.capture")


class CaptureSession:
    """State of one in-progress reference capture, from URL entry to finalize or cancel.

    Owned by the caller and never shared between captures. Metadata lookups
    are tagged with a URL epoch; a lookup that completes after the URL was
    replaced (or the session was cleared) is discarded. Thought results are
    likewise tied to the video they were generated for.
    """

    def __init__(
        self,
        *,
        fetcher: MetadataFetcher,
        processor: ThoughtProcessor,
        id_factory: Callable[[], str] | None = None,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._aggregator = EnrichmentAggregator(processor)
        self._id_factory = id_factory or ReferenceIdFactory()
        self._telemetry = telemetry or TelemetryClient.disabled()
        self._url = ""
        self._identity: VideoIdentity = UNKNOWN_VIDEO
        self._metadata: VideoMetadata | None = None
        self._url_epoch = 0
        self._loading_epoch: int | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def identity(self) -> VideoIdentity:
        return self._identity

    @property
    def is_loading(self) -> bool:
        return self._loading_epoch == self._url_epoch

    @property
    def is_generating(self) -> bool:
        return self._aggregator.pending_count > 0

    @property
    def pending_thoughts(self) -> int:
        return self._aggregator.pending_count

    @property
    def aggregator(self) -> EnrichmentAggregator:
        return self._aggregator

    async def submit_reference(self, raw_url: str) -> VideoMetadata | None:
        self._url_epoch += 1
        epoch = self._url_epoch
        identity = resolve_video_url(raw_url)
        self._url = raw_url.strip()
        self._identity = identity
        self._metadata = None
        # Thoughts still in flight for a different video are dropped on arrival.
        self._aggregator.retarget(identity)

        if not identity.is_known:
            self._loading_epoch = None
            LOGGER.debug("no preview available for submitted url")
            return None

        self._loading_epoch = epoch
        outcome = await self._fetcher.fetch(identity)
        if epoch != self._url_epoch or identity != self._identity:
            LOGGER.info(
                "discarding stale metadata provider=%s video_id=%s",
                identity.provider,
                identity.external_id,
            )
            return None

        self._loading_epoch = None
        self._metadata = outcome.value
        return self._metadata

    def observe_metadata(self) -> VideoMetadata | None:
        return self._metadata

    def submit_thought(self, text: str) -> bool:
        title = self._metadata.title if self._metadata is not None else None
        return self._aggregator.submit_thought(text, title) is not None

    def observe_enrichment(self) -> EnrichmentState:
        return self._aggregator.current_state()

    def add_tag(self, tag: str) -> bool:
        return self._aggregator.add_tag(tag)

    def remove_tag(self, tag: str) -> bool:
        return self._aggregator.remove_tag(tag)

    def edit_description(self, description: str) -> None:
        self._aggregator.replace_description(description)

    def finalize_reference(self) -> Reference:
        reference = assemble_reference(
            url=self._url,
            metadata=self._metadata,
            state=self._aggregator.current_state(),
            reference_id=self._id_factory(),
        )
        self._telemetry.emit(
            "reference.finalize",
            reference_id=reference.id,
            provider=str(self._identity.provider),
            tag_count=len(reference.tags),
            pending_calls=self._aggregator.pending_count,
        )
        self._clear()
        return reference

    def cancel_session(self) -> None:
        self._telemetry.emit(
            "capture.cancel",
            provider=str(self._identity.provider),
            pending_calls=self._aggregator.pending_count,
        )
        self._clear()

    def _clear(self) -> None:
        self._url_epoch += 1
        self._loading_epoch = None
        self._url = ""
        self._identity = UNKNOWN_VIDEO
        self._metadata = None
        self._aggregator.reset()
