from __future__ import annotations

import time
from dataclasses import dataclass

from backend.app.services.enrichment_aggregator import EnrichmentState
from backend.app.services.metadata_fetcher import VideoMetadata


@dataclass(frozen=True)
class Reference:
    id: str
    title: str
    description: str
    url: str
    tags: tuple[str, ...]
    thumbnail: str | None = None


class ReferenceNotReadyError(Exception):
    """Raised when a reference is finalized before its video metadata is known."""

    def __init__(self, message: str = "cannot save yet: video metadata is not available") -> None:
        super().__init__(message)


class ReferenceIdFactory:
    """Millisecond timestamp ids, bumped when two references land in the same millisecond."""

    def __init__(self) -> None:
        self._last_issued = 0

    def __call__(self) -> str:
        candidate = time.time_ns() // 1_000_000
        if candidate <= self._last_issued:
            candidate = self._last_issued + 1
        self._last_issued = candidate
        return str(candidate)


def assemble_reference(
    *,
    url: str,
    metadata: VideoMetadata | None,
    state: EnrichmentState,
    reference_id: str,
) -> Reference:
    if metadata is None:
        raise ReferenceNotReadyError()
    return Reference(
        id=reference_id,
        title=metadata.title,
        description=state.description,
        url=url,
        tags=tuple(state.tags),
        thumbnail=metadata.thumbnail_url,
    )
