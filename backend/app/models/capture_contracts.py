from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from backend.app.services.capture_session import CaptureSession
from backend.app.services.enrichment_aggregator import EnrichmentState
from backend.app.services.metadata_fetcher import VideoMetadata
from backend.app.services.reference_assembler import Reference

ProviderName = Literal["youtube", "vimeo", "unknown"]


class SubmitUrlRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(max_length=2048)


class SubmitThoughtRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(max_length=4000)


class AddTagRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tag: str = Field(min_length=1, max_length=80)


class EditDescriptionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str


class SessionOpenedResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str


class ThoughtAcceptedResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    accepted: bool
    pending_thoughts: int


class VideoIdentityView(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider: ProviderName
    external_id: str | None = None


class VideoMetadataView(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str
    thumbnail_url: str

    @classmethod
    def from_metadata(cls, metadata: VideoMetadata | None) -> VideoMetadataView | None:
        if metadata is None:
            return None
        return cls(title=metadata.title, thumbnail_url=metadata.thumbnail_url)


class EnrichmentView(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tags: list[str]
    description: str
    pending_thoughts: int = 0

    @classmethod
    def from_state(cls, state: EnrichmentState, *, pending_thoughts: int) -> EnrichmentView:
        return cls(
            tags=list(state.tags),
            description=state.description,
            pending_thoughts=pending_thoughts,
        )


class CaptureSessionView(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str
    url: str
    identity: VideoIdentityView
    metadata: VideoMetadataView | None = None
    loading: bool
    enrichment: EnrichmentView

    @classmethod
    def from_session(cls, session_id: str, session: CaptureSession) -> CaptureSessionView:
        return cls(
            session_id=session_id,
            url=session.url,
            identity=VideoIdentityView(
                provider=session.identity.provider.value,
                external_id=session.identity.external_id,
            ),
            metadata=VideoMetadataView.from_metadata(session.observe_metadata()),
            loading=session.is_loading,
            enrichment=EnrichmentView.from_state(
                session.observe_enrichment(),
                pending_thoughts=session.pending_thoughts,
            ),
        )


class ReferenceView(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    title: str
    description: str
    url: str
    tags: list[str]
    thumbnail: str | None = None

    @classmethod
    def from_reference(cls, reference: Reference) -> ReferenceView:
        return cls(
            id=reference.id,
            title=reference.title,
            description=reference.description,
            url=reference.url,
            tags=list(reference.tags),
            thumbnail=reference.thumbnail,
        )
