from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.dependencies import get_capture_service
from backend.app.models.capture_contracts import (
    AddTagRequest,
    CaptureSessionView,
    EditDescriptionRequest,
    EnrichmentView,
    ReferenceView,
    SessionOpenedResponse,
    SubmitThoughtRequest,
    SubmitUrlRequest,
    ThoughtAcceptedResponse,
    VideoMetadataView,
)
from backend.app.services.capture_service import CaptureService, CaptureSessionNotFoundError
from backend.app.services.capture_session import CaptureSession
from backend.app.services.reference_assembler import ReferenceNotReadyError

router = APIRouter()

CaptureServiceDep = Annotated[CaptureService, Depends(get_capture_service)]


def _resolve_session(service: CaptureService, session_id: str) -> CaptureSession:
    try:
        return service.get_session(session_id)
    except CaptureSessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _enrichment_view(session: CaptureSession) -> EnrichmentView:
    return EnrichmentView.from_state(
        session.observe_enrichment(),
        pending_thoughts=session.pending_thoughts,
    )


@router.post(
    "/capture/sessions",
    response_model=SessionOpenedResponse,
    status_code=201,
    tags=["capture"],
    operation_id="capture_session_open",
)
async def open_capture_session(service: CaptureServiceDep) -> SessionOpenedResponse:
    session_id, _ = service.open_session()
    return SessionOpenedResponse(session_id=session_id)


@router.get(
    "/capture/sessions/{session_id}",
    response_model=CaptureSessionView,
    tags=["capture"],
    operation_id="capture_session_get",
)
async def get_capture_session(session_id: str, service: CaptureServiceDep) -> CaptureSessionView:
    session = _resolve_session(service, session_id)
    return CaptureSessionView.from_session(session_id, session)


@router.put(
    "/capture/sessions/{session_id}/url",
    response_model=CaptureSessionView,
    tags=["capture"],
    operation_id="capture_session_submit_url",
)
async def submit_capture_url(
    session_id: str,
    request: SubmitUrlRequest,
    service: CaptureServiceDep,
) -> CaptureSessionView:
    session = _resolve_session(service, session_id)
    context_tokens = bind_contextvars(capture_session_id=session_id)
    try:
        await session.submit_reference(request.url)
    finally:
        reset_contextvars(**context_tokens)
    return CaptureSessionView.from_session(session_id, session)


@router.get(
    "/capture/sessions/{session_id}/metadata",
    response_model=VideoMetadataView | None,
    tags=["capture"],
    operation_id="capture_session_metadata",
)
async def observe_capture_metadata(
    session_id: str,
    service: CaptureServiceDep,
) -> VideoMetadataView | None:
    session = _resolve_session(service, session_id)
    return VideoMetadataView.from_metadata(session.observe_metadata())


@router.post(
    "/capture/sessions/{session_id}/thoughts",
    response_model=ThoughtAcceptedResponse,
    status_code=202,
    tags=["capture"],
    operation_id="capture_session_submit_thought",
)
async def submit_capture_thought(
    session_id: str,
    request: SubmitThoughtRequest,
    service: CaptureServiceDep,
) -> ThoughtAcceptedResponse:
    session = _resolve_session(service, session_id)
    accepted = session.submit_thought(request.text)
    return ThoughtAcceptedResponse(accepted=accepted, pending_thoughts=session.pending_thoughts)


@router.get(
    "/capture/sessions/{session_id}/enrichment",
    response_model=EnrichmentView,
    tags=["capture"],
    operation_id="capture_session_enrichment",
)
async def observe_capture_enrichment(
    session_id: str,
    service: CaptureServiceDep,
) -> EnrichmentView:
    return _enrichment_view(_resolve_session(service, session_id))


@router.post(
    "/capture/sessions/{session_id}/tags",
    response_model=EnrichmentView,
    tags=["capture"],
    operation_id="capture_session_add_tag",
)
async def add_capture_tag(
    session_id: str,
    request: AddTagRequest,
    service: CaptureServiceDep,
) -> EnrichmentView:
    session = _resolve_session(service, session_id)
    session.add_tag(request.tag)
    return _enrichment_view(session)


@router.delete(
    "/capture/sessions/{session_id}/tags/{tag:path}",
    response_model=EnrichmentView,
    tags=["capture"],
    operation_id="capture_session_remove_tag",
)
async def remove_capture_tag(
    session_id: str,
    tag: str,
    service: CaptureServiceDep,
) -> EnrichmentView:
    session = _resolve_session(service, session_id)
    if not session.remove_tag(tag):
        raise HTTPException(status_code=404, detail=f"tag not found: {tag}")
    return _enrichment_view(session)


@router.put(
    "/capture/sessions/{session_id}/description",
    response_model=EnrichmentView,
    tags=["capture"],
    operation_id="capture_session_edit_description",
)
async def edit_capture_description(
    session_id: str,
    request: EditDescriptionRequest,
    service: CaptureServiceDep,
) -> EnrichmentView:
    session = _resolve_session(service, session_id)
    session.edit_description(request.description)
    return _enrichment_view(session)


@router.post(
    "/capture/sessions/{session_id}/finalize",
    response_model=ReferenceView,
    status_code=201,
    tags=["capture"],
    operation_id="capture_session_finalize",
)
async def finalize_capture_session(session_id: str, service: CaptureServiceDep) -> ReferenceView:
    _resolve_session(service, session_id)
    try:
        reference = service.finalize(session_id)
    except ReferenceNotReadyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return ReferenceView.from_reference(reference)


@router.delete(
    "/capture/sessions/{session_id}",
    status_code=204,
    tags=["capture"],
    operation_id="capture_session_cancel",
)
async def cancel_capture_session(session_id: str, service: CaptureServiceDep) -> Response:
    _resolve_session(service, session_id)
    service.cancel(session_id)
    return Response(status_code=204)


@router.get(
    "/references",
    response_model=list[ReferenceView],
    tags=["references"],
    operation_id="references_list",
)
async def list_references(
    service: CaptureServiceDep,
    q: Annotated[str | None, Query(max_length=200)] = None,
) -> list[ReferenceView]:
    return [ReferenceView.from_reference(reference) for reference in service.list_references(q)]
