"""
Session API router for the SafeLine monitor.

Endpoints the voice collaborator (and operators) use to start a
monitored call, stream transcript chunks, refresh the location, end the
call, fire a manual test alert and inspect session state.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from sl_common.models.subject import Location, Subject

from monitor.dependencies import get_engine
from monitor.engine import MonitoringEngine, ProcessResult
from monitor.errors import DuplicateSessionError, NotFoundError, SessionEndedError
from monitor.schemas import (
    ManualAlertRequest,
    ProcessResponse,
    SessionDetailResponse,
    SessionListResponse,
    SessionStartRequest,
    SessionStartResponse,
    SessionSummary,
    TranscriptRequest,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _to_response(result: ProcessResult) -> ProcessResponse:
    return ProcessResponse(
        session_id=result.session_id,
        outcome=result.outcome.value,
        classification=result.classification.value,
        matched_phrase=result.matched_phrase,
        event_id=result.event.event_id if result.event is not None else None,
    )


@router.post("", status_code=201, response_model=SessionStartResponse)
async def start_session(
    body: SessionStartRequest,
    engine: MonitoringEngine = Depends(get_engine),
) -> SessionStartResponse:
    subject = Subject(
        name=body.name,
        phone=body.phone,
        emergency_contacts=tuple(body.emergency_contacts),
    )
    try:
        session_id = await engine.start_session(
            subject,
            body.location,
            session_id=body.session_id,
            call_ref=body.call_ref,
        )
    except DuplicateSessionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    session = engine.get_session(session_id)
    return SessionStartResponse(
        session_id=session_id,
        status=session.status.value,
        started_at=session.started_at,
    )


@router.get("", response_model=SessionListResponse)
async def list_sessions(engine: MonitoringEngine = Depends(get_engine)) -> SessionListResponse:
    sessions = [SessionSummary.from_session(s) for s in engine.list_active()]
    return SessionListResponse(sessions=sessions, total=len(sessions))


@router.get("/{session_id}", response_model=SessionDetailResponse)
async def get_session(
    session_id: str,
    engine: MonitoringEngine = Depends(get_engine),
) -> SessionDetailResponse:
    try:
        session = engine.get_session(session_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return SessionDetailResponse.from_session(session)


@router.post("/{session_id}/transcript", response_model=ProcessResponse)
async def post_transcript(
    session_id: str,
    body: TranscriptRequest,
    engine: MonitoringEngine = Depends(get_engine),
) -> ProcessResponse:
    try:
        result = await engine.process_transcript(session_id, body.text)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SessionEndedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _to_response(result)


@router.patch("/{session_id}/location", status_code=204)
async def update_location(
    session_id: str,
    body: Location,
    engine: MonitoringEngine = Depends(get_engine),
) -> None:
    try:
        await engine.update_location(session_id, body)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SessionEndedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/{session_id}/end", status_code=200)
async def end_session(
    session_id: str,
    engine: MonitoringEngine = Depends(get_engine),
) -> dict[str, str]:
    try:
        await engine.end_session(session_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"status": "ended"}


@router.post("/{session_id}/test-alert", response_model=ProcessResponse)
async def test_alert(
    session_id: str,
    body: ManualAlertRequest | None = None,
    engine: MonitoringEngine = Depends(get_engine),
) -> ProcessResponse:
    phrase = body.phrase if body is not None else "help"
    try:
        result = await engine.trigger_test_alert(session_id, phrase)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SessionEndedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _to_response(result)
