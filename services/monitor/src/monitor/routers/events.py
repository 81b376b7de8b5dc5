"""
Collaborator event intake router for the SafeLine monitor.

Accepts raw call events (session started, transcript chunk, location
update, session ended) from the voice collaborator's webhook and queues
them on the in-process event source consumed by the engine.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from monitor.dependencies import get_event_source
from monitor.event_source import QueueEventSource, parse_call_event

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", status_code=202)
async def post_event(
    payload: dict[str, Any] = Body(...),
    source: QueueEventSource = Depends(get_event_source),
) -> dict[str, str]:
    try:
        event = parse_call_event(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False)) from exc
    try:
        await source.put(event)
    except RuntimeError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"status": "accepted", "type": event.type}
