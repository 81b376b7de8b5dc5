"""
Health check endpoint for the SafeLine monitor.

Reports liveness, which alert kinds have a delivery channel configured,
and how many sessions are currently monitored.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    """Return ``{"status": "ok"}`` plus channel and session counts.

    ``status`` is ``"starting"`` until the engine is attached to app state.
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        return {"status": "starting", "channels": {}, "active_sessions": 0}
    return {
        "status": "ok",
        "channels": engine.dispatcher.channel_status(),
        "active_sessions": engine.active_count,
    }
