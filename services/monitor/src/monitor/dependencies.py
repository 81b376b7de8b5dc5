"""
FastAPI dependency providers for the SafeLine monitor.

The engine and the collaborator event source are created during app
startup and stored on ``app.state``.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from monitor.engine import MonitoringEngine
from monitor.event_source import QueueEventSource


async def get_engine(request: Request) -> MonitoringEngine:
    """Return the shared :class:`MonitoringEngine` from app state."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Monitoring engine not ready")
    return engine


async def get_event_source(request: Request) -> QueueEventSource:
    """Return the in-process collaborator event source from app state."""
    source = getattr(request.app.state, "event_source", None)
    if source is None:
        raise HTTPException(status_code=503, detail="Event source not ready")
    return source
