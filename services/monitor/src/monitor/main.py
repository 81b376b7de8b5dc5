"""
FastAPI application entry point for the SafeLine monitor.

Builds the session registry, notification dispatcher and monitoring
engine from settings at startup, runs the collaborator event consumer,
and exposes the session API, health and Prometheus metrics.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from sl_common.clock import SystemClock
from sl_common.config import Settings, get_settings
from sl_common.logging import configure_logging

from alerts.factory import build_dispatcher

from monitor import health
from monitor.engine import MonitoringEngine
from monitor.event_source import QueueEventSource
from monitor.middleware.logging import LoggingMiddleware
from monitor.registry import SessionRegistry
from monitor.routers import events, sessions

logger = structlog.get_logger()


def build_engine(settings: Settings) -> MonitoringEngine:
    """Wire a :class:`MonitoringEngine` from *settings*.

    Raises:
        ConfigurationError: If a mandatory notification endpoint is unset.
    """
    clock = SystemClock()
    registry = SessionRegistry(clock=clock, retention_s=settings.session_retention_s)
    dispatcher = build_dispatcher(settings, clock=clock)
    return MonitoringEngine(registry, dispatcher, settings.lexicon(), clock=clock)


def create_app(
    settings: Settings | None = None,
    *,
    engine: MonitoringEngine | None = None,
    event_source: QueueEventSource | None = None,
) -> FastAPI:
    """Build and return the fully-configured FastAPI application.

    Args:
        settings: Service settings (``get_settings()`` when omitted).
        engine: Pre-built engine.  When omitted the engine is built from
                *settings* at startup, so missing endpoints fail there
                rather than at import.
        event_source: Collaborator event queue (created when omitted).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Startup / shutdown lifecycle."""
        configure_logging(settings.log_level, json_output=settings.log_json)
        if app.state.engine is None:
            app.state.engine = build_engine(settings)
        if app.state.event_source is None:
            app.state.event_source = QueueEventSource()
        consumer = asyncio.create_task(
            app.state.engine.run(app.state.event_source), name="call-event-consumer"
        )
        logger.info("monitor_service_starting", port=settings.api_port)

        yield

        logger.info("monitor_service_stopping")
        await app.state.event_source.close()
        await consumer
        await app.state.engine.aclose()

    app = FastAPI(
        title="SafeLine Monitor",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.event_source = event_source

    # ── Routers (under /api/v1 prefix) ──
    api_prefix = "/api/v1"
    app.include_router(sessions.router, prefix=api_prefix)
    app.include_router(events.router, prefix=api_prefix)

    app.include_router(health.router)
    app.mount("/metrics", make_asgi_app())

    app.add_middleware(LoggingMiddleware)
    return app


app = create_app()

if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(
        "monitor.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=False,
    )
