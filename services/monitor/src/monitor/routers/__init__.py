"""API routers for the SafeLine monitor ingress."""

from monitor.routers import events, sessions

__all__ = ["events", "sessions"]
