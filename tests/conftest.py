"""Shared pytest fixtures for integration tests.

The full monitor pipeline runs against real webhook channels whose HTTP
traffic is served by an ``httpx.MockTransport`` recorder instead of the
network, and against a manual clock instead of real time.
"""

from __future__ import annotations

import json

import httpx
import pytest

from sl_common.clock import ManualClock


class WebhookRecorder:
    """Records webhook requests; per-URL status codes can be scripted."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.scripts: dict[str, list[int]] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        script = self.scripts.get(str(request.url))
        status = script.pop(0) if script else 200
        return httpx.Response(status, json={"accepted": status < 400})

    def bodies(self, url: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if str(r.url) == url]

    def idempotency_keys(self, url: str) -> list[str]:
        return [r.headers["Idempotency-Key"] for r in self.requests if str(r.url) == url]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture()
def recorder() -> WebhookRecorder:
    return WebhookRecorder()


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()
