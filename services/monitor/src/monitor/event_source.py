"""
Call/voice collaborator event source for the SafeLine monitor.

The voice collaborator signals call start/end and streams transcript
chunks.  The monitor consumes them through :class:`CallEventSource`;
production and tests differ only in how events are produced.
:class:`QueueEventSource` is the in-process implementation fed by the
HTTP ingress (``POST /api/v1/events``) or directly by tests.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from sl_common.models.subject import Location, Subject


class SessionStarted(BaseModel):
    """A monitored call has connected."""

    type: Literal["session_started"] = "session_started"
    session_id: str | None = Field(
        default=None, min_length=1, max_length=128, description="Collaborator-assigned id."
    )
    subject: Subject
    location: Location | None = None
    call_ref: str | None = None


class TranscriptChunk(BaseModel):
    """A finalised piece of speech-to-text output."""

    type: Literal["transcript_chunk"] = "transcript_chunk"
    session_id: str
    text: str


class LocationUpdated(BaseModel):
    """The subject's device reported a new location."""

    type: Literal["location_updated"] = "location_updated"
    session_id: str
    location: Location


class SessionEnded(BaseModel):
    """The call has been hung up (may be signalled more than once)."""

    type: Literal["session_ended"] = "session_ended"
    session_id: str


CallEvent = Annotated[
    Union[SessionStarted, TranscriptChunk, LocationUpdated, SessionEnded],
    Field(discriminator="type"),
]

_call_event_adapter: TypeAdapter[Any] = TypeAdapter(CallEvent)


def parse_call_event(data: Any) -> CallEvent:
    """Validate a raw mapping (or JSON string) into a :data:`CallEvent`.

    Raises:
        pydantic.ValidationError: If the payload is not a known event.
    """
    if isinstance(data, (str, bytes)):
        return _call_event_adapter.validate_json(data)
    return _call_event_adapter.validate_python(data)


class CallEventSource(ABC):
    """An asynchronous stream of call events."""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[CallEvent]:
        """Yield events in the order the collaborator produced them."""


_CLOSED = object()


class QueueEventSource(CallEventSource):
    """In-process event source backed by an :class:`asyncio.Queue`.

    Args:
        maxsize: Queue bound (``0`` = unbounded).
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize)
        self._closed = False

    async def put(self, event: CallEvent) -> None:
        """Enqueue *event*.

        Raises:
            RuntimeError: If the source has been closed.
        """
        if self._closed:
            raise RuntimeError("event source is closed")
        await self._queue.put(event)

    async def close(self) -> None:
        """Stop iteration once already-queued events are consumed."""
        if not self._closed:
            self._closed = True
            await self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aiter__(self) -> AsyncIterator[CallEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
