"""
Session registry for the SafeLine monitor.

Owns every live :class:`~sl_common.models.session.Session`, keyed by
session id.  The registry is the single synchronisation boundary:

* The id index is guarded by a short ``threading.Lock``; it is never
  held across an ``await``.
* Each session has its own ``asyncio.Lock``.  :meth:`locked` serialises
  all mutations of one session (FIFO, so chunks are processed in arrival
  order) while different sessions proceed independently.
* Callers outside the registry only ever receive deep-copied snapshots.

Ended sessions stay readable for ``retention_s`` seconds (audit queries,
late delivery reports) and are then purged by a clock timer.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from sl_common.clock import Clock, SystemClock, TimerHandle
from sl_common.models.alert import DeliveryResult
from sl_common.models.lexicon import Lexicon
from sl_common.models.session import Session, SessionStatus
from sl_common.models.subject import Location, Subject

from monitor.errors import DuplicateSessionError, NotFoundError, SessionEndedError

logger = structlog.get_logger()

DEFAULT_RETENTION_S: float = 3600.0


class _Slot:
    """Registry-private holder of one session and its lock."""

    __slots__ = ("session", "lock", "purge_handle")

    def __init__(self, session: Session) -> None:
        self.session = session
        self.lock = asyncio.Lock()
        self.purge_handle: TimerHandle | None = None


class SessionRegistry:
    """Thread-safe create/lookup/end/expire of monitored sessions.

    Args:
        clock: Time source for timestamps and purge timers.
        retention_s: Seconds an ended session remains readable.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        retention_s: float = DEFAULT_RETENTION_S,
    ) -> None:
        self._clock: Clock = clock or SystemClock()
        self.retention_s = retention_s
        self._slots: dict[str, _Slot] = {}
        # Never pruned, not even on purge: ids are reserved for the process lifetime.
        self._used_ids: set[str] = set()
        self._index_lock = threading.Lock()

    # ── creation / lookup ──

    def start(
        self,
        subject: Subject,
        location: Location | None = None,
        *,
        lexicon: Lexicon,
        session_id: str | None = None,
        call_ref: str | None = None,
    ) -> str:
        """Create a new active session and return its id.

        Args:
            subject: The protected person.
            location: Initial location, if known.
            lexicon: Lexicon snapshot the session will be evaluated with.
            session_id: Caller-supplied id (e.g. a call SID).  Assigned
                        by the registry when omitted.
            call_ref: External conversation reference.

        Raises:
            DuplicateSessionError: If *session_id* was ever used before.
        """
        with self._index_lock:
            if session_id is None:
                session_id = self._new_id()
            elif session_id in self._used_ids:
                raise DuplicateSessionError(session_id)
            session = Session(
                session_id=session_id,
                subject=subject,
                location=location,
                call_ref=call_ref,
                lexicon=lexicon,
                started_at=self._clock.now(),
            )
            self._used_ids.add(session_id)
            self._slots[session_id] = _Slot(session)

        logger.info("session_started", session_id=session_id, subject=subject.name)
        return session_id

    def _new_id(self) -> str:
        while True:
            candidate = str(uuid.uuid4())
            if candidate not in self._used_ids:
                return candidate

    def _slot(self, session_id: str) -> _Slot:
        with self._index_lock:
            slot = self._slots.get(session_id)
        if slot is None:
            raise NotFoundError(session_id)
        return slot

    def get(self, session_id: str) -> Session:
        """Return a snapshot of *session_id*.

        Raises:
            NotFoundError: If the id is unknown or purged.
        """
        return self._slot(session_id).session.snapshot()

    def list_active(self) -> list[Session]:
        """Point-in-time snapshots of every active session."""
        with self._index_lock:
            slots = list(self._slots.values())
        return [s.session.snapshot() for s in slots if s.session.is_active]

    def __contains__(self, session_id: object) -> bool:
        with self._index_lock:
            return session_id in self._slots

    def __len__(self) -> int:
        with self._index_lock:
            return len(self._slots)

    # ── mutation ──

    @asynccontextmanager
    async def locked(self, session_id: str) -> AsyncIterator[Session]:
        """Exclusive access to the live session object.

        Only the monitor's processing path should use this; the yielded
        object must not escape the ``async with`` block.  A session that
        leaves the block ended is scheduled for purge.

        Raises:
            NotFoundError: If the id is unknown or purged.
        """
        slot = self._slot(session_id)
        async with slot.lock:
            try:
                yield slot.session
            finally:
                if slot.session.status == SessionStatus.ENDED:
                    self._schedule_purge(session_id, slot)

    async def end(self, session_id: str) -> bool:
        """End *session_id*; ending an ended session is a no-op.

        Returns:
            ``True`` if this call performed the transition.

        Raises:
            NotFoundError: If the id is unknown or purged.
        """
        async with self.locked(session_id) as session:
            if not session.is_active:
                logger.debug("session_already_ended", session_id=session_id)
                return False
            session.mark_ended(self._clock.now())
        logger.info("session_ended", session_id=session_id)
        return True

    async def update_location(self, session_id: str, location: Location) -> None:
        """Refresh the subject's last-known location.

        Raises:
            NotFoundError: If the id is unknown or purged.
            SessionEndedError: If the session has ended.
        """
        async with self.locked(session_id) as session:
            if not session.is_active:
                raise SessionEndedError(session_id)
            session.location = location
        logger.debug("session_location_updated", session_id=session_id)

    def record_delivery(self, result: DeliveryResult) -> None:
        """Append a dispatch outcome to the session's audit trail.

        Accepted for ended sessions; ignored once the session is purged.
        """
        with self._index_lock:
            slot = self._slots.get(result.session_id)
        if slot is None:
            logger.debug("delivery_for_purged_session", event_id=result.event_id)
            return
        slot.session.deliveries.append(result)

    # ── expiry ──

    def _schedule_purge(self, session_id: str, slot: _Slot) -> None:
        if slot.purge_handle is not None:
            return
        slot.purge_handle = self._clock.call_later(self.retention_s, self.purge, session_id)

    def purge(self, session_id: str) -> None:
        """Drop *session_id* from the registry (its id stays reserved)."""
        with self._index_lock:
            slot = self._slots.pop(session_id, None)
        if slot is None:
            return
        if slot.purge_handle is not None:
            slot.purge_handle.cancel()
        logger.info("session_purged", session_id=session_id)
