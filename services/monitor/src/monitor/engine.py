"""
Monitoring engine for SafeLine.

Wires the session registry, phrase matcher, decision policy and
notification dispatcher into the processing path for one transcript
chunk:

1. Resolve the session and take its lock (per-session FIFO).
2. Reject the chunk if the session has ended.
3. Append the chunk, classify the newly extended transcript, apply the
   decision policy.
4. Release the lock, then hand any emitted alert event to the dispatcher
   on a background task.  A slow or failing delivery never holds the
   session lock.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog
from prometheus_client import Counter

from sl_common.clock import Clock, SystemClock
from sl_common.models.alert import AlertEvent, AlertKind, DeliveryResult
from sl_common.models.lexicon import Lexicon
from sl_common.models.session import Session
from sl_common.models.subject import Location, Subject

from alerts.dispatcher import NotificationDispatcher

from monitor.errors import SessionEndedError, SessionError
from monitor.event_source import (
    CallEvent,
    CallEventSource,
    LocationUpdated,
    SessionEnded,
    SessionStarted,
    TranscriptChunk,
)
from monitor.phrase_matcher import Classification, classify, normalise_transcript
from monitor.policy import AlertDecisionPolicy, Decision, Outcome
from monitor.registry import SessionRegistry

logger = structlog.get_logger()

# ── Prometheus metrics ──
monitor_sessions_total = Counter(
    "monitor_sessions_total",
    "Monitored sessions started and ended",
    ["event"],
)
monitor_chunks_processed_total = Counter(
    "monitor_chunks_processed_total",
    "Transcript chunks processed, by decision outcome",
    ["outcome"],
)
monitor_chunks_rejected_total = Counter(
    "monitor_chunks_rejected_total",
    "Transcript chunks rejected because their session had ended",
)
monitor_ambiguous_total = Counter(
    "monitor_ambiguous_classifications_total",
    "Chunks where trigger and safe phrases were both present",
)


@dataclass(frozen=True)
class ProcessResult:
    """What happened to one transcript chunk (or manual test alert).

    Attributes:
        session_id: The session the chunk belonged to.
        outcome: Policy decision.
        classification: Matcher classification.
        matched_phrase: Phrase that fired, if any.
        event: Alert event handed to the dispatcher, if any.
        dispatch: Background delivery task for ``event``.
    """

    session_id: str
    outcome: Outcome
    classification: Classification
    matched_phrase: str | None = None
    event: AlertEvent | None = None
    dispatch: asyncio.Task[DeliveryResult] | None = field(default=None, compare=False, repr=False)


class MonitoringEngine:
    """Owns the monitoring data flow for every active safety call.

    Args:
        registry: Session store and synchronisation boundary.
        dispatcher: Notification dispatcher; its result callback is
                    pointed at ``registry.record_delivery``.
        lexicon: Initial process-wide lexicon.
        policy: Decision policy (built on *clock* when omitted).
        clock: Time source shared with the policy.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        dispatcher: NotificationDispatcher,
        lexicon: Lexicon,
        *,
        policy: AlertDecisionPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._registry = registry
        self._dispatcher = dispatcher
        self._lexicon = lexicon
        self._clock: Clock = clock or SystemClock()
        self._policy = policy or AlertDecisionPolicy(self._clock)
        self._dispatcher.set_result_callback(self._registry.record_delivery)

    # ── configuration ──

    @property
    def lexicon(self) -> Lexicon:
        """The lexicon new sessions will snapshot."""
        return self._lexicon

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def active_count(self) -> int:
        """Number of sessions currently being monitored."""
        return len(self._registry.list_active())

    def replace_lexicon(self, lexicon: Lexicon) -> None:
        """Atomically swap the lexicon; running sessions keep their snapshot."""
        self._lexicon = lexicon
        logger.info(
            "lexicon_replaced",
            triggers=len(lexicon.trigger_phrases),
            safe=len(lexicon.safe_phrases),
            cooldown_s=lexicon.cooldown_s,
            max_alerts=lexicon.max_alerts_per_session,
        )

    # ── session lifecycle ──

    async def start_session(
        self,
        subject: Subject,
        location: Location | None = None,
        *,
        session_id: str | None = None,
        call_ref: str | None = None,
    ) -> str:
        """Register a new monitored call and log its start downstream.

        Raises:
            DuplicateSessionError: If *session_id* was used before.
        """
        sid = self._registry.start(
            subject,
            location,
            lexicon=self._lexicon,
            session_id=session_id,
            call_ref=call_ref,
        )
        monitor_sessions_total.labels(event="started").inc()
        self._dispatcher.submit(
            AlertEvent(
                session_id=sid,
                sequence=0,
                kind=AlertKind.CALL_STARTED,
                subject=subject,
                location=location,
                call_ref=call_ref,
                created_at=self._clock.now(),
            )
        )
        return sid

    async def end_session(self, session_id: str) -> bool:
        """End a session (idempotent).  In-flight dispatches continue.

        Raises:
            NotFoundError: If the id is unknown or purged.
        """
        ended = await self._registry.end(session_id)
        if ended:
            monitor_sessions_total.labels(event="ended").inc()
        return ended

    async def update_location(self, session_id: str, location: Location) -> None:
        """Refresh the subject's last-known location."""
        await self._registry.update_location(session_id, location)

    def get_session(self, session_id: str) -> Session:
        """Snapshot of one session (active or recently ended)."""
        return self._registry.get(session_id)

    def list_active(self) -> list[Session]:
        """Snapshots of all active sessions."""
        return self._registry.list_active()

    # ── transcript processing ──

    async def process_transcript(self, session_id: str, text: str) -> ProcessResult:
        """Append *text* to the session transcript and act on it.

        Raises:
            NotFoundError: If the id is unknown or purged.
            SessionEndedError: If the session has ended.
        """
        log = logger.bind(session_id=session_id)
        try:
            async with self._registry.locked(session_id) as session:
                if not session.is_active:
                    raise SessionEndedError(session_id)
                since = len(normalise_transcript(session.transcript_text))
                session.append_chunk(text)
                match = classify(
                    session.lexicon,
                    normalise_transcript(session.transcript_text),
                    since=since,
                )
                decision = self._policy.apply(session, match)
        except SessionEndedError:
            monitor_chunks_rejected_total.inc()
            log.warning("transcript_rejected_session_ended")
            raise

        if match.ambiguous:
            monitor_ambiguous_total.inc()
            log.warning("classification_ambiguous", reported_phrase=match.phrase)

        result = self._finish(session_id, decision, match.classification, match.phrase)
        log.info(
            "transcript_processed",
            outcome=result.outcome.value,
            classification=result.classification.value,
            phrase=result.matched_phrase,
        )
        return result

    async def trigger_test_alert(self, session_id: str, phrase: str = "help") -> ProcessResult:
        """Run a manual emergency through the policy (cooldown and cap apply).

        Raises:
            NotFoundError: If the id is unknown or purged.
            SessionEndedError: If the session has ended.
        """
        async with self._registry.locked(session_id) as session:
            if not session.is_active:
                raise SessionEndedError(session_id)
            decision = self._policy.escalate(
                session,
                phrase,
                excerpt=f"Test emergency trigger: {phrase}",
            )
        logger.info("test_alert_triggered", session_id=session_id, outcome=decision.outcome.value)
        return self._finish(session_id, decision, Classification.EMERGENCY, phrase)

    def _finish(
        self,
        session_id: str,
        decision: Decision,
        classification: Classification,
        phrase: str | None,
    ) -> ProcessResult:
        monitor_chunks_processed_total.labels(outcome=decision.outcome.value).inc()
        if decision.outcome == Outcome.SAFE_ARRIVAL:
            monitor_sessions_total.labels(event="ended").inc()
        task = self._dispatcher.submit(decision.event) if decision.event is not None else None
        return ProcessResult(
            session_id=session_id,
            outcome=decision.outcome,
            classification=classification,
            matched_phrase=phrase,
            event=decision.event,
            dispatch=task,
        )

    # ── event source ──

    async def handle(self, event: CallEvent) -> None:
        """Apply one collaborator event."""
        if isinstance(event, SessionStarted):
            await self.start_session(
                event.subject,
                event.location,
                session_id=event.session_id,
                call_ref=event.call_ref,
            )
        elif isinstance(event, TranscriptChunk):
            await self.process_transcript(event.session_id, event.text)
        elif isinstance(event, LocationUpdated):
            await self.update_location(event.session_id, event.location)
        elif isinstance(event, SessionEnded):
            await self.end_session(event.session_id)

    async def run(self, source: CallEventSource) -> None:
        """Consume *source* until it is exhausted.

        Events are handled one at a time, so chunks for a session are
        processed in arrival order.  Session errors and unexpected
        failures are logged and the event dropped; they never stop the loop.
        """
        log = logger.bind(component="event_consumer")
        log.info("event_consumer_started")
        async for event in source:
            try:
                await self.handle(event)
            except SessionError as exc:
                log.warning(
                    "call_event_rejected",
                    event_type=event.type,
                    session_id=exc.session_id,
                    error=str(exc),
                )
            except Exception:
                log.exception("call_event_failed", event_type=event.type)
        log.info("event_consumer_stopped")

    async def aclose(self) -> None:
        """Let pending notifications finish, then release channels."""
        await self._dispatcher.close()
