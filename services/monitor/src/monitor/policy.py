"""
Alert decision policy for the SafeLine monitor.

The state machine at the heart of monitoring.  Given a session (held
under its registry lock) and the classification of the newest chunk:

* NONE       → nothing happens.
* EMERGENCY  → suppressed while the cooldown since the last escalation is
               running, then suppressed once the per-session cap is
               reached; otherwise ``alert_count`` is incremented,
               ``last_alert_at`` set, the session moves to ESCALATED and
               an EMERGENCY event is emitted.
* SAFE       → the session moves to RESOLVED, a SAFE_ARRIVAL event is
               emitted and the session ends.  No cooldown or cap applies.

Counters are never rolled back, even if delivery later fails, and never
reset within a session.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

import structlog

from sl_common.clock import Clock, SystemClock
from sl_common.models.alert import AlertEvent, AlertKind
from sl_common.models.session import DEFAULT_EXCERPT_CHARS, MonitorState, Session

from monitor.errors import SessionEndedError
from monitor.phrase_matcher import Classification, PhraseMatch

logger = structlog.get_logger()


class Outcome(str, enum.Enum):
    """What the policy decided for one chunk."""

    NO_ACTION = "no_action"
    COOLDOWN_ACTIVE = "cooldown_active"
    CAP_REACHED = "cap_reached"
    ESCALATED = "escalated"
    SAFE_ARRIVAL = "safe_arrival"


@dataclass(frozen=True)
class Decision:
    """Policy output: the outcome plus the event to dispatch, if any."""

    outcome: Outcome
    event: AlertEvent | None = None


class AlertDecisionPolicy:
    """Escalate, suppress or close out a session.

    Synchronous and non-blocking; mutates only the session it is given.

    Args:
        clock: Source of monotonic time (cooldown) and event timestamps.
        excerpt_chars: Length of the transcript tail attached to events.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        *,
        excerpt_chars: int = DEFAULT_EXCERPT_CHARS,
    ) -> None:
        self._clock: Clock = clock or SystemClock()
        self.excerpt_chars = excerpt_chars

    def apply(self, session: Session, match: PhraseMatch) -> Decision:
        """Run the state machine for one classified chunk.

        Raises:
            SessionEndedError: If the session has already ended.
        """
        if not session.is_active:
            raise SessionEndedError(session.session_id)
        if match.classification == Classification.EMERGENCY:
            return self.escalate(session, match.phrase or "")
        if match.classification == Classification.SAFE:
            return self.resolve(session, match.phrase or "")
        return Decision(Outcome.NO_ACTION)

    def escalate(self, session: Session, phrase: str, *, excerpt: str | None = None) -> Decision:
        """Emit an EMERGENCY event unless cooldown or cap suppress it."""
        if not session.is_active:
            raise SessionEndedError(session.session_id)

        log = logger.bind(session_id=session.session_id, phrase=phrase)
        lexicon = session.lexicon
        now = self._clock.monotonic()

        if session.last_alert_at is not None and now - session.last_alert_at < lexicon.cooldown_s:
            log.info(
                "escalation_suppressed_cooldown",
                remaining_s=round(lexicon.cooldown_s - (now - session.last_alert_at), 3),
            )
            return Decision(Outcome.COOLDOWN_ACTIVE)

        if session.alert_count >= lexicon.max_alerts_per_session:
            log.warning(
                "escalation_suppressed_cap",
                alert_count=session.alert_count,
                max_alerts=lexicon.max_alerts_per_session,
            )
            return Decision(Outcome.CAP_REACHED)

        session.alert_count += 1
        session.last_alert_at = now
        session.state = MonitorState.ESCALATED
        event = self._emit(session, AlertKind.EMERGENCY, phrase, excerpt)
        log.warning("session_escalated", alert_count=session.alert_count, event_id=event.event_id)
        return Decision(Outcome.ESCALATED, event)

    def resolve(self, session: Session, phrase: str) -> Decision:
        """Emit the SAFE_ARRIVAL event and end the session."""
        if not session.is_active:
            raise SessionEndedError(session.session_id)

        session.state = MonitorState.RESOLVED
        event = self._emit(session, AlertKind.SAFE_ARRIVAL, phrase, None)
        session.mark_ended(self._clock.now())
        logger.info(
            "session_resolved_safe_arrival",
            session_id=session.session_id,
            phrase=phrase,
            event_id=event.event_id,
        )
        return Decision(Outcome.SAFE_ARRIVAL, event)

    def _emit(
        self,
        session: Session,
        kind: AlertKind,
        phrase: str,
        excerpt: str | None,
    ) -> AlertEvent:
        session.alert_sequence += 1
        return AlertEvent(
            session_id=session.session_id,
            sequence=session.alert_sequence,
            kind=kind,
            subject=session.subject,
            location=session.location,
            matched_phrase=phrase,
            transcript_excerpt=excerpt if excerpt is not None else session.excerpt(self.excerpt_chars),
            call_ref=session.call_ref,
            created_at=self._clock.now(),
        )
