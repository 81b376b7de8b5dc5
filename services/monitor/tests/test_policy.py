"""
Tests for the alert decision policy.

Drives the monitoring state machine directly with classified matches
and a manual clock: escalation, cooldown, cap and safe arrival.
"""

from __future__ import annotations

import pytest

from sl_common.models.alert import AlertKind
from sl_common.models.lexicon import Lexicon
from sl_common.models.session import MonitorState, Session, SessionStatus
from monitor.errors import SessionEndedError
from monitor.phrase_matcher import NO_MATCH, Classification, PhraseMatch
from monitor.policy import AlertDecisionPolicy, Outcome


_HELP = PhraseMatch(Classification.EMERGENCY, "help")
_HOME = PhraseMatch(Classification.SAFE, "reached home")


@pytest.fixture()
def policy(clock) -> AlertDecisionPolicy:
    return AlertDecisionPolicy(clock)


@pytest.fixture()
def session(subject, location) -> Session:
    s = Session(
        session_id="s-1",
        subject=subject,
        location=location,
        call_ref="conv-1",
        lexicon=Lexicon(cooldown_s=300, max_alerts_per_session=3),
    )
    s.append_chunk("please help")
    return s


# ── no action ──


class TestNoAction:
    def test_none_classification(self, policy, session) -> None:
        decision = policy.apply(session, NO_MATCH)
        assert decision.outcome == Outcome.NO_ACTION
        assert decision.event is None
        assert session.state == MonitorState.MONITORING


# ── escalation ──


class TestEscalation:
    def test_first_trigger_escalates(self, policy, session, clock) -> None:
        decision = policy.apply(session, _HELP)
        assert decision.outcome == Outcome.ESCALATED
        assert session.alert_count == 1
        assert session.last_alert_at == clock.monotonic()
        assert session.state == MonitorState.ESCALATED

    def test_event_contents(self, policy, session, subject, location, clock) -> None:
        event = policy.apply(session, _HELP).event
        assert event is not None
        assert event.kind == AlertKind.EMERGENCY
        assert event.event_id == "s-1:1"
        assert event.subject == subject
        assert event.location == location
        assert event.matched_phrase == "help"
        assert event.transcript_excerpt == "please help"
        assert event.call_ref == "conv-1"
        assert event.created_at == clock.now()

    def test_excerpt_limited(self, clock, session) -> None:
        session.append_chunk("x" * 100)
        event = AlertDecisionPolicy(clock, excerpt_chars=20).apply(session, _HELP).event
        assert event is not None
        assert len(event.transcript_excerpt) == 20

    def test_cooldown_suppresses(self, policy, session, clock) -> None:
        policy.apply(session, _HELP)
        clock.advance(299)
        decision = policy.apply(session, _HELP)
        assert decision.outcome == Outcome.COOLDOWN_ACTIVE
        assert decision.event is None
        assert session.alert_count == 1

    def test_escalates_again_after_cooldown(self, policy, session, clock) -> None:
        policy.apply(session, _HELP)
        clock.advance(300)
        decision = policy.apply(session, _HELP)
        assert decision.outcome == Outcome.ESCALATED
        assert session.alert_count == 2
        assert decision.event is not None and decision.event.sequence == 2

    def test_cap_reached(self, policy, session, clock) -> None:
        for _ in range(3):
            assert policy.apply(session, _HELP).outcome == Outcome.ESCALATED
            clock.advance(300)
        decision = policy.apply(session, _HELP)
        assert decision.outcome == Outcome.CAP_REACHED
        assert session.alert_count == 3

    def test_cooldown_checked_before_cap(self, policy, session, clock) -> None:
        for i in range(3):
            if i:
                clock.advance(300)
            policy.apply(session, _HELP)
        assert session.alert_count == 3
        assert policy.apply(session, _HELP).outcome == Outcome.COOLDOWN_ACTIVE
        clock.advance(300)
        assert policy.apply(session, _HELP).outcome == Outcome.CAP_REACHED

    def test_zero_cooldown(self, clock, subject) -> None:
        s = Session(session_id="s-2", subject=subject, lexicon=Lexicon(cooldown_s=0))
        policy = AlertDecisionPolicy(clock)
        assert policy.apply(s, _HELP).outcome == Outcome.ESCALATED
        assert policy.apply(s, _HELP).outcome == Outcome.ESCALATED

    def test_manual_excerpt(self, policy, session) -> None:
        event = policy.escalate(session, "help", excerpt="Test emergency trigger: help").event
        assert event is not None
        assert event.transcript_excerpt == "Test emergency trigger: help"


# ── safe arrival ──


class TestSafeArrival:
    def test_safe_ends_session(self, policy, session, clock) -> None:
        decision = policy.apply(session, _HOME)
        assert decision.outcome == Outcome.SAFE_ARRIVAL
        assert decision.event is not None
        assert decision.event.kind == AlertKind.SAFE_ARRIVAL
        assert decision.event.matched_phrase == "reached home"
        assert session.status == SessionStatus.ENDED
        assert session.state == MonitorState.ENDED
        assert session.ended_at == clock.now()

    def test_safe_after_escalation_ignores_cooldown(self, policy, session) -> None:
        policy.apply(session, _HELP)
        decision = policy.apply(session, _HOME)
        assert decision.outcome == Outcome.SAFE_ARRIVAL
        assert decision.event is not None and decision.event.sequence == 2

    def test_safe_after_cap(self, policy, session, clock) -> None:
        for _ in range(3):
            policy.apply(session, _HELP)
            clock.advance(300)
        assert policy.apply(session, _HOME).outcome == Outcome.SAFE_ARRIVAL

    def test_ended_session_rejected(self, policy, session) -> None:
        policy.apply(session, _HOME)
        with pytest.raises(SessionEndedError):
            policy.apply(session, _HELP)
        with pytest.raises(SessionEndedError):
            policy.apply(session, NO_MATCH)
