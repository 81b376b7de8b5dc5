"""
Tests for trigger/safe phrase classification.

Covers case-insensitive substring matching, trigger precedence,
lexicon-order reporting and the new-text (``since``) window.
"""

from __future__ import annotations

from sl_common.models.lexicon import Lexicon
from monitor.phrase_matcher import (
    Classification,
    NO_MATCH,
    classify,
    first_match,
    normalise_transcript,
)


_LEX = Lexicon(
    trigger_phrases=["help", "danger", "police"],
    safe_phrases=["reached home", "all good"],
)


# ── normalisation ──


class TestNormalise:
    def test_lower_cases(self) -> None:
        assert normalise_transcript("HeLP Me") == "help me"

    def test_collapses_whitespace(self) -> None:
        assert normalise_transcript("  reached \n\t home ") == "reached home"


# ── classification ──


class TestClassify:
    def test_no_phrase(self) -> None:
        assert classify(_LEX, "just walking to the bus stop") == NO_MATCH

    def test_trigger(self) -> None:
        match = classify(_LEX, "please help me")
        assert match.classification == Classification.EMERGENCY
        assert match.phrase == "help"
        assert match.ambiguous is False

    def test_safe(self) -> None:
        match = classify(_LEX, "ok i reached home now")
        assert match.classification == Classification.SAFE
        assert match.phrase == "reached home"

    def test_trigger_wins_over_safe(self) -> None:
        match = classify(_LEX, "reached home but i need help")
        assert match.classification == Classification.EMERGENCY
        assert match.ambiguous is True

    def test_first_in_lexicon_order_reported(self) -> None:
        match = classify(_LEX, "call the police, danger")
        assert match.phrase == "danger"

    def test_substring_match(self) -> None:
        assert classify(_LEX, "helpless").classification == Classification.EMERGENCY

    def test_empty_transcript(self) -> None:
        assert classify(_LEX, "") == NO_MATCH


# ── new-text window ──


class TestSince:
    def test_old_occurrence_ignored(self) -> None:
        text = "help i reached home"
        match = classify(_LEX, text, since=len("help"))
        assert match.classification == Classification.SAFE

    def test_phrase_straddling_boundary_counts(self) -> None:
        text = "i reached home"
        assert first_match(_LEX.safe_phrases, text, since=len("i reached")) == "reached home"

    def test_occurrence_ending_at_boundary_ignored(self) -> None:
        assert first_match(["help"], "help", since=4) is None

    def test_since_beyond_text(self) -> None:
        assert classify(_LEX, "help", since=100) == NO_MATCH
