"""
Trigger/safe phrase classification for the SafeLine monitor.

Pure functions: given a lexicon and the accumulated (normalised)
transcript, report whether it contains a trigger phrase (EMERGENCY), a
safe phrase (SAFE) or neither.  When both are present EMERGENCY wins and
the match is flagged ambiguous.  Within a class the first phrase in
lexicon order that occurs is reported.

The optional ``since`` offset restricts the scan to phrase occurrences
that *end* after that position, i.e. that involve newly appended text.
Occurrences straddling the boundary still count, so a phrase split
across two chunks is detected when the second chunk arrives.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from sl_common.models.lexicon import Lexicon


class Classification(str, enum.Enum):
    """Result class of a transcript scan."""

    EMERGENCY = "emergency"
    SAFE = "safe"
    NONE = "none"


@dataclass(frozen=True)
class PhraseMatch:
    """Outcome of :func:`classify`.

    Attributes:
        classification: EMERGENCY, SAFE or NONE.
        phrase: The reported phrase (``None`` for NONE).
        ambiguous: ``True`` when trigger and safe phrases were both present.
    """

    classification: Classification
    phrase: str | None = None
    ambiguous: bool = False


NO_MATCH = PhraseMatch(Classification.NONE)


def normalise_transcript(text: str) -> str:
    """Lower-case *text* and collapse runs of whitespace to one space."""
    return " ".join(text.lower().split())


def first_match(phrases: Iterable[str], text: str, since: int = 0) -> str | None:
    """Return the first phrase with an occurrence in *text* ending after *since*."""
    for phrase in phrases:
        start = max(0, since - len(phrase) + 1)
        if text.find(phrase, start) != -1:
            return phrase
    return None


def classify(lexicon: Lexicon, transcript: str, *, since: int = 0) -> PhraseMatch:
    """Classify a normalised transcript against *lexicon*.

    Args:
        lexicon: Vocabulary snapshot to match against.
        transcript: Lower-cased accumulated transcript.
        since: Only count occurrences ending after this offset
               (``0`` scans the whole transcript).
    """
    trigger = first_match(lexicon.trigger_phrases, transcript, since)
    safe = first_match(lexicon.safe_phrases, transcript, since)
    if trigger is not None:
        return PhraseMatch(Classification.EMERGENCY, trigger, ambiguous=safe is not None)
    if safe is not None:
        return PhraseMatch(Classification.SAFE, safe)
    return NO_MATCH
