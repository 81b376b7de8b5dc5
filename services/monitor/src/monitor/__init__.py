"""
SafeLine Session Monitor.

Owns the lifecycle of active safety calls: receives transcript chunks
from the voice collaborator, classifies them against the trigger/safe
lexicon, decides when to escalate (cooldown and per-session cap) and
hands alert events to the notification dispatcher.
"""
