"""
SafeLine Alert Dispatch.

Delivers emergency and safe-arrival alert events to the notification
channel configured for each event kind, retrying transient failures with
bounded exponential backoff and reporting permanent failures to operators.
"""
