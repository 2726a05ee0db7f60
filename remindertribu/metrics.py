"""Metrics facade.

Service code should ONLY call the semantic helpers here so the backend can
change freely.
"""

from __future__ import annotations

from prometheus_client import Counter

_REMINDERS_SENT = Counter("reminders_sent_total", "Reminders delivered by the gateway")
_REMINDERS_FAILED = Counter("reminders_failed_total", "Reminder dispatches rejected by the gateway")
_REMINDERS_BLOCKED = Counter(
    "reminders_blocked_total", "Reminders skipped because the cooldown claim was lost"
)
_PHONE_FIELDS_NORMALIZED = Counter(
    "phone_fields_normalized_total", "Phone fields rewritten to canonical form", ["dry_run"]
)
_PHONE_FIELDS_INVALID = Counter("phone_fields_invalid_total", "Phone fields that could not be normalized")


def reminder_sent() -> None:
    _REMINDERS_SENT.inc()


def reminder_failed() -> None:
    _REMINDERS_FAILED.inc()


def reminder_blocked() -> None:
    _REMINDERS_BLOCKED.inc()


def phone_fields_normalized(count: int, dry_run: bool) -> None:
    if count:
        _PHONE_FIELDS_NORMALIZED.labels(dry_run=str(dry_run).lower()).inc(count)


def phone_fields_invalid(count: int) -> None:
    if count:
        _PHONE_FIELDS_INVALID.inc(count)
