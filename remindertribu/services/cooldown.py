"""Minimum spacing between two reminders to the same member."""

from __future__ import annotations

import datetime as dt


def next_allowed_at(last_reminder_at: dt.datetime, cooldown_days: int) -> dt.datetime:
    return last_reminder_at + dt.timedelta(days=cooldown_days)


def cooldown_allows(last_reminder_at: dt.datetime | None, cooldown_days: int, now: dt.datetime) -> bool:
    """True when a new reminder may be sent.

    The window is plain elapsed time, not aligned to midnight.
    """
    if last_reminder_at is None:
        return True
    return now >= next_allowed_at(last_reminder_at, cooldown_days)
