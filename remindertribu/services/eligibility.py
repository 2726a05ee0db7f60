"""Decide whether a member falls inside the reminder window."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from remindertribu.models.records import MemberRecord


@dataclass(frozen=True)
class ReminderPolicy:
    days_ahead: int = 7
    only_expired: bool = False
    cooldown_days: int = 7
    timezone: str = "Europe/Rome"

    @classmethod
    def from_settings(cls, settings) -> ReminderPolicy:
        return cls(
            days_ahead=settings.REMINDER_DAYS_AHEAD,
            only_expired=settings.REMINDER_ONLY_EXPIRED,
            cooldown_days=settings.REMINDER_COOLDOWN_DAYS,
            timezone=settings.REMINDER_TIMEZONE,
        )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class Eligibility:
    candidate: bool
    days_left: int | None


def days_until(expiry: dt.datetime, now: dt.datetime, tz: dt.tzinfo) -> int:
    """Whole calendar days from ``now`` to ``expiry`` in ``tz``.

    Both instants are reduced to their local date before subtracting, so the
    time of day never shifts the count. Negative means already expired.
    """
    return (expiry.astimezone(tz).date() - now.astimezone(tz).date()).days


def evaluate(member: MemberRecord, now: dt.datetime, policy: ReminderPolicy) -> Eligibility:
    if member.expiry is None:
        return Eligibility(candidate=False, days_left=None)

    days_left = days_until(member.expiry, now, policy.tz)
    if policy.only_expired:
        return Eligibility(candidate=days_left < 0, days_left=days_left)

    # Window is "at most N days ahead", already expired members included.
    horizon = now + dt.timedelta(days=policy.days_ahead)
    return Eligibility(candidate=member.expiry <= horizon, days_left=days_left)
