"""In-memory views of member documents handed to the evaluators."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any

NAME_FIELDS = ("nome", "fullName", "cognome", "name")
PLAN_FIELDS = ("plan", "tesseramento")
DEFAULT_PLAN_LABEL = "tesseramento"


@dataclass(frozen=True)
class MemberRecord:
    """A member as read from the store.

    ``expiry`` and ``last_reminder_at`` are always timezone-aware UTC
    datetimes (or ``None``); the store converts every representation at
    read time.
    """

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    expiry: dt.datetime | None = None
    last_reminder_at: dt.datetime | None = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def display_name(self) -> str | None:
        parts = [str(self.data[key]).strip() for key in ("nome", "cognome", "fullName") if self.data.get(key)]
        joined = " ".join(part for part in parts if part)
        return joined or None

    @property
    def plan_label(self) -> str:
        for key in PLAN_FIELDS:
            value = self.data.get(key)
            if value and str(value).strip():
                return str(value).strip()
        return DEFAULT_PLAN_LABEL
