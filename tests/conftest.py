from __future__ import annotations

import datetime as dt
import os
from typing import Any

os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from remindertribu.api.main import create_app  # noqa: E402
from remindertribu.bot.whatsapp_client import WhatsAppClient  # noqa: E402
from remindertribu.core.config import TestSettings  # noqa: E402
from remindertribu.core.exceptions import UpstreamError  # noqa: E402
from remindertribu.services.eligibility import ReminderPolicy  # noqa: E402
from remindertribu.services.member_store import MemberStore  # noqa: E402

# 11:00 in Rome
FIXED_NOW = dt.datetime(2026, 10, 19, 9, 0, tzinfo=dt.timezone.utc)


class RecordingGateway(WhatsAppClient):
    """WhatsAppClient double: records payloads instead of calling Meta.

    Numbers listed in ``fail_for`` (E.164 without ``+``) get a gateway error.
    """

    def __init__(self, configured: bool = True, fail_for: set[str] | None = None):
        super().__init__("test-token" if configured else None, "1234567890" if configured else None)
        self.sent: list[dict[str, Any]] = []
        self.fail_for = fail_for or set()

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_configured()
        if payload["to"] in self.fail_for:
            raise UpstreamError("Meta API error: (#131026) Message undeliverable", status_code=400)
        self.sent.append(payload)
        return {
            "messaging_product": "whatsapp",
            "contacts": [{"input": payload["to"], "wa_id": payload["to"]}],
            "messages": [{"id": f"wamid.{len(self.sent)}"}],
        }


@pytest.fixture
def now() -> dt.datetime:
    return FIXED_NOW


@pytest.fixture
def store() -> MemberStore:
    member_store = MemberStore.from_url("sqlite:///:memory:", timezone="Europe/Rome")
    member_store.create_schema()
    return member_store


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def policy() -> ReminderPolicy:
    return ReminderPolicy(days_ahead=7, only_expired=False, cooldown_days=7, timezone="Europe/Rome")


@pytest.fixture
def add_member(store, now):
    """Insert a member whose expiry is ``days`` from the fixed clock (ISO date string)."""

    def _add(member_id: str, days: int | None = None, last_reminder_days_ago: float | None = None, **data: Any):
        if days is not None:
            data.setdefault("dataScadenza", (now + dt.timedelta(days=days)).date().isoformat())
        last = now - dt.timedelta(days=last_reminder_days_ago) if last_reminder_days_ago is not None else None
        return store.add_member(data, member_id=member_id, last_reminder_at=last)

    return _add


@pytest.fixture
def make_client(store, gateway, now):
    """Factory for a TestClient bound to the shared store, gateway and clock."""

    def _make(gateway_override: WhatsAppClient | None = None, **overrides: Any) -> TestClient:
        settings = TestSettings(**overrides)
        app = create_app(settings=settings, store=store, gateway=gateway_override or gateway, clock=lambda: now)
        return TestClient(app, raise_server_exceptions=False)

    return _make
