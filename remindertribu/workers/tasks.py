"""
Scheduled reminder run.

Beat triggers ``reminders.send_due`` once a day. Overlapping invocations are
safe against duplicate sends because each member is claimed with a
conditional write before dispatch.
"""
from __future__ import annotations

import datetime as dt
import logging
from functools import lru_cache
from typing import Any, Callable

from remindertribu.bot.whatsapp_client import WhatsAppClient
from remindertribu.core.config import BaseAppSettings, settings as default_settings
from remindertribu.services.eligibility import ReminderPolicy
from remindertribu.services.member_store import MemberStore
from remindertribu.services.reminder_runner import ReminderRunner, RunMode, utcnow
from remindertribu.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


def _build_store(settings: BaseAppSettings) -> MemberStore:
    return MemberStore.from_url(
        settings.DATABASE_URL,
        expiry_field=settings.MEMBER_EXPIRY_FIELD,
        timezone=settings.REMINDER_TIMEZONE,
    )


@lru_cache
def worker_store() -> MemberStore:
    """Store client shared by every task run in this worker process."""
    return _build_store(default_settings)


@lru_cache
def worker_gateway() -> WhatsAppClient:
    return WhatsAppClient.from_settings(default_settings)


def run_due_reminders(
    settings: BaseAppSettings | None = None,
    store: MemberStore | None = None,
    gateway: WhatsAppClient | None = None,
    clock: Callable[[], dt.datetime] | None = None,
) -> dict[str, Any]:
    """Run reminders once. A store built here is closed before returning."""
    settings = settings or default_settings
    owned_store = store is None
    store = store or _build_store(settings)
    gateway = gateway or WhatsAppClient.from_settings(settings)
    try:
        runner = ReminderRunner.from_settings(store, gateway, settings, clock=clock or utcnow)
        mode = RunMode.PREVIEW if settings.DRY_RUN else RunMode.APPLY
        report = runner.run(ReminderPolicy.from_settings(settings), mode)
    finally:
        if owned_store:
            store.close()
    logger.info("Scheduled reminders done: %s", {"mode": mode.value, "sent": report.sent_count})
    return report.to_dict()


@celery_app.task(name="reminders.send_due")
def send_due_reminders() -> dict[str, Any]:
    return run_due_reminders(store=worker_store(), gateway=worker_gateway())
