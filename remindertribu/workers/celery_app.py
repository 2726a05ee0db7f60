from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from remindertribu.core.config import settings


def beat_schedule(hour: int) -> dict:
    return {
        "daily-renewal-reminders": {
            "task": "reminders.send_due",
            "schedule": crontab(minute=0, hour=hour),
        }
    }


def _create_celery() -> Celery:
    celery = Celery(
        "remindertribu",
        broker=settings.REDIS_URL,
        backend=settings.REDIS_URL,
        include=["remindertribu.workers.tasks"],
    )
    celery.conf.update(
        task_default_queue="default",
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone=settings.REMINDER_TIMEZONE,
        enable_utc=True,
        task_always_eager=settings.ENV.lower() in {"test"},
    )
    # Beat schedule (only active outside test env)
    if settings.ENV.lower() not in {"test"}:
        celery.conf.beat_schedule = beat_schedule(settings.REMINDER_SCHEDULE_HOUR)
    return celery


celery_app = _create_celery()
