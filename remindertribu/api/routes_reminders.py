"""Renewal reminder endpoints.

GET  /api/preview-expiries  - who would be reminded now (no sends, no writes)
GET|POST /api/send-reminders - send reminders, or preview them when DRY_RUN is on
"""
import logging
from typing import Any

from fastapi import APIRouter, Request

from remindertribu.api.dependencies import PolicyDep, ReminderRunnerDep, SettingsDep
from remindertribu.api.rate_limit import RATE_LIMITS, limiter
from remindertribu.services.reminder_runner import RunMode

logger = logging.getLogger(__name__)
router = APIRouter(tags=["reminders"])


@router.get("/preview-expiries")
def preview_expiries(runner: ReminderRunnerDep, policy: PolicyDep) -> dict[str, Any]:
    report = runner.run(policy, RunMode.PREVIEW)
    return {
        "ok": True,
        "onlyExpired": policy.only_expired,
        "cooldownDays": policy.cooldown_days,
        "count": report.candidate_count,
        "results": report.details,
    }


@router.api_route("/send-reminders", methods=["GET", "POST"])
@limiter.limit(RATE_LIMITS["reminder_run"])
def send_reminders(
    request: Request,
    runner: ReminderRunnerDep,
    policy: PolicyDep,
    settings: SettingsDep,
) -> dict[str, Any]:
    mode = RunMode.PREVIEW if settings.DRY_RUN else RunMode.APPLY
    report = runner.run(policy, mode)
    return {
        "ok": True,
        "dryRun": report.dry_run,
        "onlyExpired": policy.only_expired,
        "cooldownDays": policy.cooldown_days,
        "candidates": report.candidate_count,
        "sent": report.sent_count,
        "details": report.details,
    }
