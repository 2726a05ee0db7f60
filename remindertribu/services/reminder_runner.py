"""Renewal reminder runs.

A run walks the member collection once, in store order, and for every
member goes through: phone normalization, eligibility, cooldown, message
composition and (apply mode only) dispatch. Members are processed one at a
time; a dispatch failure is recorded and the run moves on.
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from remindertribu import metrics
from remindertribu.bot.whatsapp_client import WhatsAppClient
from remindertribu.core.exceptions import UpstreamError
from remindertribu.models.records import MemberRecord
from remindertribu.services.cooldown import cooldown_allows
from remindertribu.services.eligibility import ReminderPolicy, evaluate
from remindertribu.services.member_store import MemberStore
from remindertribu.services.message_composer import compose_message, template_components
from remindertribu.services.phone import DEFAULT_COUNTRY_CODE, first_dialable

logger = logging.getLogger(__name__)


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class RunMode(str, enum.Enum):
    PREVIEW = "preview"
    APPLY = "apply"


@dataclass
class RunReport:
    mode: RunMode
    candidate_count: int = 0
    sent_count: int = 0
    details: list[dict[str, Any]] = field(default_factory=list)

    @property
    def dry_run(self) -> bool:
        return self.mode is RunMode.PREVIEW

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "mode": self.mode.value,
            "candidateCount": self.candidate_count,
            "sentCount": self.sent_count,
            "details": self.details,
        }


@dataclass(frozen=True)
class _Candidate:
    member: MemberRecord
    phone: str
    days_left: int
    message: str


class ReminderRunner:
    def __init__(
        self,
        store: MemberStore,
        gateway: WhatsAppClient,
        phone_fields: list[str],
        template_name: str | None = None,
        template_language: str = "it",
        country_code: str = DEFAULT_COUNTRY_CODE,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.phone_fields = list(phone_fields)
        self.template_name = template_name
        self.template_language = template_language
        self.country_code = country_code
        self.clock = clock

    @classmethod
    def from_settings(cls, store: MemberStore, gateway: WhatsAppClient, settings, **kwargs: Any) -> ReminderRunner:
        return cls(
            store,
            gateway,
            phone_fields=settings.reminder_phone_fields,
            template_name=settings.WHATSAPP_TEMPLATE_NAME,
            template_language=settings.WHATSAPP_TEMPLATE_LANGUAGE,
            **kwargs,
        )

    def select(self, member: MemberRecord, policy: ReminderPolicy, now: dt.datetime) -> _Candidate | None:
        """Run the pure checks for one member; ``None`` means skipped."""
        _, phone = first_dialable(member.data, self.phone_fields, self.country_code)
        if phone is None:
            return None
        eligibility = evaluate(member, now, policy)
        if not eligibility.candidate:
            return None
        # Stored value only: candidates earlier in this run never count.
        if not cooldown_allows(member.last_reminder_at, policy.cooldown_days, now):
            return None
        return _Candidate(member, phone, eligibility.days_left, compose_message(member, eligibility.days_left))

    def run(self, policy: ReminderPolicy, mode: RunMode, now: dt.datetime | None = None) -> RunReport:
        now = now or self.clock()
        if mode is RunMode.APPLY:
            self.gateway.require_configured()

        report = RunReport(mode=mode)
        members = self.store.list_members()
        for member in members:
            candidate = self.select(member, policy, now)
            if candidate is None:
                continue
            if mode is RunMode.PREVIEW:
                report.candidate_count += 1
                report.details.append(self._preview_detail(candidate))
                continue
            self._dispatch(candidate, policy, now, report)

        logger.info(
            "Reminder run mode=%s scanned=%d candidates=%d sent=%d",
            mode.value,
            len(members),
            report.candidate_count,
            report.sent_count,
        )
        return report

    @staticmethod
    def _preview_detail(candidate: _Candidate) -> dict[str, Any]:
        member = candidate.member
        return {
            "id": member.id,
            "name": member.display_name,
            "phone": candidate.phone,
            "daysLeft": candidate.days_left,
            "plan": member.plan_label,
            "lastReminderAt": member.last_reminder_at.isoformat() if member.last_reminder_at else None,
            "message": candidate.message,
        }

    def _dispatch(self, candidate: _Candidate, policy: ReminderPolicy, now: dt.datetime, report: RunReport) -> None:
        member = candidate.member
        if not self.store.claim_reminder(member.id, now, policy.cooldown_days):
            # Another run stamped this member after our read: treat as cooldown-blocked.
            logger.info("Reminder for member %s already claimed, skipping", member.id)
            metrics.reminder_blocked()
            return

        report.candidate_count += 1
        detail: dict[str, Any] = {"id": member.id, "phone": candidate.phone, "daysLeft": candidate.days_left}
        try:
            if self.template_name:
                self.gateway.send_template(
                    candidate.phone,
                    self.template_name,
                    self.template_language,
                    template_components(member, candidate.days_left),
                )
            else:
                self.gateway.send_text(candidate.phone, candidate.message)
        except UpstreamError as exc:
            self.store.release_reminder(member.id, claimed_at=now, previous=member.last_reminder_at)
            metrics.reminder_failed()
            logger.warning("Reminder to member %s failed: %s", member.id, exc.message)
            detail.update(sent=False, error=exc.message)
        except Exception:
            self.store.release_reminder(member.id, claimed_at=now, previous=member.last_reminder_at)
            logger.exception("Reminder to member %s aborted the run", member.id)
            raise
        else:
            self.store.confirm_reminder(
                member.id,
                phone=candidate.phone,
                days_left=candidate.days_left,
                message=candidate.message,
                template=self.template_name,
                sent_at=now,
            )
            metrics.reminder_sent()
            report.sent_count += 1
            detail.update(sent=True, template=bool(self.template_name))
        report.details.append(detail)
