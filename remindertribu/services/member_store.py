"""Member store client.

``MemberStore`` is created once per process (``api.main.create_app``) and
passed to every runner. It is also the single place where the different
date representations found in member documents are turned into aware UTC
datetimes, so evaluators never look at raw values.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session, sessionmaker

from remindertribu.core.exceptions import MemberNotFoundError
from remindertribu.db.base_class import Base
from remindertribu.db.session import build_engine, build_session_factory, session_scope
from remindertribu.models.models import Member, PhoneNormalizationLog, ReminderLog
from remindertribu.models.records import MemberRecord

logger = logging.getLogger(__name__)

UTC = dt.timezone.utc
MAX_BATCH_DOCS = 500


def to_instant(value: Any, tz: dt.tzinfo = UTC) -> dt.datetime | None:
    """Convert any stored date representation into an aware UTC datetime.

    Accepts ISO strings (date-only or full), ``date``/``datetime`` objects,
    epoch numbers (seconds or milliseconds) and exported timestamp mappings
    such as ``{"_seconds": ..., "_nanoseconds": ...}``. Values without an
    offset are read in ``tz``. Unparseable values yield ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        moment = value
    elif isinstance(value, dt.date):
        moment = dt.datetime.combine(value, dt.time.min)
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float, dict)):
        return _from_epoch(value)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = dt.datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Unparseable date value %r", value)
            return None
    else:
        return None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    try:
        return moment.astimezone(UTC)
    except OverflowError:
        logger.warning("Date value out of range %r", value)
        return None


def _from_epoch(value: Any) -> dt.datetime | None:
    """Epoch seconds, epoch milliseconds or a ``_seconds``/``_nanoseconds`` mapping."""
    try:
        if isinstance(value, dict):
            seconds = value.get("_seconds", value.get("seconds"))
            if seconds is None:
                return None
            nanos = value.get("_nanoseconds", value.get("nanoseconds")) or 0
            return dt.datetime.fromtimestamp(float(seconds) + float(nanos) / 1e9, tz=UTC)
        seconds = value / 1000 if abs(value) > 1e11 else value
        return dt.datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError, TypeError):
        logger.warning("Unusable epoch value %r", value)
        return None


def _to_db(moment: dt.datetime | None) -> dt.datetime | None:
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(UTC).replace(tzinfo=None)


def _from_db(moment: dt.datetime | None) -> dt.datetime | None:
    if moment is None:
        return None
    return moment.replace(tzinfo=UTC)


@dataclass
class MemberPatch:
    """Staged field changes for one member, committed with the batch."""

    member_id: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class NormalizationLogEntry:
    member_id: str
    updates: list[dict[str, Any]] = field(default_factory=list)
    invalids: list[dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False


class MemberStore:
    """SQL-backed member document store.

    ``reads`` and ``writes`` count store round-trips; dry runs must leave
    ``writes`` untouched.
    """

    max_batch_docs = MAX_BATCH_DOCS

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        expiry_field: str = "dataScadenza",
        timezone: str = "Europe/Rome",
    ) -> None:
        self._session_factory = session_factory
        self.engine = session_factory.kw.get("bind")
        self.expiry_field = expiry_field
        self.tz = ZoneInfo(timezone)
        self.reads = 0
        self.writes = 0

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> MemberStore:
        return cls(build_session_factory(build_engine(url)), **kwargs)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        """Release the connection pool."""
        self.engine.dispose()

    # ------------------------------------------------------------------ reads

    def _to_record(self, row: Member) -> MemberRecord:
        data = dict(row.data or {})
        expiry = _from_db(row.expiry_at) if row.expiry_at else to_instant(data.get(self.expiry_field), self.tz)
        return MemberRecord(
            id=row.id,
            data=data,
            expiry=expiry,
            last_reminder_at=_from_db(row.last_reminder_at),
        )

    def list_members(self, limit: int | None = None) -> list[MemberRecord]:
        """Whole-collection scan in a stable order, optionally capped."""
        self.reads += 1
        stmt = select(Member).order_by(Member.created_at, Member.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session_factory() as db:
            return [self._to_record(row) for row in db.scalars(stmt)]

    def get_member(self, member_id: str) -> MemberRecord:
        self.reads += 1
        with self._session_factory() as db:
            row = db.get(Member, member_id)
            if row is None:
                raise MemberNotFoundError(member_id)
            return self._to_record(row)

    def sample_id(self) -> str | None:
        self.reads += 1
        with self._session_factory() as db:
            return db.scalar(select(Member.id).limit(1))

    def reminder_logs(self, member_id: str | None = None) -> list[ReminderLog]:
        self.reads += 1
        stmt = select(ReminderLog).order_by(ReminderLog.id)
        if member_id is not None:
            stmt = stmt.where(ReminderLog.member_id == member_id)
        with self._session_factory() as db:
            return list(db.scalars(stmt))

    def normalization_logs(self) -> list[PhoneNormalizationLog]:
        self.reads += 1
        with self._session_factory() as db:
            return list(db.scalars(select(PhoneNormalizationLog).order_by(PhoneNormalizationLog.id)))

    # ----------------------------------------------------------------- writes

    def add_member(
        self,
        data: dict[str, Any],
        member_id: str | None = None,
        expiry_at: dt.datetime | None = None,
        last_reminder_at: dt.datetime | None = None,
    ) -> MemberRecord:
        self.writes += 1
        with session_scope(self._session_factory) as db:
            row = Member(data=dict(data), expiry_at=_to_db(expiry_at), last_reminder_at=_to_db(last_reminder_at))
            if member_id:
                row.id = member_id
            db.add(row)
            db.flush()
            return self._to_record(row)

    def claim_reminder(self, member_id: str, now: dt.datetime, cooldown_days: int) -> bool:
        """Atomically stamp ``last_reminder_at = now`` if the cooldown still allows it.

        Returns False when another run already claimed the member.
        """
        self.writes += 1
        now_db = _to_db(now)
        threshold = _to_db(now - dt.timedelta(days=cooldown_days))
        stmt = (
            update(Member)
            .where(Member.id == member_id)
            .where(or_(Member.last_reminder_at.is_(None), Member.last_reminder_at <= threshold))
            .values(last_reminder_at=now_db, last_reminder_status="pending", updated_at=now_db)
            .execution_options(synchronize_session=False)
        )
        with session_scope(self._session_factory) as db:
            return db.execute(stmt).rowcount == 1

    def release_reminder(self, member_id: str, claimed_at: dt.datetime, previous: dt.datetime | None) -> None:
        """Undo a claim after a failed dispatch, unless someone re-claimed since."""
        self.writes += 1
        stmt = (
            update(Member)
            .where(Member.id == member_id, Member.last_reminder_at == _to_db(claimed_at))
            .values(last_reminder_at=_to_db(previous), last_reminder_status="failed")
            .execution_options(synchronize_session=False)
        )
        with session_scope(self._session_factory) as db:
            db.execute(stmt)

    def confirm_reminder(
        self,
        member_id: str,
        phone: str,
        days_left: int,
        message: str,
        template: str | None,
        sent_at: dt.datetime,
    ) -> None:
        self.writes += 1
        with session_scope(self._session_factory) as db:
            db.execute(
                update(Member)
                .where(Member.id == member_id)
                .values(last_reminder_status="sent")
                .execution_options(synchronize_session=False)
            )
            db.add(
                ReminderLog(
                    member_id=member_id,
                    phone=phone,
                    days_left=days_left,
                    channel="whatsapp",
                    template=template,
                    message_preview=message[:120],
                    sent_at=_to_db(sent_at),
                )
            )

    def commit_phone_batch(self, patches: list[MemberPatch], logs: list[NormalizationLogEntry]) -> None:
        """Apply every staged patch and append every log row in one transaction."""
        if len(patches) > self.max_batch_docs:
            raise ValueError(f"batch of {len(patches)} documents exceeds limit of {self.max_batch_docs}")
        if not patches and not logs:
            return
        self.writes += 1
        with session_scope(self._session_factory) as db:
            for patch in patches:
                row = db.get(Member, patch.member_id)
                if row is None:
                    raise MemberNotFoundError(patch.member_id)
                row.data.update(patch.fields)
            for entry in logs:
                db.add(
                    PhoneNormalizationLog(
                        member_id=entry.member_id,
                        updates=entry.updates,
                        invalids=entry.invalids,
                        dry_run=entry.dry_run,
                    )
                )
