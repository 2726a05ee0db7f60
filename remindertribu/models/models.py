"""Persistent member documents and the append-only audit tables.

All DateTime columns hold naive UTC values; ``services.member_store`` is the
only code that converts between those and aware datetimes.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column

from remindertribu.db.base_class import Base


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def new_member_id() -> str:
    return uuid.uuid4().hex[:20]


class Member(Base):
    """A member document.

    ``data`` carries the raw attributes exactly as imported (contact fields,
    names, plan label, ISO expiry). ``expiry_at`` is the store-native expiry
    used by documents that were written with a real timestamp.
    """

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_member_id)
    data: Mapped[dict[str, Any]] = mapped_column(MutableDict.as_mutable(JSON), default=dict, nullable=False)
    expiry_at: Mapped[dt.datetime | None] = mapped_column(DateTime(), nullable=True, index=True)
    last_reminder_at: Mapped[dt.datetime | None] = mapped_column(DateTime(), nullable=True)
    last_reminder_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(), default=utcnow, onupdate=utcnow, nullable=False)


class PhoneNormalizationLog(Base):
    """One row per member touched by a phone-apply run."""

    __tablename__ = "phone_normalizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    updates: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    invalids: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    dry_run: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)


class ReminderLog(Base):
    """One row per reminder actually delivered by the gateway."""

    __tablename__ = "reminders_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    days_left: Mapped[int] = mapped_column(Integer, nullable=False)
    channel: Mapped[str] = mapped_column(String(20), default="whatsapp", nullable=False)
    template: Mapped[str | None] = mapped_column(String(120), nullable=True)
    message_preview: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[dt.datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)
