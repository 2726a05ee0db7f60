"""member documents and audit logs

Revision ID: 0001_member_documents
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_member_documents"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:  # noqa: D401
    op.create_table(
        "member",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("expiry_at", sa.DateTime(), nullable=True),
        sa.Column("last_reminder_at", sa.DateTime(), nullable=True),
        sa.Column("last_reminder_status", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_member_expiry_at", "member", ["expiry_at"])

    op.create_table(
        "phone_normalizations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("member_id", sa.String(length=64), nullable=False),
        sa.Column("updates", sa.JSON(), nullable=False),
        sa.Column("invalids", sa.JSON(), nullable=False),
        sa.Column("dry_run", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_phone_normalizations_member_id", "phone_normalizations", ["member_id"])

    op.create_table(
        "reminders_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("member_id", sa.String(length=64), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("days_left", sa.Integer(), nullable=False),
        sa.Column("channel", sa.String(length=20), nullable=False, server_default="whatsapp"),
        sa.Column("template", sa.String(length=120), nullable=True),
        sa.Column("message_preview", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_reminders_log_member_id", "reminders_log", ["member_id"])


def downgrade() -> None:  # noqa: D401
    op.drop_index("ix_reminders_log_member_id", table_name="reminders_log")
    op.drop_table("reminders_log")
    op.drop_index("ix_phone_normalizations_member_id", table_name="phone_normalizations")
    op.drop_table("phone_normalizations")
    op.drop_index("ix_member_expiry_at", table_name="member")
    op.drop_table("member")
