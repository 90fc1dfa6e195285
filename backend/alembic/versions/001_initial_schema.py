"""Initial schema: admin users, notifications, hadiths, cron logs.

Revision ID: 001
Revises: None
Create Date: 2026-02-16
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), default=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "notifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False, server_default=""),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("scheduled_time", sa.Time(), nullable=True),
        sa.Column("recurring_days", sa.JSON(), nullable=True),
        sa.Column("recurring_time", sa.Time(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_notifications_type", "notifications", ["type"])

    op.create_table(
        "hadiths",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("narrator", sa.String(255), server_default=""),
        sa.Column("source", sa.String(255), server_default=""),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_hadiths_date", "hadiths", ["date"])

    op.create_table(
        "cron_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("notification_id", UUID(as_uuid=True), nullable=True),
        sa.Column("notification_title", sa.String(255), nullable=True),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("message", sa.Text(), server_default=""),
    )
    op.create_index("ix_cron_logs_timestamp", "cron_logs", ["timestamp"])
    op.create_index("ix_cron_logs_status", "cron_logs", ["status"])


def downgrade() -> None:
    op.drop_index("ix_cron_logs_status", table_name="cron_logs")
    op.drop_index("ix_cron_logs_timestamp", table_name="cron_logs")
    op.drop_table("cron_logs")
    op.drop_index("ix_hadiths_date", table_name="hadiths")
    op.drop_table("hadiths")
    op.drop_index("ix_notifications_type", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
