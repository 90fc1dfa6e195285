"""Push notification model."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Enum, String, Text, Time
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base


class NotificationType(str, enum.Enum):
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"
    RECURRING = "recurring"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False, default="")
    type = Column(
        Enum(NotificationType, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20),
        nullable=False,
        index=True,
    )
    # scheduled: one-shot date + minute of day
    scheduled_date = Column(Date, nullable=True)
    scheduled_time = Column(Time, nullable=True)
    # recurring: weekday indices (0=Sunday) + minute of day
    recurring_days = Column(JSON, nullable=True)
    recurring_time = Column(Time, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )
    # Written only by the job processor
    sent_at = Column(DateTime(timezone=True), nullable=True)
    last_sent_at = Column(DateTime(timezone=True), nullable=True)
