"""Cron log model: append-only audit trail of job runs."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base


class CronLog(Base):
    __tablename__ = "cron_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    timestamp = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        index=True,
    )
    type = Column(String(20), nullable=False)  # scheduled / recurring / hadith / system
    notification_id = Column(UUID(as_uuid=True), nullable=True)
    notification_title = Column(String(255), nullable=True)
    status = Column(String(10), nullable=False, index=True)  # success / error
    message = Column(Text, default="")
