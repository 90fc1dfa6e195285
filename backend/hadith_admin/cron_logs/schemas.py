"""Cron log schemas."""

import enum
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class CronLogType(str, enum.Enum):
    SCHEDULED = "scheduled"
    RECURRING = "recurring"
    HADITH = "hadith"
    SYSTEM = "system"


class CronLogStatus(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"


class CronLogEntry(BaseModel):
    id: UUID | None = None
    timestamp: datetime | None = None
    type: CronLogType
    notification_id: UUID | None = None
    notification_title: str | None = None
    status: CronLogStatus
    message: str = ""

    model_config = {"from_attributes": True}
