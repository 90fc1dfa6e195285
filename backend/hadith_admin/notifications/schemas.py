"""Notification request/response schemas."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from .models import NotificationType


class NotificationRecord(BaseModel):
    """One notification as seen by the API and the job processor."""

    id: UUID
    title: str
    body: str = ""
    type: NotificationType
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    recurring_days: list[int] | None = None
    recurring_time: time | None = None
    active: bool = True
    created_at: datetime | None = None
    sent_at: datetime | None = None
    last_sent_at: datetime | None = None

    model_config = {"from_attributes": True}


class NotificationCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1, max_length=4000)
    type: NotificationType
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    recurring_days: list[int] | None = None
    recurring_time: time | None = None
    active: bool = True

    @model_validator(mode="after")
    def check_schedule(self):
        if self.type == NotificationType.SCHEDULED:
            if self.scheduled_date is None or self.scheduled_time is None:
                raise ValueError("scheduled notifications need scheduled_date and scheduled_time")
        if self.type == NotificationType.RECURRING:
            if not self.recurring_days or self.recurring_time is None:
                raise ValueError("recurring notifications need recurring_days and recurring_time")
        if self.recurring_days is not None:
            _check_days(self.recurring_days)
        return self


class NotificationUpdateRequest(BaseModel):
    """Partial update. Delivery-tracking fields (sent_at, last_sent_at) are not accepted."""

    title: str | None = Field(None, min_length=1, max_length=255)
    body: str | None = Field(None, min_length=1, max_length=4000)
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    recurring_days: list[int] | None = None
    recurring_time: time | None = None
    active: bool | None = None

    @model_validator(mode="after")
    def check_days(self):
        if self.recurring_days is not None:
            _check_days(self.recurring_days)
        return self


def _check_days(days: list[int]) -> None:
    invalid = [d for d in days if d < 0 or d > 6]
    if invalid:
        raise ValueError(f"recurring_days must be 0 (Sunday) to 6 (Saturday), got {invalid}")
