"""Hadith request/response schemas."""

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field


class HadithRecord(BaseModel):
    id: UUID
    text: str
    narrator: str | None = ""
    source: str | None = ""
    date: dt.date
    created_at: dt.datetime | None = None
    sent_at: dt.datetime | None = None

    model_config = {"from_attributes": True}


class HadithCreateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=4000)
    narrator: str = Field("", max_length=255)
    source: str = Field("", max_length=255)
    date: dt.date


class HadithUpdateRequest(BaseModel):
    text: str | None = Field(None, min_length=1, max_length=4000)
    narrator: str | None = Field(None, max_length=255)
    source: str | None = Field(None, max_length=255)
    date: dt.date | None = None
