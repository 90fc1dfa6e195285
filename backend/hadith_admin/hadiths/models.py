"""Daily hadith model."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, Date, DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID

from ..database import Base


class Hadith(Base):
    __tablename__ = "hadiths"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    text = Column(Text, nullable=False)
    narrator = Column(String(255), default="")
    source = Column(String(255), default="")
    date = Column(Date, nullable=False, index=True)  # display date
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )
    sent_at = Column(DateTime(timezone=True), nullable=True)
