"""Wiring for the job processor and the manual trigger path."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..config import settings
from ..cron_logs.schemas import CronLogEntry, CronLogStatus, CronLogType
from ..cron_logs.service import CronLogStore
from ..database import SessionLocal
from ..errors import PersistenceError
from ..hadiths.store import HadithStore
from ..notifications.store import NotificationStore
from ..push.gateway import DeliveryGateway
from .clock import as_utc, utcnow
from .processor import JobProcessor, JobRunResult

logger = logging.getLogger(__name__)


def create_job_processor(
    gateway: DeliveryGateway,
    session_factory: Callable[[], Session] = SessionLocal,
    clock: Callable[[], datetime] = utcnow,
) -> JobProcessor:
    """Build a JobProcessor from settings over the SQL stores."""
    return JobProcessor(
        NotificationStore(session_factory),
        HadithStore(session_factory),
        CronLogStore(session_factory),
        gateway,
        timezone=settings.cron_timezone,
        hadith_send_time=settings.hadith_send_minute,
        hadith_title=settings.hadith_title,
        recurring_cooldown=timedelta(seconds=settings.recurring_cooldown_seconds),
        scheduled_grace=timedelta(minutes=max(settings.scheduled_grace_minutes, 0)),
        clock=clock,
    )


def run_manual(processor: JobProcessor, triggered_by: str) -> JobRunResult:
    """Run one tick on demand and record a system cron log entry for it."""
    logger.info("Manual cron run triggered by %s", triggered_by)
    result = processor.run_once()
    entry = CronLogEntry(
        timestamp=as_utc(processor.clock()),
        type=CronLogType.SYSTEM,
        status=CronLogStatus.ERROR if result.errors else CronLogStatus.SUCCESS,
        message=f"Manual run ({triggered_by}): {result.processed} sent, {result.errors} errors",
    )
    try:
        processor.audit.append(entry)
    except PersistenceError:
        logger.exception("Failed to write manual run cron log")
    return result
