"""Cron log service: append-only audit trail written by the job processor."""

from collections.abc import Callable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..errors import PersistenceError
from .models import CronLog
from .schemas import CronLogEntry, CronLogStatus


def append_log(db: Session, entry: CronLogEntry) -> CronLog:
    log = CronLog(
        type=entry.type.value,
        notification_id=entry.notification_id,
        notification_title=entry.notification_title,
        status=entry.status.value,
        message=entry.message,
    )
    if entry.id is not None:
        log.id = entry.id
    if entry.timestamp is not None:
        log.timestamp = entry.timestamp
    db.add(log)
    db.flush()
    return log


def list_logs(db: Session, limit: int | None = None) -> list[CronLog]:
    query = db.query(CronLog).order_by(CronLog.timestamp.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def count_by_status(db: Session) -> dict[str, int]:
    counts = {status.value: 0 for status in CronLogStatus}
    rows = db.query(CronLog.status, func.count(CronLog.id)).group_by(CronLog.status).all()
    for status, count in rows:
        counts[status] = count
    return counts


def clear_logs(db: Session) -> int:
    """Delete every cron log entry. Returns the number removed."""
    deleted = db.query(CronLog).delete(synchronize_session=False)
    db.flush()
    return deleted


class CronLogStore:
    """Audit sink for the job processor, one session per call."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def append(self, entry: CronLogEntry) -> None:
        try:
            with self._session_factory() as db, db.begin():
                append_log(db, entry)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to append cron log: {e}") from e

    def load_all(self) -> list[CronLogEntry]:
        try:
            with self._session_factory() as db:
                return [CronLogEntry.model_validate(log) for log in list_logs(db)]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load cron logs: {e}") from e

    def clear_all(self) -> None:
        try:
            with self._session_factory() as db, db.begin():
                clear_logs(db)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to clear cron logs: {e}") from e
