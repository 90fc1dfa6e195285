"""Job processor: deliver due scheduled/recurring notifications and today's hadith.

One call to ``JobProcessor.run_once()`` is a tick. A tick loads whole
collections, decides which items are due for the current minute in the
configured zone, sends them through the delivery gateway, marks them so they
are not sent again, writes the collection back once and appends one cron log
entry per delivery attempt.

Overlapping ticks (the periodic timer firing while a manual trigger is still
running) are not serialised here. The recurring cooldown is the only guard
against a duplicate send in that case.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Protocol, TypeVar

from ..cron_logs.schemas import CronLogEntry, CronLogStatus, CronLogType
from ..errors import DeliveryError, PersistenceError
from ..hadiths.schemas import HadithRecord
from ..notifications.models import NotificationType
from ..notifications.schemas import NotificationRecord
from ..push.gateway import DeliveryGateway
from .clock import TimeWindow, as_utc, parse_minute_of_day, resolve_now, utcnow

logger = logging.getLogger(__name__)

DEFAULT_RECURRING_COOLDOWN = timedelta(seconds=90)

RecordT = TypeVar("RecordT")


class RecordStore(Protocol[RecordT]):
    def load_all(self) -> list[RecordT]: ...
    def overwrite_all(self, records: Sequence[RecordT]) -> None: ...


class AuditSink(Protocol):
    def append(self, entry: CronLogEntry) -> None: ...


@dataclass
class JobRunResult:
    processed: int = 0
    errors: int = 0
    details: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"processed": self.processed, "errors": self.errors, "details": list(self.details)}


class JobProcessor:
    def __init__(
        self,
        notifications: RecordStore[NotificationRecord],
        hadiths: RecordStore[HadithRecord],
        audit: AuditSink,
        gateway: DeliveryGateway,
        *,
        timezone: str,
        hadith_send_time: time,
        hadith_title: str,
        recurring_cooldown: timedelta = DEFAULT_RECURRING_COOLDOWN,
        scheduled_grace: timedelta = timedelta(0),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.notifications = notifications
        self.hadiths = hadiths
        self.audit = audit
        self.gateway = gateway
        self.timezone = timezone
        self.hadith_send_time = hadith_send_time
        self.hadith_title = hadith_title
        self.recurring_cooldown = recurring_cooldown
        self.scheduled_grace = scheduled_grace
        self.clock = clock

    # ── Tick ─────────────────────────────────────────────────────────

    def run_once(self) -> JobRunResult:
        result = JobRunResult()
        now = resolve_now(self.timezone, self.clock())

        logger.info(
            "Cron run at %s %s (%s) weekday=%d",
            now.date.isoformat(), now.time.strftime("%H:%M"), now.timezone, now.weekday,
        )

        self._process_notifications(now, result)
        self._process_hadith(now, result)

        if result.processed == 0 and result.errors == 0:
            logger.info("No notifications due at this time")
        else:
            logger.info("Cron run done: %d sent, %d errors", result.processed, result.errors)
        return result

    # ── Notifications ────────────────────────────────────────────────

    def _process_notifications(self, now: TimeWindow, result: JobRunResult) -> None:
        try:
            notifications = self.notifications.load_all()
        except PersistenceError as e:
            self._record_system_error(result, f"Loading notifications failed: {e}")
            return

        modified = False
        for notification in notifications:
            if not notification.active:
                continue
            try:
                if notification.type == NotificationType.SCHEDULED:
                    modified |= self._process_scheduled(notification, now, result)
                elif notification.type == NotificationType.RECURRING:
                    modified |= self._process_recurring(notification, now, result)
            except Exception as e:
                logger.exception("Unexpected error processing notification %s", notification.id)
                result.errors += 1
                result.details.append(f'❌ Notification "{notification.title}" failed: {e}')
                log_type = (
                    CronLogType.RECURRING if notification.type == NotificationType.RECURRING
                    else CronLogType.SCHEDULED
                )
                self._log(
                    log_type, CronLogStatus.ERROR,
                    f'Notification "{notification.title}" failed: {e}',
                    notification.id, notification.title,
                )

        if modified:
            try:
                self.notifications.overwrite_all(notifications)
            except PersistenceError as e:
                # Already delivered: a scheduled item may be sent again on a later tick.
                self._record_system_error(result, f"Saving notifications failed after delivery: {e}")

    def is_scheduled_due(self, notification: NotificationRecord, now: TimeWindow) -> bool:
        if notification.sent_at is not None:
            return False
        scheduled_time = parse_minute_of_day(notification.scheduled_time)
        if notification.scheduled_date is None or scheduled_time is None:
            logger.warning("Scheduled notification %s has no date/time, skipping", notification.id)
            return False
        late_by = now.local_minute - datetime.combine(notification.scheduled_date, scheduled_time)
        return timedelta(0) <= late_by <= self.scheduled_grace

    def is_recurring_due(self, notification: NotificationRecord, now: TimeWindow) -> bool:
        recurring_time = parse_minute_of_day(notification.recurring_time)
        if recurring_time is None or not notification.recurring_days:
            logger.warning("Recurring notification %s has no days/time, skipping", notification.id)
            return False
        return now.weekday in notification.recurring_days and recurring_time == now.time

    def in_cooldown(self, notification: NotificationRecord, now: TimeWindow) -> bool:
        if notification.last_sent_at is None:
            return False
        return now.instant - as_utc(notification.last_sent_at) < self.recurring_cooldown

    def _process_scheduled(self, notification: NotificationRecord, now: TimeWindow, result: JobRunResult) -> bool:
        if not self.is_scheduled_due(notification, now):
            return False

        try:
            self.gateway.send(notification.title, notification.body)
        except DeliveryError as e:
            result.errors += 1
            result.details.append(f'❌ Scheduled "{notification.title}" failed: {e}')
            self._log(
                CronLogType.SCHEDULED, CronLogStatus.ERROR,
                f'Scheduled notification "{notification.title}" failed: {e}',
                notification.id, notification.title,
            )
            return False

        # One-shot: never fires again
        notification.sent_at = now.instant
        notification.active = False
        result.processed += 1
        result.details.append(f'✅ Scheduled "{notification.title}" sent')
        self._log(
            CronLogType.SCHEDULED, CronLogStatus.SUCCESS,
            f'Scheduled notification "{notification.title}" sent',
            notification.id, notification.title,
        )
        return True

    def _process_recurring(self, notification: NotificationRecord, now: TimeWindow, result: JobRunResult) -> bool:
        if not self.is_recurring_due(notification, now):
            return False
        if self.in_cooldown(notification, now):
            logger.debug("Recurring notification %s already sent for this occurrence", notification.id)
            return False

        try:
            self.gateway.send(notification.title, notification.body)
        except DeliveryError as e:
            result.errors += 1
            result.details.append(f'❌ Recurring "{notification.title}" failed: {e}')
            self._log(
                CronLogType.RECURRING, CronLogStatus.ERROR,
                f'Recurring notification "{notification.title}" failed: {e}',
                notification.id, notification.title,
            )
            return False

        notification.last_sent_at = now.instant
        result.processed += 1
        result.details.append(f'✅ Recurring "{notification.title}" sent')
        self._log(
            CronLogType.RECURRING, CronLogStatus.SUCCESS,
            f'Recurring notification "{notification.title}" sent',
            notification.id, notification.title,
        )
        return True

    # ── Hadith of the day ────────────────────────────────────────────

    def _process_hadith(self, now: TimeWindow, result: JobRunResult) -> None:
        if now.time != self.hadith_send_time:
            return

        try:
            hadiths = self.hadiths.load_all()
        except PersistenceError as e:
            self._record_system_error(result, f"Loading hadiths failed: {e}")
            return

        today = next((h for h in hadiths if h.date == now.date and h.sent_at is None), None)
        if today is None:
            return

        try:
            self._send_hadith(today, hadiths, now, result)
        except Exception as e:
            logger.exception("Unexpected error sending hadith %s", today.id)
            result.errors += 1
            result.details.append(f"❌ Hadith of the day failed: {e}")
            self._log(
                CronLogType.HADITH, CronLogStatus.ERROR,
                f"Hadith of the day failed: {e}",
                today.id, self.hadith_title,
            )

    def _send_hadith(
        self, today: HadithRecord, hadiths: list[HadithRecord], now: TimeWindow, result: JobRunResult,
    ) -> None:
        try:
            self.gateway.send(self.hadith_title, today.text)
        except DeliveryError as e:
            result.errors += 1
            result.details.append(f"❌ Hadith of the day failed: {e}")
            self._log(
                CronLogType.HADITH, CronLogStatus.ERROR,
                f"Hadith of the day failed: {e}",
                today.id, self.hadith_title,
            )
            return

        today.sent_at = now.instant
        result.processed += 1
        result.details.append("✅ Hadith of the day sent")
        try:
            self.hadiths.overwrite_all(hadiths)
        except PersistenceError as e:
            self._record_system_error(result, f"Saving hadiths failed after delivery: {e}")
        self._log(
            CronLogType.HADITH, CronLogStatus.SUCCESS,
            "Hadith of the day sent",
            today.id, self.hadith_title,
        )

    # ── Audit trail ──────────────────────────────────────────────────

    def _record_system_error(self, result: JobRunResult, message: str) -> None:
        logger.error(message)
        result.details.append(f"❌ {message}")
        self._log(CronLogType.SYSTEM, CronLogStatus.ERROR, message)

    def _log(self, log_type: CronLogType, status: CronLogStatus, message: str, item_id=None, title=None) -> None:
        entry = CronLogEntry(
            timestamp=as_utc(self.clock()),
            type=log_type,
            notification_id=item_id,
            notification_title=title,
            status=status,
            message=message,
        )
        try:
            self.audit.append(entry)
        except PersistenceError:
            logger.exception("Failed to write cron log: %s", message)
