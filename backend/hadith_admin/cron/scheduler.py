"""Process-wide periodic timer that drives the job processor."""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .clock import utcnow

logger = logging.getLogger(__name__)

CRON_JOB_ID = "cron_run_once"
MAX_INTERVAL_SECONDS = 60  # must not exceed the one-minute match window


def _validated_interval(seconds: int) -> int:
    if seconds <= 0 or seconds > MAX_INTERVAL_SECONDS:
        logger.warning(
            "Cron interval must be 1..%ds, got %s; falling back to %ss",
            MAX_INTERVAL_SECONDS, seconds, MAX_INTERVAL_SECONDS,
        )
        return MAX_INTERVAL_SECONDS
    return seconds


class CronScheduler:
    """Owns one BackgroundScheduler with a single interval job.

    ``start()`` may be called any number of times; only the first call
    schedules the job. The first run fires after ``boot_delay_seconds``,
    then every ``interval_seconds``.
    """

    def __init__(
        self,
        job: Callable[[], object],
        *,
        interval_seconds: int = MAX_INTERVAL_SECONDS,
        boot_delay_seconds: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._job = job
        self.interval_seconds = _validated_interval(interval_seconds)
        self.boot_delay_seconds = max(boot_delay_seconds, 0)
        self._clock = clock
        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._lock = threading.Lock()
        self._started = False

    @property
    def running(self) -> bool:
        return self._started and self._scheduler.running

    @property
    def next_run_time(self) -> datetime | None:
        job = self._scheduler.get_job(CRON_JOB_ID)
        return job.next_run_time if job else None

    def start(self) -> bool:
        """Start the timer. Returns False if it was already started."""
        with self._lock:
            if self._started:
                logger.debug("Cron scheduler already started")
                return False
            first_run = self._clock() + timedelta(seconds=self.boot_delay_seconds)
            self._scheduler.add_job(
                self._tick,
                trigger=IntervalTrigger(seconds=self.interval_seconds, timezone="UTC"),
                id=CRON_JOB_ID,
                next_run_time=first_run,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            self._scheduler.start()
            self._started = True
        logger.info(
            "Cron scheduler started: every %ss, first run in %ss",
            self.interval_seconds, self.boot_delay_seconds,
        )
        return True

    def shutdown(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._scheduler.shutdown(wait=False)
            self._started = False
        logger.info("Cron scheduler stopped")

    def _tick(self) -> None:
        try:
            self._job()
        except Exception:
            logger.exception("Error in scheduled cron run")
