"""Resolve "now" in the configured time zone at minute resolution.

Due-ness is decided by comparing operator-entered wall-clock values for one
zone, so the calendar date and minute-of-day must be observed in that zone and
not in the host's local zone or UTC. Seconds are dropped: a minute is the
width of the match window.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Africa/Cairo"


@dataclass(frozen=True)
class TimeWindow:
    date: date
    time: time
    weekday: int  # 0=Sunday .. 6=Saturday
    instant: datetime  # aware, UTC
    timezone: str

    @property
    def local_minute(self) -> datetime:
        """Naive wall-clock datetime of this window, for comparing schedule fields."""
        return datetime.combine(self.date, self.time)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values (SQLite round trips) are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise ConfigurationError(f"Unknown time zone {name!r}") from e


def get_zone(name: str) -> ZoneInfo:
    """Look up a zone by IANA name, falling back to DEFAULT_TIMEZONE."""
    try:
        return _load_zone(name)
    except ConfigurationError:
        logger.warning("Time zone %r not found, falling back to %s", name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def resolve_now(timezone_name: str, now: datetime | None = None) -> TimeWindow:
    """Decompose an instant (default: current time) into the zone's date, minute and weekday."""
    zone = get_zone(timezone_name)
    instant = as_utc(now) if now is not None else utcnow()
    local = instant.astimezone(zone)
    return TimeWindow(
        date=local.date(),
        time=time(local.hour, local.minute),
        weekday=local.isoweekday() % 7,
        instant=instant,
        timezone=zone.key,
    )


def parse_minute_of_day(value: str | time | None) -> time | None:
    """Parse "HH:MM" (or a time object) into a seconds-free time. None when malformed."""
    if value is None:
        return None
    if isinstance(value, time):
        return time(value.hour, value.minute)
    try:
        hours, minutes = str(value).strip().split(":")[:2]
        return time(int(hours), int(minutes))
    except (ValueError, TypeError):
        return None
