"""Reporting periods and time formatting helpers."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from busy.core.types import local_now

# Accepted input formats for user-supplied times
DATETIME_FORMAT = "%Y-%m-%d %H:%M"
TIME_FORMAT = "%H:%M"


@dataclass(frozen=True)
class Period:
    """A closed time window used to select tasks for reports."""

    start: datetime
    end: datetime

    @classmethod
    def until_now(cls, start: datetime, now: datetime | None = None) -> "Period":
        return cls(start=start, end=now or local_now())

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def start_of_day(day: date) -> datetime:
    """Local midnight of ``day``, with the UTC offset in effect at that moment."""
    return datetime.combine(day, time()).astimezone()


def midnight(now: datetime | None = None) -> datetime:
    """Start of the current local day."""
    now = now or local_now()
    return start_of_day(now.date())


def week_start(now: datetime | None = None) -> datetime:
    """Midnight of the Monday of the current week."""
    now = now or local_now()
    return start_of_day(now.date() - timedelta(days=now.weekday()))


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """Midnight ``days`` days before today."""
    now = now or local_now()
    return start_of_day(now.date() - timedelta(days=days))


def parse_datetime(value: str, now: datetime | None = None) -> datetime:
    """Parse a user-supplied local time.

    Args:
        value: Either ``HH:MM`` (today) or ``YYYY-MM-DD HH:MM``.
        now: Reference time used to fill in today's date.

    Returns:
        Timezone-aware local datetime.

    Raises:
        ValueError: If the value matches neither format.
    """
    value = value.strip()
    now = now or local_now()

    if " " not in value:
        parsed_time = datetime.strptime(value, TIME_FORMAT).time()
        return datetime.combine(now.date(), parsed_time).astimezone()

    return datetime.strptime(value, DATETIME_FORMAT).astimezone()


def format_duration(duration: timedelta) -> str:
    """Format a duration for display.

    Args:
        duration: Duration to format

    Returns:
        Formatted string like "1h 05m" or "45m"
    """
    total_minutes = max(int(duration.total_seconds()), 0) // 60
    hours, minutes = divmod(total_minutes, 60)

    if hours > 0:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m"
