"""Interval and local-calendar helpers shared by slot generation and booking commits.

Every instant handled here is an aware UTC datetime. A client's local calendar
is described only by an explicit offset in minutes (local = utc + offset); the
server's own timezone is never consulted.
"""

from datetime import date, datetime, time, timedelta, timezone

MAX_UTC_OFFSET_MINUTES = 14 * 60


def as_utc(value: datetime) -> datetime:
    # Stores without timezone support hand back naive values that were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def buffered_end(end: datetime, buffer_minutes: int | None) -> datetime:
    return end + timedelta(minutes=buffer_minutes or 0)


def client_timezone(offset_minutes: int) -> timezone:
    if abs(offset_minutes) > MAX_UTC_OFFSET_MINUTES:
        raise ValueError(f'UTC offset must be within +/-{MAX_UTC_OFFSET_MINUTES} minutes.')
    return timezone(timedelta(minutes=offset_minutes))


def day_of_week(local_date: date) -> int:
    """Return 0 for Sunday through 6 for Saturday."""
    return local_date.isoweekday() % 7


def local_wall_clock(local_date: date, wall_time: time, offset_minutes: int) -> datetime:
    local_value = datetime.combine(local_date, wall_time.replace(tzinfo=None), tzinfo=client_timezone(offset_minutes))
    return local_value.astimezone(timezone.utc)


def local_day_bounds(local_date: date, offset_minutes: int) -> tuple[datetime, datetime]:
    day_start = local_wall_clock(local_date, time(0, 0), offset_minutes)
    return day_start, day_start + timedelta(days=1)


def local_today(now: datetime, offset_minutes: int) -> date:
    return as_utc(now).astimezone(client_timezone(offset_minutes)).date()
