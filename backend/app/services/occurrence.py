"""Calendar math for reminders: which day is N days ahead, and its weekday (Sunday=0)."""

from datetime import date, datetime, time, timedelta, tzinfo


def target_date(now: datetime, horizon_days: int) -> date:
    """Calendar date `horizon_days` after now's date. Adds whole days to the date, so DST and time of day do not matter."""
    return now.date() + timedelta(days=horizon_days)


def weekday_of(d: date) -> int:
    """Weekday index with Sunday=0 .. Saturday=6 (Python's date.weekday() is Monday=0)."""
    return (d.weekday() + 1) % 7


def day_bounds(d: date, tz: tzinfo | None) -> tuple[datetime, datetime]:
    """Half-open [start, end) datetimes covering calendar day d in tz."""
    start = datetime.combine(d, time.min, tzinfo=tz)
    end = datetime.combine(d + timedelta(days=1), time.min, tzinfo=tz)
    return start, end
