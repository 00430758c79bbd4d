# clinic_portal/core/business.py
from __future__ import annotations
import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from clinic_portal.core.config import settings

LOCAL_TZ = ZoneInfo(settings.CLINIC_TIMEZONE)

TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Day numbering follows the portal's schedule UI: 0=Sun .. 6=Sat
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def day_of_week(d: date) -> int:
    return (d.weekday() + 1) % 7


def is_valid_time(value: str) -> bool:
    return isinstance(value, str) and bool(TIME_RE.match(value))


def time_to_minutes(value: str) -> int:
    m = TIME_RE.match(value)
    if not m:
        raise ValueError(f"Invalid time-of-day: {value!r}")
    return int(m.group(1)) * 60 + int(m.group(2))


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValueError(f"Invalid date {value!r}. Use YYYY-MM-DD")


def daterange(start: date, end: date):
    cur = start
    while cur <= end:
        yield cur
        cur += timedelta(days=1)


def now_local() -> datetime:
    return datetime.now(tz=LOCAL_TZ)


def slot_starts_at(slot_date: date, slot_time: str) -> datetime:
    t = time.fromisoformat(slot_time)
    return datetime.combine(slot_date, t, tzinfo=LOCAL_TZ)


def is_future_slot(slot_date: date, slot_time: str, now: datetime | None = None) -> bool:
    current = now or now_local()
    return slot_starts_at(slot_date, slot_time) > current
