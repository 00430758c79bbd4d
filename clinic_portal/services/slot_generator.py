# clinic_portal/services/slot_generator.py
"""
Turns a doctor's weekly schedule into concrete, bookable slots.

Generation is insert-if-absent on (doctor, clinic, date, time): running it
again over an overlapping range adds only the missing instants and never
touches a slot that already exists, booked or not.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.business import (
    daterange,
    day_of_week,
    minutes_to_time,
    now_local,
    parse_date,
    time_to_minutes,
)
from clinic_portal.core.config import settings
from clinic_portal.core.errors import InvalidRequest, translate_storage_errors
from clinic_portal.core.logging import get_logger
from clinic_portal.core.security import DOCTOR, Identity, require_role
from clinic_portal.crud.schedule import list_schedule_days
from clinic_portal.crud.slot import insert_slots_if_absent, list_available_slots, list_orphaned_slots
from clinic_portal.db.models.slot import Slot
from clinic_portal.services.validators import optional_ref, require_ref

logger = get_logger(__name__)

DateLike = Union[date, str, None]


def _to_date(value: DateLike, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_date(value)
    except ValueError as e:
        raise InvalidRequest(f"{field}: {e}")


def rows_by_day(rows: Iterable[Any]) -> dict[int, Any]:
    """Active rows keyed by day-of-week; for a repeated day the last row wins."""
    by_day: dict[int, Any] = {}
    for row in rows:
        if row.is_active:
            by_day[row.day_of_week] = row
    return by_day


def slot_times(start_time: str, end_time: str, duration_minutes: int) -> list[str]:
    """Start times inside [start, end); a trailing partial slot is dropped."""
    if duration_minutes <= 0:
        return []
    start, end = time_to_minutes(start_time), time_to_minutes(end_time)
    times = []
    t = start
    while t + duration_minutes <= end:
        times.append(minutes_to_time(t))
        t += duration_minutes
    return times


def expand_schedule(doctor_id: str, rows: Iterable[Any], from_date: date, to_date: date) -> list[dict]:
    """Every candidate slot for the inclusive date range, in date/time order."""
    by_day = rows_by_day(rows)
    candidates: list[dict] = []
    if not by_day:
        return candidates

    for d in daterange(from_date, to_date):
        row = by_day.get(day_of_week(d))
        if row is None:
            continue
        for t in slot_times(row.start_time, row.end_time, row.slot_duration_minutes):
            candidates.append({
                "doctor_id": doctor_id,
                "clinic_id": row.clinic_id,
                "room_id": row.room_id,
                "date": d,
                "time": t,
            })
    return candidates


def resolve_generation_range(from_value: DateLike, to_value: DateLike, today: date) -> tuple[date, date]:
    from_date = _to_date(from_value, "fromDate") or today
    to_date = _to_date(to_value, "toDate") or today + timedelta(days=settings.DEFAULT_GENERATION_DAYS)

    # No generating into the past
    if from_date < today:
        from_date = today

    if to_date >= from_date and (to_date - from_date).days + 1 > settings.MAX_GENERATION_DAYS:
        raise InvalidRequest(f"Slot generation is limited to {settings.MAX_GENERATION_DAYS} days at a time")
    return from_date, to_date


@translate_storage_errors
async def generate_slots(
    db: AsyncSession,
    actor: Optional[Identity],
    *,
    from_date: DateLike = None,
    to_date: DateLike = None,
    today: Optional[date] = None,
) -> int:
    """Create the acting doctor's missing slots for the range; returns how many were new."""
    doctor = require_role(actor, DOCTOR, "Only doctors can generate slots")
    today = today or now_local().date()
    start, end = resolve_generation_range(from_date, to_date, today)

    if end < start:
        logger.info("slot_generation_skipped", doctor_id=doctor.id, reason="empty_range")
        return 0

    rows = await list_schedule_days(db, doctor_id=doctor.id, active_only=True)
    candidates = expand_schedule(doctor.id, rows, start, end)
    created = await insert_slots_if_absent(db, candidates)

    logger.info(
        "slots_generated",
        doctor_id=doctor.id,
        from_date=start.isoformat(),
        to_date=end.isoformat(),
        candidates=len(candidates),
        created=created,
    )
    return created


@translate_storage_errors
async def find_available_slots(
    db: AsyncSession,
    *,
    doctor_id: Any,
    on_date: DateLike = None,
    from_date: DateLike = None,
    to_date: DateLike = None,
    clinic_id: Any = None,
    today: Optional[date] = None,
) -> Sequence[Slot]:
    doctor_id = require_ref(doctor_id, "doctorId")
    clinic_id = optional_ref(clinic_id, "clinicId")
    exact = _to_date(on_date, "date")
    start = _to_date(from_date, "fromDate")
    end = _to_date(to_date, "toDate")

    if exact is None and (start is None or end is None):
        # Doctor-only query: everything from today on
        start, end = today or now_local().date(), None

    return await list_available_slots(
        db,
        doctor_id=doctor_id,
        on_date=exact,
        from_date=start,
        to_date=end,
        clinic_id=clinic_id,
    )


@translate_storage_errors
async def find_orphaned_slots(db: AsyncSession, actor: Optional[Identity]) -> Sequence[Slot]:
    """The acting doctor's booked slots with no live appointment, for reconciliation."""
    doctor = require_role(actor, DOCTOR, "Only doctors can inspect their slots")
    return await list_orphaned_slots(db, doctor_id=doctor.id)
