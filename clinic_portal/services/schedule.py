# clinic_portal/services/schedule.py
from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.business import is_valid_time, time_to_minutes
from clinic_portal.core.errors import InvalidRequest, translate_storage_errors
from clinic_portal.core.logging import get_logger
from clinic_portal.core.security import DOCTOR, Identity, require_role
from clinic_portal.crud.schedule import list_schedule_days, replace_schedule_days
from clinic_portal.db.models.schedule import ScheduleDay
from clinic_portal.services.validators import optional_ref, require_ref

logger = get_logger(__name__)

MAX_SLOT_DURATION_MINUTES = 24 * 60


def _normalize_row(raw: dict, index: int) -> dict:
    where = f"scheduleDays[{index}]"

    day = raw.get("day_of_week")
    if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
        raise InvalidRequest(f"{where}.dayOfWeek must be an integer between 0 and 6")

    start, end = raw.get("start_time"), raw.get("end_time")
    if not is_valid_time(start) or not is_valid_time(end):
        raise InvalidRequest(f"{where} times must use HH:MM")
    if time_to_minutes(start) >= time_to_minutes(end):
        raise InvalidRequest(f"{where}.startTime must be before endTime")

    duration = raw.get("slot_duration_minutes")
    if isinstance(duration, bool) or not isinstance(duration, int) or not 0 < duration <= MAX_SLOT_DURATION_MINUTES:
        raise InvalidRequest(f"{where}.slotDurationMinutes must be a positive number of minutes")

    return {
        "day_of_week": day,
        "clinic_id": require_ref(raw.get("clinic_id"), f"{where}.clinicId"),
        "room_id": optional_ref(raw.get("room_id"), f"{where}.roomId"),
        "start_time": start,
        "end_time": end,
        "slot_duration_minutes": duration,
        "is_active": bool(raw.get("is_active", True)),
    }


def validate_schedule_rows(rows: Optional[Iterable[dict]]) -> list[dict]:
    """
    Check a full weekly schedule. Two rows for the same day are rejected here,
    so stored schedules never overlap.
    """
    rows = list(rows or [])
    if len(rows) > 7:
        raise InvalidRequest("A weekly schedule has at most 7 days")

    normalized = [_normalize_row(dict(r), i) for i, r in enumerate(rows)]

    seen: set[int] = set()
    for row in normalized:
        if row["day_of_week"] in seen:
            raise InvalidRequest(f"dayOfWeek {row['day_of_week']} appears more than once")
        seen.add(row["day_of_week"])
    return normalized


@translate_storage_errors
async def get_schedule(db: AsyncSession, actor: Optional[Identity]) -> Sequence[ScheduleDay]:
    doctor = require_role(actor, DOCTOR, "Only doctors can view a schedule")
    return await list_schedule_days(db, doctor_id=doctor.id)


@translate_storage_errors
async def save_schedule(db: AsyncSession, actor: Optional[Identity], rows: Optional[Iterable[Any]]) -> Sequence[ScheduleDay]:
    """Replace the acting doctor's weekly schedule wholesale."""
    doctor = require_role(actor, DOCTOR, "Only doctors can update a schedule")
    normalized = validate_schedule_rows(rows)

    saved = await replace_schedule_days(db, doctor_id=doctor.id, rows=normalized)
    logger.info(
        "schedule_saved",
        doctor_id=doctor.id,
        days=[r.day_of_week for r in saved],
        active_days=sum(1 for r in saved if r.is_active),
    )
    return saved
