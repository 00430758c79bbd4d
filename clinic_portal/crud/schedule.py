# clinic_portal/crud/schedule.py

from __future__ import annotations
from typing import Iterable, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.db.models.schedule import ScheduleDay


async def list_schedule_days(
    db: AsyncSession,
    *,
    doctor_id: str,
    active_only: bool = False,
) -> Sequence[ScheduleDay]:
    q = sa.select(ScheduleDay).where(ScheduleDay.doctor_id == doctor_id)
    if active_only:
        q = q.where(ScheduleDay.is_active.is_(True))
    q = q.order_by(ScheduleDay.day_of_week.asc())
    res = await db.execute(q)
    return res.scalars().all()


async def replace_schedule_days(
    db: AsyncSession,
    *,
    doctor_id: str,
    rows: Iterable[dict],
) -> Sequence[ScheduleDay]:
    """Swap the doctor's weekly rows for `rows` in one transaction."""
    new_rows = [ScheduleDay(doctor_id=doctor_id, **row) for row in rows]
    try:
        await db.execute(sa.delete(ScheduleDay).where(ScheduleDay.doctor_id == doctor_id))
        db.add_all(new_rows)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return await list_schedule_days(db, doctor_id=doctor_id)
