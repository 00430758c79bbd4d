# clinic_portal/crud/slot.py

from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.db.models.appointment import Appointment, CANCELLED
from clinic_portal.db.models.slot import Slot, SLOT_AVAILABLE, SLOT_BOOKED

UNIQUE_COLS = ["doctor_id", "clinic_id", "date", "time"]
INSERT_BATCH_SIZE = 500

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


async def insert_slots_if_absent(db: AsyncSession, candidates: Sequence[dict]) -> int:
    """
    Insert candidate slots, skipping any instant that already exists (whatever
    its status). Returns how many rows were actually created.
    """
    if not candidates:
        return 0

    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Slot generation does not support the {dialect!r} dialect")

    now = datetime.now(timezone.utc)
    created = 0
    try:
        for start in range(0, len(candidates), INSERT_BATCH_SIZE):
            batch = [
                {**c, "status": SLOT_AVAILABLE, "created_at": now}
                for c in candidates[start:start + INSERT_BATCH_SIZE]
            ]
            stmt = (
                insert(Slot)
                .values(batch)
                .on_conflict_do_nothing(index_elements=UNIQUE_COLS)
                .returning(Slot.id)
            )
            res = await db.execute(stmt)
            created += len(res.scalars().all())
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return created


def _claim_statement(*, slot_id: int, doctor_id: str, clinic_id: str, room_id: Optional[str]):
    return (
        sa.update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.status == SLOT_AVAILABLE,
            Slot.doctor_id == doctor_id,
            Slot.clinic_id == clinic_id,
            sa.or_(Slot.room_id == room_id, Slot.room_id.is_(None)),
        )
        .values(status=SLOT_BOOKED)
        .execution_options(synchronize_session=False)
    )


async def claim_slot(
    db: AsyncSession,
    *,
    slot_id: int,
    doctor_id: str,
    clinic_id: str,
    room_id: Optional[str],
) -> bool:
    """
    available -> booked as one conditional UPDATE, committed immediately.
    True only for the single caller whose UPDATE matched the row.
    """
    try:
        res = await db.execute(
            _claim_statement(slot_id=slot_id, doctor_id=doctor_id, clinic_id=clinic_id, room_id=room_id)
        )
        claimed = res.rowcount == 1
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return claimed


async def release_slot(db: AsyncSession, *, slot_id: int) -> bool:
    """booked -> available. Runs inside the caller's transaction; no commit."""
    res = await db.execute(
        sa.update(Slot)
        .where(Slot.id == slot_id, Slot.status == SLOT_BOOKED)
        .values(status=SLOT_AVAILABLE)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def get_slot(db: AsyncSession, slot_id: int) -> Optional[Slot]:
    res = await db.execute(sa.select(Slot).where(Slot.id == slot_id))
    return res.scalar_one_or_none()


async def list_available_slots(
    db: AsyncSession,
    *,
    doctor_id: str,
    on_date: Optional[date] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    clinic_id: Optional[str] = None,
    limit: int = 500,
) -> Sequence[Slot]:
    q = sa.select(Slot).where(Slot.doctor_id == doctor_id, Slot.status == SLOT_AVAILABLE)
    if clinic_id is not None:
        q = q.where(Slot.clinic_id == clinic_id)
    if on_date is not None:
        q = q.where(Slot.date == on_date)
    else:
        if from_date is not None:
            q = q.where(Slot.date >= from_date)
        if to_date is not None:
            q = q.where(Slot.date <= to_date)
    q = q.order_by(Slot.date.asc(), Slot.time.asc()).limit(limit)
    res = await db.execute(q)
    return res.scalars().all()


async def list_orphaned_slots(db: AsyncSession, *, doctor_id: Optional[str] = None) -> Sequence[Slot]:
    """Booked slots that no live appointment points at (left behind by a failed booking)."""
    live = (
        sa.select(Appointment.id)
        .where(Appointment.slot_id == Slot.id, Appointment.status != CANCELLED)
        .exists()
    )
    q = sa.select(Slot).where(Slot.status == SLOT_BOOKED, ~live)
    if doctor_id is not None:
        q = q.where(Slot.doctor_id == doctor_id)
    q = q.order_by(Slot.date.asc(), Slot.time.asc())
    res = await db.execute(q)
    return res.scalars().all()
