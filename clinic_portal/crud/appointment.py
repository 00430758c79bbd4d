# clinic_portal/crud/appointment.py

from __future__ import annotations
import uuid
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.db.models.appointment import (
    Appointment,
    ACTIVE_STATUSES,
    BOOKED,
    PAYMENT_PAID,
    PAYMENT_PENDING,
    PAYMENT_REFUNDED,
)
from clinic_portal.db.models.payment import Payment
from clinic_portal.db.models.slot import Slot


def new_transaction_id() -> str:
    return f"txn_{uuid.uuid4().hex[:24]}"


async def create_appointment_with_payment(
    db: AsyncSession,
    *,
    patient_id: str,
    doctor_id: str,
    clinic_id: str,
    room_id: Optional[str],
    slot_id: int,
    payment_amount: float = 0,
    payment_method: str = "cash",
    notes: Optional[str] = None,
) -> Appointment:
    """Appointment plus its payment mirror, written in a single transaction."""
    now = datetime.now(timezone.utc)
    txn_id = new_transaction_id()

    appt = Appointment(
        patient_id=patient_id,
        doctor_id=doctor_id,
        clinic_id=clinic_id,
        room_id=room_id,
        slot_id=slot_id,
        status=BOOKED,
        notes=notes,
        payment_amount=payment_amount,
        payment_method=payment_method,
        payment_status=PAYMENT_PENDING,
        payment_transaction_id=txn_id,
        payment_timestamp=now,
        created_at=now,
    )
    db.add(appt)

    try:
        await db.flush()  # assigns appt.id
        db.add(Payment(
            appointment_id=appt.id,
            patient_id=patient_id,
            doctor_id=doctor_id,
            amount=payment_amount,
            method=payment_method,
            status=PAYMENT_PENDING,
            transaction_id=txn_id,
            timestamp=now,
        ))
        await db.commit()
        await db.refresh(appt)
        return appt
    except Exception:
        await db.rollback()
        raise


async def get_appointment(db: AsyncSession, appointment_id: int) -> Optional[Appointment]:
    res = await db.execute(sa.select(Appointment).where(Appointment.id == appointment_id))
    return res.scalar_one_or_none()


async def list_appointments(
    db: AsyncSession,
    *,
    patient_id: Optional[str] = None,
    doctor_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
) -> Sequence[Appointment]:
    q = sa.select(Appointment)
    if patient_id is not None:
        q = q.where(Appointment.patient_id == patient_id)
    if doctor_id is not None:
        q = q.where(Appointment.doctor_id == doctor_id)
    if status is not None:
        q = q.where(Appointment.status == status)
    q = q.order_by(Appointment.created_at.desc(), Appointment.id.desc()).limit(limit)
    res = await db.execute(q)
    return res.scalars().all()


async def transition_status(
    db: AsyncSession,
    *,
    appointment_id: int,
    from_statuses: Iterable[str],
    to_status: str,
    note: Optional[str] = None,
    slot_id: Optional[int] = None,
) -> bool:
    """
    Move an appointment to `to_status` only if it is still in one of
    `from_statuses` (and, when `slot_id` is given, still on that slot).
    Runs inside the caller's transaction; no commit.
    """
    values = {"status": to_status}
    if note:
        values["notes"] = sa.func.coalesce(Appointment.notes + " ", "") + note
    conditions = [Appointment.id == appointment_id, Appointment.status.in_(list(from_statuses))]
    if slot_id is not None:
        conditions.append(Appointment.slot_id == slot_id)
    res = await db.execute(
        sa.update(Appointment)
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def refund_payments(db: AsyncSession, *, appointment_id: int) -> None:
    """paid -> refunded on both the embedded payment and its mirror. No commit."""
    await db.execute(
        sa.update(Appointment)
        .where(Appointment.id == appointment_id, Appointment.payment_status == PAYMENT_PAID)
        .values(payment_status=PAYMENT_REFUNDED)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        sa.update(Payment)
        .where(Payment.appointment_id == appointment_id, Payment.status == PAYMENT_PAID)
        .values(status=PAYMENT_REFUNDED)
        .execution_options(synchronize_session=False)
    )


async def repoint_appointment(
    db: AsyncSession,
    *,
    appointment_id: int,
    old_slot_id: int,
    new_slot: Slot,
) -> bool:
    """Point a live appointment at another slot. No commit."""
    res = await db.execute(
        sa.update(Appointment)
        .where(
            Appointment.id == appointment_id,
            Appointment.slot_id == old_slot_id,
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        .values(slot_id=new_slot.id, clinic_id=new_slot.clinic_id, room_id=new_slot.room_id)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def list_past_active_appointments(
    db: AsyncSession,
    *,
    today: date,
    now_time: str,
    doctor_id: Optional[str] = None,
) -> Sequence[tuple[int, str]]:
    """(id, status) of booked/confirmed appointments whose slot start has passed."""
    q = (
        sa.select(Appointment.id, Appointment.status)
        .join(Slot, Slot.id == Appointment.slot_id)
        .where(
            Appointment.status.in_(ACTIVE_STATUSES),
            sa.or_(
                Slot.date < today,
                sa.and_(Slot.date == today, Slot.time <= now_time),
            ),
        )
        .order_by(Appointment.id.asc())
    )
    if doctor_id is not None:
        q = q.where(Appointment.doctor_id == doctor_id)
    res = await db.execute(q)
    return [(row.id, row.status) for row in res.all()]
