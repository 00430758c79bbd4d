# clinic_portal/api/routes/appointments.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.api.deps import get_current_identity
from clinic_portal.core.errors import create_success_response
from clinic_portal.core.security import Identity
from clinic_portal.db.session import get_session
from clinic_portal.schemas.appointment import AppointmentOut, BookingIn, RescheduleIn
from clinic_portal.services import lifecycle
from clinic_portal.services.booking import book_slot

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _one(appt) -> dict:
    return create_success_response({"appointment": AppointmentOut.render(appt)})


def _many(rows) -> dict:
    return create_success_response([AppointmentOut.render(a) for a in rows])


@router.post("/book", status_code=status.HTTP_201_CREATED)
async def book(
    payload: BookingIn,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    appt = await book_slot(
        db,
        actor,
        doctor_id=payload.doctor_id,
        clinic_id=payload.clinic_id,
        room_id=payload.room_id,
        slot_id=payload.slot_id,
        payment_amount=payload.payment_amount,
        payment_method=payload.payment_method,
        notes=payload.notes,
    )
    return _one(appt)


@router.get("/patient")
async def patient_appointments(
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    return _many(await lifecycle.list_for_patient(db, actor))


@router.get("/doctor")
async def doctor_appointments(
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    return _many(await lifecycle.list_for_doctor(db, actor, status_filter))


@router.post("/expire")
async def expire_appointments(
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    result = await lifecycle.sweep_expired(db, actor)
    return create_success_response({
        "cancelledCount": result.cancelled,
        "completedCount": result.completed,
    })


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: int,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    return _one(await lifecycle.get_appointment_for(db, actor, appointment_id))


@router.post("/{appointment_id}/cancel")
async def cancel(
    appointment_id: int,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    return _one(await lifecycle.cancel_appointment(db, actor, appointment_id))


@router.post("/{appointment_id}/confirm")
async def confirm(
    appointment_id: int,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    return _one(await lifecycle.confirm_appointment(db, actor, appointment_id))


@router.post("/{appointment_id}/complete")
async def complete(
    appointment_id: int,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    return _one(await lifecycle.complete_appointment(db, actor, appointment_id))


@router.patch("/{appointment_id}/reschedule")
async def reschedule(
    appointment_id: int,
    payload: RescheduleIn,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    appt = await lifecycle.reschedule_appointment(db, actor, appointment_id, payload.new_slot_id)
    return _one(appt)
