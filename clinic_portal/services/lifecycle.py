# clinic_portal/services/lifecycle.py
"""
Appointment state machine.

    booked ──> confirmed ──> completed
      │            │
      └────────────┴──> cancelled

cancelled and completed are terminal. Each move is a conditional UPDATE on
(id, current status), so two racing transitions cannot both apply.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.business import is_future_slot, now_local
from clinic_portal.core.config import settings
from clinic_portal.core.errors import (
    ErrorSeverity,
    Forbidden,
    InconsistentState,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    SlotUnavailable,
    Unauthorized,
    log_error,
    translate_storage_errors,
)
from clinic_portal.core.logging import get_logger
from clinic_portal.core.security import DOCTOR, PATIENT, Identity, require_role
from clinic_portal.crud import appointment as appointments
from clinic_portal.crud.slot import claim_slot, get_slot, release_slot
from clinic_portal.db.models.appointment import (
    ACTIVE_STATUSES,
    BOOKED,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    Appointment,
)
from clinic_portal.services.validators import require_id

logger = get_logger(__name__)

# Allowed moves: target -> statuses it may be entered from
TRANSITIONS = {
    CONFIRMED: (BOOKED,),
    CANCELLED: (BOOKED, CONFIRMED),
    COMPLETED: (CONFIRMED,),
}

NOTE_CANCELLED_BY_PATIENT = "[Cancelled by patient]"
NOTE_CANCELLED_BY_DOCTOR = "[Cancelled by doctor]"
NOTE_CANCELLED_UNCONFIRMED = "[Cancelled: not confirmed in time]"


def can_transition(current: str, target: str) -> bool:
    return current in TRANSITIONS.get(target, ())


@dataclass
class SweepResult:
    cancelled: int = 0
    completed: int = 0


async def _load(db: AsyncSession, appointment_id: Any) -> Appointment:
    appointment_id = require_id(appointment_id, "appointmentId")
    appt = await appointments.get_appointment(db, appointment_id)
    if appt is None:
        raise NotFound("Appointment not found")
    return appt


def _ensure_party(actor: Optional[Identity], appt: Appointment) -> Identity:
    if actor is None:
        raise Unauthorized("Authentication required")
    if actor.role == PATIENT and appt.patient_id == actor.id:
        return actor
    if actor.role == DOCTOR and appt.doctor_id == actor.id:
        return actor
    raise Forbidden("You are not allowed to access this appointment")


async def _apply(db: AsyncSession, appt: Appointment, target: str, note: Optional[str] = None,
                 *, slot_id: Optional[int] = None) -> None:
    if not can_transition(appt.status, target):
        raise InvalidTransition(f"Cannot move a {appt.status} appointment to {target}")
    moved = await appointments.transition_status(
        db,
        appointment_id=appt.id,
        from_statuses=TRANSITIONS[target],
        to_status=target,
        note=note,
        slot_id=slot_id,
    )
    if not moved:
        # Someone else changed it between our read and the update
        raise InvalidTransition(f"Appointment {appt.id} is no longer eligible to become {target}")


async def _reload(db: AsyncSession, appt: Appointment) -> Appointment:
    await db.refresh(appt)
    return appt


@translate_storage_errors
async def get_appointment_for(db: AsyncSession, actor: Optional[Identity], appointment_id: Any) -> Appointment:
    appt = await _load(db, appointment_id)
    _ensure_party(actor, appt)
    return appt


@translate_storage_errors
async def list_for_patient(db: AsyncSession, actor: Optional[Identity]) -> Sequence[Appointment]:
    patient = require_role(actor, PATIENT, "Only patients can view their appointments")
    return await appointments.list_appointments(db, patient_id=patient.id)


@translate_storage_errors
async def list_for_doctor(db: AsyncSession, actor: Optional[Identity], status: Optional[str] = None) -> Sequence[Appointment]:
    doctor = require_role(actor, DOCTOR, "Only doctors can view their bookings")
    return await appointments.list_appointments(db, doctor_id=doctor.id, status=status)


@translate_storage_errors
async def confirm_appointment(db: AsyncSession, actor: Optional[Identity], appointment_id: Any) -> Appointment:
    doctor = require_role(actor, DOCTOR, "Only doctors can confirm appointments")
    appt = await _load(db, appointment_id)
    if appt.doctor_id != doctor.id:
        raise Forbidden("You can only confirm your own appointments")

    try:
        await _apply(db, appt, CONFIRMED)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("appointment_confirmed", appointment_id=appt.id, doctor_id=doctor.id)
    return await _reload(db, appt)


@translate_storage_errors
async def complete_appointment(db: AsyncSession, actor: Optional[Identity], appointment_id: Any) -> Appointment:
    """confirmed -> completed; the only way an appointment becomes ratable."""
    doctor = require_role(actor, DOCTOR, "Only doctors can complete appointments")
    appt = await _load(db, appointment_id)
    if appt.doctor_id != doctor.id:
        raise Forbidden("You can only complete your own appointments")

    try:
        await _apply(db, appt, COMPLETED)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("appointment_completed", appointment_id=appt.id, doctor_id=doctor.id)
    return await _reload(db, appt)


@translate_storage_errors
async def cancel_appointment(
    db: AsyncSession,
    actor: Optional[Identity],
    appointment_id: Any,
    *,
    now: Optional[datetime] = None,
) -> Appointment:
    """
    Cancel on behalf of the patient or the doctor who own the appointment.

    A future slot goes back to `available` in the same transaction (when
    RELEASE_SLOT_ON_CANCEL is on); a slot whose time has passed stays booked.
    Paid payments are marked refunded.
    """
    appt = await _load(db, appointment_id)
    party = _ensure_party(actor, appt)
    now = now or now_local()

    if appt.status not in ACTIVE_STATUSES:
        raise InvalidTransition("Only booked or confirmed appointments can be cancelled")

    slot_id = appt.slot_id
    slot = await get_slot(db, slot_id)
    in_future = slot is not None and is_future_slot(slot.date, slot.time, now)
    if party.role == PATIENT and not in_future:
        raise InvalidTransition("You can only cancel future appointments")

    note = NOTE_CANCELLED_BY_PATIENT if party.role == PATIENT else NOTE_CANCELLED_BY_DOCTOR
    release = settings.RELEASE_SLOT_ON_CANCEL and in_future

    try:
        # Conditional on the slot read above as well as the status
        await _apply(db, appt, CANCELLED, note, slot_id=slot_id)
        released = await release_slot(db, slot_id=slot_id) if release else False
        await appointments.refund_payments(db, appointment_id=appt.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "appointment_cancelled",
        appointment_id=appt.id,
        cancelled_by=party.role,
        slot_id=slot_id,
        slot_released=released,
    )
    return await _reload(db, appt)


@translate_storage_errors
async def reschedule_appointment(
    db: AsyncSession,
    actor: Optional[Identity],
    appointment_id: Any,
    new_slot_id: Any,
    *,
    today: Optional[date] = None,
) -> Appointment:
    """
    Move a patient's live appointment to another slot of the same doctor.

    The new slot is taken with the same atomic claim as a booking; the
    appointment is then re-pointed and the old slot released together.
    """
    patient = require_role(actor, PATIENT, "Only patients can reschedule appointments")
    new_slot_id = require_id(new_slot_id, "newSlotId")
    appt = await _load(db, appointment_id)
    if appt.patient_id != patient.id:
        raise Forbidden("You can only reschedule your own appointments")
    if appt.status not in ACTIVE_STATUSES:
        raise InvalidTransition("Cannot reschedule a cancelled or completed appointment")
    if new_slot_id == appt.slot_id:
        raise InvalidRequest("The appointment is already in that slot")

    today = today or now_local().date()
    old_slot = await get_slot(db, appt.slot_id)
    if old_slot is None:
        raise InvalidRequest("Appointment has no associated slot")
    if old_slot.date <= today:
        raise InvalidTransition("Only appointments after today can be rescheduled")

    new_slot = await get_slot(db, new_slot_id)
    if new_slot is None:
        raise NotFound("New slot not found")
    if new_slot.doctor_id != appt.doctor_id:
        raise InvalidRequest("New slot must be with the same doctor")
    if new_slot.date <= today:
        raise InvalidRequest("New slot must be after today")

    claimed = await claim_slot(
        db,
        slot_id=new_slot.id,
        doctor_id=new_slot.doctor_id,
        clinic_id=new_slot.clinic_id,
        room_id=new_slot.room_id,
    )
    if not claimed:
        raise SlotUnavailable("Selected slot is not available", slot_id=new_slot.id)

    try:
        moved = await appointments.repoint_appointment(
            db, appointment_id=appt.id, old_slot_id=old_slot.id, new_slot=new_slot
        )
        if moved:
            await release_slot(db, slot_id=old_slot.id)
        else:
            # Cancelled or moved concurrently: hand the new slot back
            await release_slot(db, slot_id=new_slot.id)
        await db.commit()
    except Exception as e:
        await db.rollback()
        log_error(e, {"appointment_id": appt.id, "slot_id": new_slot.id, "stage": "reschedule"},
                  ErrorSeverity.CRITICAL)
        logger.error("inconsistent_state", slot_id=new_slot.id, appointment_id=appt.id,
                     detail="new slot claimed but appointment not moved; needs reconciliation")
        raise InconsistentState(
            "The new slot was reserved but the appointment could not be moved",
            slot_id=new_slot.id,
        ) from e

    if not moved:
        raise InvalidTransition("Appointment changed while rescheduling; please retry")

    logger.info(
        "appointment_rescheduled",
        appointment_id=appt.id,
        old_slot_id=old_slot.id,
        new_slot_id=new_slot.id,
    )
    return await _reload(db, appt)


@translate_storage_errors
async def sweep_expired(
    db: AsyncSession,
    actor: Optional[Identity],
    *,
    now: Optional[datetime] = None,
) -> SweepResult:
    """
    Timeout policy for the acting doctor's appointments whose slot time has
    passed: unconfirmed ones are cancelled, confirmed ones completed.
    """
    doctor = require_role(actor, DOCTOR, "Only doctors can expire appointments")
    now = now or now_local()
    result = SweepResult()

    due = await appointments.list_past_active_appointments(
        db, today=now.date(), now_time=now.strftime("%H:%M"), doctor_id=doctor.id
    )
    try:
        for appointment_id, status in due:
            if status == BOOKED:
                if await appointments.transition_status(
                    db, appointment_id=appointment_id, from_statuses=(BOOKED,),
                    to_status=CANCELLED, note=NOTE_CANCELLED_UNCONFIRMED,
                ):
                    result.cancelled += 1
            elif status == CONFIRMED:
                if await appointments.transition_status(
                    db, appointment_id=appointment_id, from_statuses=(CONFIRMED,),
                    to_status=COMPLETED,
                ):
                    result.completed += 1
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("appointments_expired", doctor_id=doctor.id,
                cancelled=result.cancelled, completed=result.completed)
    return result
