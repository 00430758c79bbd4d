# clinic_portal/services/booking.py
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.errors import (
    ErrorSeverity,
    InconsistentState,
    SlotUnavailable,
    log_error,
    translate_storage_errors,
)
from clinic_portal.core.logging import get_logger
from clinic_portal.core.security import PATIENT, Identity, require_role
from clinic_portal.crud.appointment import create_appointment_with_payment
from clinic_portal.crud.slot import claim_slot
from clinic_portal.db.models.appointment import Appointment, PAYMENT_METHODS
from clinic_portal.services.validators import (
    clean_text,
    require_amount,
    require_choice,
    require_id,
    require_ref,
)

logger = get_logger(__name__)

MAX_NOTES_LENGTH = 2000


@translate_storage_errors
async def book_slot(
    db: AsyncSession,
    actor: Optional[Identity],
    *,
    doctor_id: Any,
    clinic_id: Any,
    room_id: Any,
    slot_id: Any,
    payment_amount: Any = None,
    payment_method: Any = None,
    notes: Any = None,
) -> Appointment:
    """
    Reserve one slot for the acting patient.

    1) Check identity and input (no store access yet)
    2) Claim the slot with a single conditional UPDATE
    3) Only then write the appointment and its payment mirror

    Exactly one of any number of concurrent callers for the same slot gets past
    step 2; the rest receive SlotUnavailable with nothing written.
    """
    # 1) Identity always comes from the session, never from the payload
    patient = require_role(actor, PATIENT, "Only patients can book appointments")

    doctor_id = require_ref(doctor_id, "doctorId")
    clinic_id = require_ref(clinic_id, "clinicId")
    room_id = require_ref(room_id, "roomId")
    slot_id = require_id(slot_id, "slotId")
    amount = require_amount(payment_amount)
    method = require_choice(payment_method, PAYMENT_METHODS, "paymentMethod", default="cash")
    notes = clean_text(notes, "notes", MAX_NOTES_LENGTH)

    # 2) Atomic claim
    claimed = await claim_slot(
        db,
        slot_id=slot_id,
        doctor_id=doctor_id,
        clinic_id=clinic_id,
        room_id=room_id,
    )
    if not claimed:
        logger.info("slot_claim_rejected", slot_id=slot_id, patient_id=patient.id)
        raise SlotUnavailable("Slot is no longer available", slot_id=slot_id)

    logger.info("slot_claimed", slot_id=slot_id, patient_id=patient.id)

    # 3) Business records; the slot is already ours at this point
    try:
        appt = await create_appointment_with_payment(
            db,
            patient_id=patient.id,
            doctor_id=doctor_id,
            clinic_id=clinic_id,
            room_id=room_id,
            slot_id=slot_id,
            payment_amount=amount,
            payment_method=method,
            notes=notes,
        )
    except Exception as e:
        log_error(e, {"slot_id": slot_id, "patient_id": patient.id, "stage": "appointment_write"},
                  ErrorSeverity.CRITICAL)
        logger.error("inconsistent_state", slot_id=slot_id, patient_id=patient.id,
                     detail="slot booked without appointment; needs reconciliation")
        raise InconsistentState(
            "The slot was reserved but the appointment could not be saved",
            slot_id=slot_id,
        ) from e

    logger.info(
        "appointment_booked",
        appointment_id=appt.id,
        slot_id=slot_id,
        patient_id=patient.id,
        doctor_id=doctor_id,
    )
    return appt
