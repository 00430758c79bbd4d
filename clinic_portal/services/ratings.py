# clinic_portal/services/ratings.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.errors import (
    AlreadyRated,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    translate_storage_errors,
)
from clinic_portal.core.logging import get_logger
from clinic_portal.core.security import PATIENT, Identity, require_role
from clinic_portal.crud import rating as ratings
from clinic_portal.crud.appointment import get_appointment
from clinic_portal.db.models.appointment import COMPLETED
from clinic_portal.db.models.rating import Rating
from clinic_portal.services.validators import clean_text, require_id, require_ref

logger = get_logger(__name__)

MAX_REVIEW_LENGTH = 1000


@dataclass
class DoctorRatings:
    ratings: Sequence[Rating] = field(default_factory=list)
    average: float = 0.0
    total: int = 0


def _stars(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRequest("Rating must be between 1 and 5")
    if not 1 <= value <= 5:
        raise InvalidRequest("Rating must be between 1 and 5")
    # Halves round up: 4.5 -> 5
    return int(math.floor(value + 0.5))


@translate_storage_errors
async def rate_appointment(
    db: AsyncSession,
    actor: Optional[Identity],
    *,
    appointment_id: Any,
    rating: Any,
    review: Any = None,
    is_anonymous: bool = False,
) -> Rating:
    """
    Rate a completed visit. Allowed once per appointment, for the patient who
    booked it; a second submission fails even when it races the first.
    """
    patient = require_role(actor, PATIENT, "Only patients can rate appointments")
    appointment_id = require_id(appointment_id, "appointmentId")
    stars = _stars(rating)
    review = clean_text(review, "review", MAX_REVIEW_LENGTH)

    appt = await get_appointment(db, appointment_id)
    if appt is None:
        raise NotFound("Appointment not found")
    if appt.patient_id != patient.id:
        raise Forbidden("You can only rate your own appointments")
    if appt.status != COMPLETED:
        raise InvalidTransition("Can only rate completed appointments")

    try:
        row = await ratings.create_rating_unique(
            db,
            appointment_id=appt.id,
            patient_id=patient.id,
            doctor_id=appt.doctor_id,
            rating=stars,
            review=review,
            is_anonymous=bool(is_anonymous),
        )
    except ratings.DuplicateRating as e:
        raise AlreadyRated(str(e)) from e

    logger.info("appointment_rated", appointment_id=appt.id, rating_id=row.id, doctor_id=appt.doctor_id)
    return row


@translate_storage_errors
async def ratings_for_doctor(db: AsyncSession, doctor_id: Any) -> DoctorRatings:
    doctor_id = require_ref(doctor_id, "doctorId")
    rows = await ratings.list_ratings(db, doctor_id=doctor_id)
    average, total = await ratings.doctor_rating_summary(db, doctor_id=doctor_id)
    return DoctorRatings(ratings=rows, average=average, total=total)


@translate_storage_errors
async def ratings_by_patient(db: AsyncSession, actor: Optional[Identity]) -> Sequence[Rating]:
    patient = require_role(actor, PATIENT, "Only patients can list their ratings")
    return await ratings.list_ratings(db, patient_id=patient.id)


async def _own_rating(db: AsyncSession, patient: Identity, rating_id: Any, verb: str) -> Rating:
    rating_id = require_id(rating_id, "ratingId")
    row = await ratings.get_rating(db, rating_id)
    if row is None:
        raise NotFound("Rating not found")
    if row.patient_id != patient.id:
        raise Forbidden(f"You can only {verb} your own ratings")
    return row


@translate_storage_errors
async def update_rating(
    db: AsyncSession,
    actor: Optional[Identity],
    rating_id: Any,
    *,
    rating: Any,
    review: Any = None,
) -> Rating:
    patient = require_role(actor, PATIENT, "Only patients can edit ratings")
    stars = _stars(rating)
    review = clean_text(review, "review", MAX_REVIEW_LENGTH)
    row = await _own_rating(db, patient, rating_id, "edit")
    return await ratings.update_rating(db, row, rating=stars, review=review)


@translate_storage_errors
async def delete_rating(db: AsyncSession, actor: Optional[Identity], rating_id: Any) -> None:
    patient = require_role(actor, PATIENT, "Only patients can delete ratings")
    row = await _own_rating(db, patient, rating_id, "delete")
    await ratings.delete_rating(db, row)
    logger.info("rating_deleted", rating_id=row.id, appointment_id=row.appointment_id)
