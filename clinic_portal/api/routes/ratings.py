# clinic_portal/api/routes/ratings.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.api.deps import get_current_identity
from clinic_portal.core.errors import InvalidRequest, create_success_response
from clinic_portal.core.security import Identity
from clinic_portal.db.session import get_session
from clinic_portal.schemas.rating import RatingIn, RatingOut, RatingUpdateIn
from clinic_portal.services import ratings as rating_service

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def rate(
    payload: RatingIn,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    row = await rating_service.rate_appointment(
        db,
        actor,
        appointment_id=payload.appointment_id,
        rating=payload.rating,
        review=payload.review,
        is_anonymous=payload.is_anonymous,
    )
    return create_success_response({"rating": RatingOut.render(row)})


@router.get("")
async def list_ratings(
    doctor_id: Optional[str] = Query(None, alias="doctorId"),
    my_ratings: bool = Query(False, alias="myRatings"),
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    if my_ratings:
        rows = await rating_service.ratings_by_patient(db, actor)
        return create_success_response([RatingOut.render(r) for r in rows])

    if not doctor_id:
        raise InvalidRequest("doctorId or myRatings=true is required")

    result = await rating_service.ratings_for_doctor(db, doctor_id)
    return create_success_response({
        "ratings": [RatingOut.render_public(r) for r in result.ratings],
        "averageRating": result.average,
        "totalRatings": result.total,
    })


@router.patch("/{rating_id}")
async def edit_rating(
    rating_id: int,
    payload: RatingUpdateIn,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    row = await rating_service.update_rating(db, actor, rating_id, rating=payload.rating, review=payload.review)
    return create_success_response({"rating": RatingOut.render(row)})


@router.delete("/{rating_id}")
async def remove_rating(
    rating_id: int,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    await rating_service.delete_rating(db, actor, rating_id)
    return create_success_response({"deleted": True})
