# clinic_portal/crud/rating.py

from __future__ import annotations
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from clinic_portal.db.models.rating import Rating


class DuplicateRating(ValueError):
    pass


async def create_rating_unique(
    db: AsyncSession,
    *,
    appointment_id: int,
    patient_id: str,
    doctor_id: str,
    rating: int,
    review: Optional[str] = None,
    is_anonymous: bool = False,
) -> Rating:
    # No existence pre-check: the unique key on appointment_id decides
    row = Rating(
        appointment_id=appointment_id,
        patient_id=patient_id,
        doctor_id=doctor_id,
        rating=rating,
        review=review,
        is_anonymous=is_anonymous,
    )
    db.add(row)
    try:
        await db.commit()
        await db.refresh(row)
        return row
    except IntegrityError:
        await db.rollback()
        raise DuplicateRating("This appointment has already been rated.")


async def get_rating(db: AsyncSession, rating_id: int) -> Optional[Rating]:
    res = await db.execute(sa.select(Rating).where(Rating.id == rating_id))
    return res.scalar_one_or_none()


async def list_ratings(
    db: AsyncSession,
    *,
    doctor_id: Optional[str] = None,
    patient_id: Optional[str] = None,
    limit: int = 200,
) -> Sequence[Rating]:
    q = sa.select(Rating)
    if doctor_id is not None:
        q = q.where(Rating.doctor_id == doctor_id)
    if patient_id is not None:
        q = q.where(Rating.patient_id == patient_id)
    q = q.order_by(Rating.created_at.desc(), Rating.id.desc()).limit(limit)
    res = await db.execute(q)
    return res.scalars().all()


async def doctor_rating_summary(db: AsyncSession, *, doctor_id: str) -> tuple[float, int]:
    res = await db.execute(
        sa.select(sa.func.avg(Rating.rating), sa.func.count(Rating.id)).where(Rating.doctor_id == doctor_id)
    )
    avg, count = res.one()
    return (round(float(avg), 1) if avg is not None else 0.0), int(count)


async def update_rating(db: AsyncSession, row: Rating, *, rating: int, review: Optional[str]) -> Rating:
    row.rating = rating
    row.review = review
    try:
        await db.commit()
        await db.refresh(row)
        return row
    except Exception:
        await db.rollback()
        raise


async def delete_rating(db: AsyncSession, row: Rating) -> None:
    try:
        await db.delete(row)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
