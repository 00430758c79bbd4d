# clinic_portal/crud/payment.py

from __future__ import annotations
from datetime import datetime
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.db.models.payment import Payment


async def list_payments(
    db: AsyncSession,
    *,
    doctor_id: Optional[str] = None,
    patient_id: Optional[str] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: int = 500,
) -> Sequence[Payment]:
    """Mirror rows, newest first. `since`/`until` are inclusive UTC bounds."""
    q = sa.select(Payment)
    if doctor_id is not None:
        q = q.where(Payment.doctor_id == doctor_id)
    if patient_id is not None:
        q = q.where(Payment.patient_id == patient_id)
    if since is not None:
        q = q.where(Payment.timestamp >= since)
    if until is not None:
        q = q.where(Payment.timestamp <= until)
    q = q.order_by(Payment.timestamp.desc(), Payment.id.desc()).limit(limit)
    res = await db.execute(q)
    return res.scalars().all()
