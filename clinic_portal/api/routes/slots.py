# clinic_portal/api/routes/slots.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.errors import create_success_response
from clinic_portal.db.session import get_session
from clinic_portal.schemas.slot import SlotOut
from clinic_portal.services.slot_generator import find_available_slots

router = APIRouter(prefix="/slots", tags=["slots"])


# Public: patients browse before they log in
@router.get("/available")
async def available_slots(
    doctor_id: Optional[str] = Query(None, alias="doctorId"),
    on_date: Optional[str] = Query(None, alias="date"),
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
    clinic_id: Optional[str] = Query(None, alias="clinicId"),
    db: AsyncSession = Depends(get_session),
):
    rows = await find_available_slots(
        db,
        doctor_id=doctor_id,
        on_date=on_date,
        from_date=from_date,
        to_date=to_date,
        clinic_id=clinic_id,
    )
    return create_success_response([SlotOut.render(s) for s in rows])
