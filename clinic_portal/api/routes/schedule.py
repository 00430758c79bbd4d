# clinic_portal/api/routes/schedule.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.api.deps import get_current_identity
from clinic_portal.core.errors import create_success_response
from clinic_portal.core.security import Identity
from clinic_portal.db.session import get_session
from clinic_portal.schemas.schedule import ScheduleDayOut, ScheduleIn
from clinic_portal.schemas.slot import GenerateSlotsIn, SlotOut
from clinic_portal.services import schedule as schedule_service
from clinic_portal.services import slot_generator

router = APIRouter(prefix="/doctors", tags=["doctors"])


@router.get("/schedule")
async def get_schedule(
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    rows = await schedule_service.get_schedule(db, actor)
    return create_success_response({"scheduleDays": [ScheduleDayOut.render(r) for r in rows]})


@router.put("/schedule")
async def put_schedule(
    payload: ScheduleIn,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    rows = await schedule_service.save_schedule(db, actor, [d.model_dump() for d in payload.schedule_days])
    return create_success_response({"scheduleDays": [ScheduleDayOut.render(r) for r in rows]})


@router.post("/slots/generate", status_code=status.HTTP_201_CREATED)
async def generate_slots(
    payload: Optional[GenerateSlotsIn] = None,
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    payload = payload or GenerateSlotsIn()
    created = await slot_generator.generate_slots(
        db, actor, from_date=payload.from_date, to_date=payload.to_date
    )
    return create_success_response({"createdCount": created})


@router.get("/slots/orphaned")
async def orphaned_slots(
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    rows = await slot_generator.find_orphaned_slots(db, actor)
    return create_success_response([SlotOut.render(s) for s in rows])
