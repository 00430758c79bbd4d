# clinic_portal/schemas/schedule.py

from typing import List, Optional

from pydantic import Field

from clinic_portal.schemas.base import CamelModel


class ScheduleDayIn(CamelModel):
    day_of_week: int = Field(..., description="0=Sunday .. 6=Saturday")
    clinic_id: Optional[str] = None
    room_id: Optional[str] = None
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["17:00"])
    slot_duration_minutes: int = 30
    is_active: bool = True


class ScheduleIn(CamelModel):
    schedule_days: List[ScheduleDayIn] = Field(default_factory=list)


class ScheduleDayOut(CamelModel):
    id: int
    doctor_id: str
    day_of_week: int
    clinic_id: str
    room_id: Optional[str] = None
    start_time: str
    end_time: str
    slot_duration_minutes: int
    is_active: bool
