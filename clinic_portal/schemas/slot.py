# clinic_portal/schemas/slot.py

import datetime as dt
from typing import Optional

from pydantic import Field

from clinic_portal.schemas.base import CamelModel


class SlotOut(CamelModel):
    id: int = Field(..., serialization_alias="slotId")
    doctor_id: str
    clinic_id: str
    room_id: Optional[str] = None
    date: dt.date
    time: str
    status: str


class GenerateSlotsIn(CamelModel):
    from_date: Optional[str] = Field(None, examples=["2026-11-02"])
    to_date: Optional[str] = Field(None, examples=["2026-11-15"])
