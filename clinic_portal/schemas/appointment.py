# clinic_portal/schemas/appointment.py

from datetime import datetime
from typing import Optional

from pydantic import Field

from clinic_portal.schemas.base import CamelModel


class BookingIn(CamelModel):
    # Presence and format are checked by the booking service
    doctor_id: Optional[str] = None
    clinic_id: Optional[str] = None
    room_id: Optional[str] = None
    slot_id: Optional[int] = None
    payment_amount: Optional[float] = Field(None, examples=[50.0])
    payment_method: Optional[str] = Field(None, examples=["cash", "card"])
    notes: Optional[str] = None


class RescheduleIn(CamelModel):
    new_slot_id: Optional[int] = None


class PaymentOut(CamelModel):
    amount: float
    method: str
    status: str
    transaction_id: str
    timestamp: datetime


class AppointmentOut(CamelModel):
    id: int
    patient_id: str
    doctor_id: str
    clinic_id: str
    room_id: Optional[str] = None
    slot_id: int
    status: str
    notes: Optional[str] = None
    payment: PaymentOut
    created_at: datetime
    updated_at: Optional[datetime] = None
