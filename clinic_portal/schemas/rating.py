# clinic_portal/schemas/rating.py

from datetime import datetime
from typing import Optional

from clinic_portal.schemas.base import CamelModel


class RatingIn(CamelModel):
    appointment_id: Optional[int] = None
    rating: Optional[float] = None
    review: Optional[str] = None
    is_anonymous: bool = False


class RatingUpdateIn(CamelModel):
    rating: Optional[float] = None
    review: Optional[str] = None


class RatingOut(CamelModel):
    id: int
    appointment_id: int
    patient_id: Optional[str] = None
    doctor_id: str
    rating: int
    review: Optional[str] = None
    is_anonymous: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def render_public(cls, obj) -> dict:
        """Doctor-facing listing: anonymous reviews carry no patient id."""
        data = cls.render(obj)
        if data["isAnonymous"]:
            data["patientId"] = None
        return data
