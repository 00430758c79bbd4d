# clinic_portal/schemas/payment.py

from datetime import datetime

from clinic_portal.schemas.base import CamelModel


class PaymentRecordOut(CamelModel):
    id: int
    appointment_id: int
    patient_id: str
    doctor_id: str
    amount: float
    method: str
    status: str
    transaction_id: str
    timestamp: datetime
