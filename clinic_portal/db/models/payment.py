# clinic_portal/db/models/payment.py

from __future__ import annotations
from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from clinic_portal.db.session import Base, BigIntId

class Payment(Base):
    """Reporting copy of Appointment.payment; read only by the payments listing."""

    __tablename__ = "payments"
    __table_args__ = (
        sa.Index("ix_payments_timestamp", "timestamp"),
        sa.Index("ix_payments_doctor_id_timestamp", "doctor_id", "timestamp"),
        sa.Index("ix_payments_patient_id_timestamp", "patient_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(BigIntId, sa.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False)
    patient_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    doctor_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)

    amount: Mapped[float] = mapped_column(sa.Numeric(10, 2, asdecimal=False), nullable=False)
    method: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    transaction_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
