# clinic_portal/db/models/appointment.py

from __future__ import annotations
from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship
from clinic_portal.db.session import Base, BigIntId
from clinic_portal.db.models.slot import Slot

BOOKED = "booked"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"
APPOINTMENT_STATUSES = (BOOKED, CONFIRMED, CANCELLED, COMPLETED)
ACTIVE_STATUSES = (BOOKED, CONFIRMED)

PAYMENT_METHODS = ("cash", "card")
PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_REFUNDED = "refunded"
PAYMENT_FAILED = "failed"

class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one live appointment per slot; cancelled ones don't count
        sa.Index(
            "uq_appointments_active_slot_id",
            "slot_id",
            unique=True,
            postgresql_where=sa.text("status <> 'cancelled'"),
            sqlite_where=sa.text("status <> 'cancelled'"),
        ),
        sa.Index("ix_appointments_patient_id", "patient_id"),
        sa.Index("ix_appointments_doctor_id", "doctor_id"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    patient_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    doctor_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    clinic_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    room_id: Mapped[str | None] = mapped_column(sa.String(64))
    slot_id: Mapped[int] = mapped_column(BigIntId, sa.ForeignKey("slots.id"), nullable=False)

    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=BOOKED, server_default=BOOKED)
    notes: Mapped[str | None] = mapped_column(sa.Text)

    # Embedded payment; the payments table only mirrors it
    payment_amount: Mapped[float] = mapped_column(sa.Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    payment_method: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="cash")
    payment_status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=PAYMENT_PENDING)
    payment_transaction_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    payment_timestamp: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    slot: Mapped[Slot] = relationship(lazy="raise")

    @property
    def payment(self) -> dict:
        return {
            "amount": self.payment_amount,
            "method": self.payment_method,
            "status": self.payment_status,
            "transactionId": self.payment_transaction_id,
            "timestamp": self.payment_timestamp,
        }
