# clinic_portal/db/models/slot.py

from __future__ import annotations
from datetime import date, datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from clinic_portal.db.session import Base, BigIntId

SLOT_AVAILABLE = "available"
SLOT_BOOKED = "booked"
SLOT_STATUSES = (SLOT_AVAILABLE, SLOT_BOOKED)

class Slot(Base):
    __tablename__ = "slots"
    __table_args__ = (
        # One slot per doctor/clinic instant, so regeneration can't duplicate it
        sa.UniqueConstraint("doctor_id", "clinic_id", "date", "time", name="uq_slots_doctor_clinic_date_time"),
        sa.Index("ix_slots_doctor_date_status", "doctor_id", "date", "status"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    doctor_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    clinic_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    room_id: Mapped[str | None] = mapped_column(sa.String(64))

    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    time: Mapped[str] = mapped_column(sa.String(5), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=SLOT_AVAILABLE, server_default=SLOT_AVAILABLE)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True),
        onupdate=lambda: datetime.now(timezone.utc)
    )
