# clinic_portal/db/models/schedule.py

from __future__ import annotations
from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from clinic_portal.db.session import Base, BigIntId

class ScheduleDay(Base):
    """One weekly recurring availability rule of a doctor."""

    __tablename__ = "schedule_days"
    __table_args__ = (
        sa.UniqueConstraint("doctor_id", "day_of_week", name="uq_schedule_days_doctor_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_days_day_of_week"),
        sa.CheckConstraint("slot_duration_minutes > 0", name="ck_schedule_days_duration"),
        sa.Index("ix_schedule_days_doctor_id", "doctor_id"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    doctor_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)

    # 0=Sun .. 6=Sat
    day_of_week: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    clinic_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    room_id: Mapped[str | None] = mapped_column(sa.String(64))

    # Local time-of-day, "HH:MM"
    start_time: Mapped[str] = mapped_column(sa.String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(sa.String(5), nullable=False)
    slot_duration_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="30")
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True, server_default=sa.true())

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
