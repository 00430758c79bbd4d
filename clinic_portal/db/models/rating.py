# clinic_portal/db/models/rating.py

from __future__ import annotations
from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from clinic_portal.db.session import Base, BigIntId

class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        # One rating per appointment; the insert itself is the duplicate check
        sa.UniqueConstraint("appointment_id", name="uq_ratings_appointment_id"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_rating_range"),
        sa.Index("ix_ratings_doctor_id_created_at", "doctor_id", "created_at"),
        sa.Index("ix_ratings_patient_id_created_at", "patient_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(BigIntId, sa.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False)
    patient_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    doctor_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)

    rating: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    review: Mapped[str | None] = mapped_column(sa.String(1000))
    is_anonymous: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, server_default=sa.false())

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True),
        onupdate=lambda: datetime.now(timezone.utc)
    )
