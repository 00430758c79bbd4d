# clinic_portal/db/base.py

"""
This file imports all the ORM models so Alembic can discover them.
Whenever you add a new model, import it here.
"""
from clinic_portal.db.models.schedule import ScheduleDay
from clinic_portal.db.models.slot import Slot
from clinic_portal.db.models.appointment import Appointment
from clinic_portal.db.models.payment import Payment
from clinic_portal.db.models.rating import Rating
from clinic_portal.db.session import Base

__all__ = ["Base", "ScheduleDay", "Slot", "Appointment", "Payment", "Rating"]
