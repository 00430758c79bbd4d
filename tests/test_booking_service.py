#!/usr/bin/env python3
"""
Tests for the reservation engine: atomic claim, validation and failure modes.
"""

import asyncio
import os
import sys

import pytest
import sqlalchemy as sa
from sqlalchemy.exc import OperationalError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from clinic_portal.core.errors import (
    Forbidden,
    InconsistentState,
    InvalidRequest,
    SlotUnavailable,
    StorageUnavailable,
    Unauthorized,
    translate_storage_errors,
)
from clinic_portal.core.security import PATIENT, Identity
from clinic_portal.db.models.appointment import BOOKED, PAYMENT_PENDING, Appointment
from clinic_portal.db.models.payment import Payment
from clinic_portal.db.models.slot import SLOT_AVAILABLE, SLOT_BOOKED, Slot
from clinic_portal.db.session import Database
from clinic_portal.services.booking import book_slot
from clinic_portal.services.slot_generator import find_available_slots, find_orphaned_slots

from conftest import DOCTOR_ID


async def slot_status(session, slot_id):
    return await session.scalar(sa.select(Slot.status).where(Slot.id == slot_id))


async def appointment_count(session):
    return await session.scalar(sa.select(sa.func.count(Appointment.id)))


class TestBookSlot:
    """Happy path and what a booking writes"""

    @pytest.mark.essential
    async def test_booking_claims_slot_and_writes_records(self, session, patient, open_slots, booking_for):
        slot = open_slots[0]
        appt = await book_slot(session, patient, **booking_for(slot, notes="  first visit  "))

        assert appt.id is not None
        assert appt.patient_id == patient.id
        assert appt.doctor_id == DOCTOR_ID
        assert appt.slot_id == slot.id
        assert appt.status == BOOKED
        assert appt.notes == "first visit"
        assert appt.payment_amount == 50
        assert appt.payment_method == "card"
        assert appt.payment_status == PAYMENT_PENDING
        assert appt.payment_transaction_id.startswith("txn_")
        assert await slot_status(session, slot.id) == SLOT_BOOKED

        mirror = (await session.execute(sa.select(Payment))).scalar_one()
        assert mirror.appointment_id == appt.id
        assert mirror.transaction_id == appt.payment_transaction_id
        assert mirror.status == PAYMENT_PENDING
        assert mirror.amount == 50

    async def test_payment_defaults_to_cash_and_zero(self, session, patient, open_slots, booking_for):
        kwargs = booking_for(open_slots[0])
        kwargs.pop("payment_amount")
        kwargs.pop("payment_method")

        appt = await book_slot(session, patient, **kwargs)
        assert appt.payment_amount == 0
        assert appt.payment_method == "cash"

    async def test_booked_slot_leaves_available_listing(self, session, patient, open_slots, booking_for, monday):
        await book_slot(session, patient, **booking_for(open_slots[0]))
        remaining = await find_available_slots(session, doctor_id=DOCTOR_ID, on_date=monday)
        assert open_slots[0].id not in [s.id for s in remaining]

    async def test_slot_without_room_accepts_any_room(self, session, patient, open_slots, booking_for):
        slot = open_slots[0]
        await session.execute(sa.update(Slot).where(Slot.id == slot.id).values(room_id=None))
        await session.commit()

        appt = await book_slot(session, patient, **booking_for(slot, room_id="room_9"))
        assert appt.room_id == "room_9"


class TestClaimRejections:
    @pytest.mark.essential
    async def test_second_booking_of_same_slot_fails(self, session, patient, other_patient, open_slots, booking_for):
        slot = open_slots[0]
        await book_slot(session, patient, **booking_for(slot))

        with pytest.raises(SlotUnavailable):
            await book_slot(session, other_patient, **booking_for(slot))
        assert await appointment_count(session) == 1

    async def test_unknown_slot_is_unavailable(self, session, patient, open_slots, booking_for):
        with pytest.raises(SlotUnavailable):
            await book_slot(session, patient, **booking_for(open_slots[0], slot_id=999999))
        assert await appointment_count(session) == 0

    @pytest.mark.parametrize("field,value", [
        ("doctor_id", "doc_other"),
        ("clinic_id", "clinic_other"),
        ("room_id", "room_other"),
    ])
    async def test_mismatched_slot_details_are_unavailable(self, session, patient, open_slots, booking_for, field, value):
        slot = open_slots[0]
        with pytest.raises(SlotUnavailable):
            await book_slot(session, patient, **booking_for(slot, **{field: value}))
        assert await slot_status(session, slot.id) == SLOT_AVAILABLE


class TestValidation:
    """Rejected before the store is touched"""

    @pytest.mark.parametrize("overrides", [
        {"doctor_id": None},
        {"clinic_id": ""},
        {"room_id": None},
        {"slot_id": None},
        {"slot_id": "abc"},
        {"slot_id": -4},
        {"doctor_id": "doc 1; drop"},
        {"payment_amount": -1},
        {"payment_amount": "ten"},
        {"payment_amount": float("inf")},
        {"payment_amount": float("nan")},
        {"payment_method": "bitcoin"},
    ])
    async def test_bad_input_is_invalid_request(self, session, patient, open_slots, booking_for, overrides):
        slot = open_slots[0]
        with pytest.raises(InvalidRequest):
            await book_slot(session, patient, **booking_for(slot, **overrides))
        assert await slot_status(session, slot.id) == SLOT_AVAILABLE

    async def test_notes_length_is_bounded(self, session, patient, open_slots, booking_for):
        with pytest.raises(InvalidRequest):
            await book_slot(session, patient, **booking_for(open_slots[0], notes="x" * 2001))

    async def test_anonymous_caller_is_unauthorized(self, session, open_slots, booking_for):
        with pytest.raises(Unauthorized):
            await book_slot(session, None, **booking_for(open_slots[0]))

    async def test_doctor_cannot_book(self, session, doctor, open_slots, booking_for):
        with pytest.raises(Forbidden):
            await book_slot(session, doctor, **booking_for(open_slots[0]))
        assert await slot_status(session, open_slots[0].id) == SLOT_AVAILABLE


@pytest.mark.slow
@pytest.mark.essential
class TestConcurrentBooking:
    """N simultaneous requests for one slot: exactly one wins"""

    async def test_only_one_of_many_concurrent_bookings_succeeds(self, database, open_slots, booking_for):
        slot = open_slots[0]
        patients = [Identity(id=f"pat_{i}", role=PATIENT) for i in range(10)]

        async def attempt(identity):
            async with database.session() as db:
                return await book_slot(db, identity, **booking_for(slot))

        results = await asyncio.gather(*(attempt(p) for p in patients), return_exceptions=True)

        winners = [r for r in results if isinstance(r, Appointment)]
        losers = [r for r in results if isinstance(r, SlotUnavailable)]
        assert len(winners) == 1
        assert len(losers) == len(patients) - 1

        async with database.session() as db:
            assert await appointment_count(db) == 1
            assert await slot_status(db, slot.id) == SLOT_BOOKED
            stored = (await db.execute(sa.select(Appointment))).scalar_one()
            assert stored.patient_id == winners[0].patient_id

    async def test_concurrent_bookings_of_different_slots_all_succeed(self, database, open_slots, booking_for):
        patients = [Identity(id=f"pat_{i}", role=PATIENT) for i in range(len(open_slots))]

        async def attempt(identity, slot):
            async with database.session() as db:
                return await book_slot(db, identity, **booking_for(slot))

        results = await asyncio.gather(
            *(attempt(p, s) for p, s in zip(patients, open_slots)), return_exceptions=True
        )
        assert all(isinstance(r, Appointment) for r in results)


class TestFailureModes:
    @pytest.mark.essential
    async def test_failure_after_claim_is_inconsistent_state(self, session, patient, doctor, open_slots,
                                                             booking_for, monkeypatch):
        async def broken_write(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr("clinic_portal.services.booking.create_appointment_with_payment", broken_write)
        slot = open_slots[0]

        with pytest.raises(InconsistentState) as exc_info:
            await book_slot(session, patient, **booking_for(slot))

        assert exc_info.value.context["slot_id"] == slot.id
        assert await slot_status(session, slot.id) == SLOT_BOOKED
        assert await appointment_count(session) == 0

        orphans = await find_orphaned_slots(session, doctor)
        assert [s.id for s in orphans] == [slot.id]

    async def test_booked_slot_with_live_appointment_is_not_orphaned(self, session, patient, doctor,
                                                                     open_slots, booking_for):
        await book_slot(session, patient, **booking_for(open_slots[0]))
        assert await find_orphaned_slots(session, doctor) == []

    async def test_unreachable_store_is_storage_unavailable(self, tmp_path, patient, booking_for, open_slots):
        broken = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'clinic.db'}")
        await broken.connect()
        try:
            async with broken.session() as db:
                with pytest.raises(StorageUnavailable):
                    await book_slot(db, patient, **booking_for(open_slots[0]))
        finally:
            await broken.dispose()

    async def test_storage_translation_keeps_other_errors(self):
        @translate_storage_errors
        async def unreachable():
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        @translate_storage_errors
        async def buggy():
            raise KeyError("not a storage fault")

        with pytest.raises(StorageUnavailable):
            await unreachable()
        with pytest.raises(KeyError):
            await buggy()
