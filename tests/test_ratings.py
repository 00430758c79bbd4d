#!/usr/bin/env python3
"""
Tests for the rating gate and rating management.
"""

import asyncio
import os
import sys

import pytest
import pytest_asyncio
import sqlalchemy as sa

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from clinic_portal.core.errors import (
    AlreadyRated,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from clinic_portal.db.models.rating import Rating
from clinic_portal.services import lifecycle
from clinic_portal.services import ratings
from clinic_portal.services.booking import book_slot

from conftest import DOCTOR_ID


@pytest_asyncio.fixture
async def completed(session, patient, doctor, open_slots, booking_for):
    appt = await book_slot(session, patient, **booking_for(open_slots[0]))
    await lifecycle.confirm_appointment(session, doctor, appt.id)
    return await lifecycle.complete_appointment(session, doctor, appt.id)


class TestRatingGate:
    @pytest.mark.essential
    async def test_patient_rates_completed_visit(self, session, patient, completed):
        row = await ratings.rate_appointment(
            session, patient, appointment_id=completed.id, rating=5, review="  Very thorough  "
        )
        assert row.rating == 5
        assert row.review == "Very thorough"
        assert row.doctor_id == DOCTOR_ID
        assert row.patient_id == patient.id
        assert row.is_anonymous is False

    async def test_fractional_rating_is_rounded(self, session, patient, completed):
        row = await ratings.rate_appointment(session, patient, appointment_id=completed.id, rating=3.6)
        assert row.rating == 4

    @pytest.mark.parametrize("value,stored", [(4.5, 5), (2.5, 3), (1.49, 1)])
    async def test_half_ratings_round_up(self, session, patient, completed, value, stored):
        row = await ratings.rate_appointment(session, patient, appointment_id=completed.id, rating=value)
        assert row.rating == stored

    @pytest.mark.parametrize("value", [0, 6, -1, None, "five", True])
    async def test_out_of_range_rating_is_invalid(self, session, patient, completed, value):
        with pytest.raises(InvalidRequest):
            await ratings.rate_appointment(session, patient, appointment_id=completed.id, rating=value)

    async def test_review_is_bounded(self, session, patient, completed):
        with pytest.raises(InvalidRequest):
            await ratings.rate_appointment(
                session, patient, appointment_id=completed.id, rating=4, review="x" * 1001
            )

    @pytest.mark.essential
    async def test_unfinished_appointment_cannot_be_rated(self, session, patient, doctor, open_slots, booking_for):
        appt = await book_slot(session, patient, **booking_for(open_slots[1]))
        with pytest.raises(InvalidTransition):
            await ratings.rate_appointment(session, patient, appointment_id=appt.id, rating=4)

        await lifecycle.confirm_appointment(session, doctor, appt.id)
        with pytest.raises(InvalidTransition):
            await ratings.rate_appointment(session, patient, appointment_id=appt.id, rating=4)

    async def test_cancelled_appointment_cannot_be_rated(self, session, patient, open_slots, booking_for):
        appt = await book_slot(session, patient, **booking_for(open_slots[1]))
        await lifecycle.cancel_appointment(session, patient, appt.id)
        with pytest.raises(InvalidTransition):
            await ratings.rate_appointment(session, patient, appointment_id=appt.id, rating=2)

    async def test_only_the_booking_patient_rates(self, session, other_patient, doctor, completed):
        with pytest.raises(Forbidden):
            await ratings.rate_appointment(session, other_patient, appointment_id=completed.id, rating=1)
        with pytest.raises(Forbidden):
            await ratings.rate_appointment(session, doctor, appointment_id=completed.id, rating=5)
        with pytest.raises(Unauthorized):
            await ratings.rate_appointment(session, None, appointment_id=completed.id, rating=5)

    async def test_missing_appointment_is_not_found(self, session, patient):
        with pytest.raises(NotFound):
            await ratings.rate_appointment(session, patient, appointment_id=31337, rating=5)

    @pytest.mark.essential
    async def test_second_rating_is_rejected(self, session, patient, completed):
        await ratings.rate_appointment(session, patient, appointment_id=completed.id, rating=5)
        with pytest.raises(AlreadyRated):
            await ratings.rate_appointment(session, patient, appointment_id=completed.id, rating=1)

    @pytest.mark.slow
    @pytest.mark.essential
    async def test_concurrent_double_submit_stores_one_rating(self, database, patient, completed):
        async def submit(stars):
            async with database.session() as db:
                return await ratings.rate_appointment(db, patient, appointment_id=completed.id, rating=stars)

        results = await asyncio.gather(submit(5), submit(4), return_exceptions=True)

        assert sum(isinstance(r, Rating) for r in results) == 1
        assert sum(isinstance(r, AlreadyRated) for r in results) == 1
        async with database.session() as db:
            assert await db.scalar(sa.select(sa.func.count(Rating.id))) == 1


class TestRatingManagement:
    async def test_doctor_summary_averages_and_counts(self, session, patient, other_patient, doctor,
                                                     open_slots, booking_for):
        for who, slot, stars, anonymous in ((patient, open_slots[0], 5, False),
                                            (other_patient, open_slots[1], 4, True)):
            appt = await book_slot(session, who, **booking_for(slot))
            await lifecycle.confirm_appointment(session, doctor, appt.id)
            await lifecycle.complete_appointment(session, doctor, appt.id)
            await ratings.rate_appointment(session, who, appointment_id=appt.id, rating=stars, is_anonymous=anonymous)

        result = await ratings.ratings_for_doctor(session, DOCTOR_ID)
        assert result.total == 2
        assert result.average == 4.5
        assert {r.rating for r in result.ratings} == {4, 5}

    async def test_doctor_without_ratings(self, session):
        result = await ratings.ratings_for_doctor(session, "doc_new")
        assert (result.total, result.average, list(result.ratings)) == (0, 0.0, [])

    async def test_patient_lists_own_ratings(self, session, patient, other_patient, completed):
        await ratings.rate_appointment(session, patient, appointment_id=completed.id, rating=3)
        assert len(await ratings.ratings_by_patient(session, patient)) == 1
        assert await ratings.ratings_by_patient(session, other_patient) == []

    async def test_owner_updates_and_deletes(self, session, patient, completed):
        row = await ratings.rate_appointment(session, patient, appointment_id=completed.id, rating=2)

        updated = await ratings.update_rating(session, patient, row.id, rating=4, review="Better on reflection")
        assert (updated.rating, updated.review) == (4, "Better on reflection")

        await ratings.delete_rating(session, patient, row.id)
        assert await session.scalar(sa.select(sa.func.count(Rating.id))) == 0

    async def test_stranger_cannot_edit(self, session, patient, other_patient, completed):
        row = await ratings.rate_appointment(session, patient, appointment_id=completed.id, rating=2)
        with pytest.raises(Forbidden):
            await ratings.update_rating(session, other_patient, row.id, rating=5)
        with pytest.raises(Forbidden):
            await ratings.delete_rating(session, other_patient, row.id)
        with pytest.raises(NotFound):
            await ratings.delete_rating(session, patient, row.id + 100)
