#!/usr/bin/env python3
"""
Tests for weekly schedule validation and persistence.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from clinic_portal.core.errors import Forbidden, InvalidRequest, Unauthorized
from clinic_portal.services.schedule import get_schedule, save_schedule, validate_schedule_rows

from conftest import CLINIC_ID


def day(dow, **overrides):
    row = {
        "day_of_week": dow,
        "clinic_id": CLINIC_ID,
        "room_id": None,
        "start_time": "09:00",
        "end_time": "17:00",
        "slot_duration_minutes": 30,
    }
    row.update(overrides)
    return row


@pytest.mark.unit
class TestValidateScheduleRows:
    def test_full_week_is_accepted(self):
        rows = validate_schedule_rows([day(d) for d in range(7)])
        assert [r["day_of_week"] for r in rows] == list(range(7))
        assert all(r["is_active"] for r in rows)

    def test_empty_schedule_is_accepted(self):
        assert validate_schedule_rows([]) == []
        assert validate_schedule_rows(None) == []

    def test_duplicate_day_is_rejected(self):
        with pytest.raises(InvalidRequest, match="more than once"):
            validate_schedule_rows([day(1), day(1, start_time="13:00")])

    @pytest.mark.parametrize("overrides", [
        {"day_of_week": 7},
        {"day_of_week": -1},
        {"day_of_week": "1"},
        {"start_time": "9am"},
        {"end_time": "24:00"},
        {"start_time": "12:00", "end_time": "09:00"},
        {"start_time": "09:00", "end_time": "09:00"},
        {"slot_duration_minutes": 0},
        {"slot_duration_minutes": -15},
        {"clinic_id": None},
        {"room_id": "room with spaces"},
    ])
    def test_malformed_row_is_rejected(self, overrides):
        with pytest.raises(InvalidRequest):
            validate_schedule_rows([day(1, **overrides)])

    def test_more_than_seven_rows_is_rejected(self):
        with pytest.raises(InvalidRequest):
            validate_schedule_rows([day(d % 7) for d in range(8)])


class TestSaveSchedule:
    @pytest.mark.essential
    async def test_save_replaces_previous_schedule(self, session, doctor):
        await save_schedule(session, doctor, [day(1), day(2), day(3)])
        saved = await save_schedule(session, doctor, [day(5, is_active=False)])

        assert [(r.day_of_week, r.is_active) for r in saved] == [(5, False)]
        assert [r.day_of_week for r in await get_schedule(session, doctor)] == [5]

    async def test_schedules_are_per_doctor(self, session, doctor, other_doctor):
        await save_schedule(session, doctor, [day(1)])
        await save_schedule(session, other_doctor, [day(2), day(4)])

        assert [r.day_of_week for r in await get_schedule(session, doctor)] == [1]
        assert [r.day_of_week for r in await get_schedule(session, other_doctor)] == [2, 4]

    async def test_invalid_save_keeps_existing_rows(self, session, doctor):
        await save_schedule(session, doctor, [day(1)])
        with pytest.raises(InvalidRequest):
            await save_schedule(session, doctor, [day(2), day(2)])
        assert [r.day_of_week for r in await get_schedule(session, doctor)] == [1]

    async def test_only_doctors_manage_schedules(self, session, patient):
        with pytest.raises(Forbidden):
            await save_schedule(session, patient, [day(1)])
        with pytest.raises(Forbidden):
            await get_schedule(session, patient)
        with pytest.raises(Unauthorized):
            await get_schedule(session, None)
