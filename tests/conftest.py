#!/usr/bin/env python3
"""
Shared fixtures: a fresh SQLite file database per test, acting identities and
a doctor with a generated Monday of slots.
"""

import os
import sys
import time
from datetime import date, timedelta

import pytest
import pytest_asyncio

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Settings are read once at import; pin them before anything imports the package
os.environ.update({
    'APP_ENV': 'testing',
    'JWT_SECRET': 'test-secret',
    'CLINIC_TIMEZONE': 'America/Edmonton',
    'RELEASE_SLOT_ON_CANCEL': 'true',
    'AUTO_CREATE_TABLES': 'false',
})

from clinic_portal.core.security import DOCTOR, PATIENT, Identity
from clinic_portal.db.session import Database

DOCTOR_ID = "doc_1"
CLINIC_ID = "clinic_1"
ROOM_ID = "room_1"


def upcoming_monday(days_ahead: int = 30) -> date:
    """A Monday far enough ahead that every slot on it is in the future."""
    start = date.today() + timedelta(days=days_ahead)
    return start + timedelta(days=(-start.weekday()) % 7)


def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'clinic.db'}"


@pytest_asyncio.fixture
async def database(tmp_path):
    """File-backed so concurrent sessions get separate connections."""
    db = Database(database_url(tmp_path))
    await db.connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
def patient():
    return Identity(id="pat_1", role=PATIENT)


@pytest.fixture
def other_patient():
    return Identity(id="pat_2", role=PATIENT)


@pytest.fixture
def doctor():
    return Identity(id=DOCTOR_ID, role=DOCTOR)


@pytest.fixture
def other_doctor():
    return Identity(id="doc_2", role=DOCTOR)


@pytest.fixture
def monday():
    return upcoming_monday()


@pytest.fixture
def monday_row():
    return {
        "day_of_week": 1,
        "clinic_id": CLINIC_ID,
        "room_id": ROOM_ID,
        "start_time": "09:00",
        "end_time": "12:00",
        "slot_duration_minutes": 30,
        "is_active": True,
    }


@pytest_asyncio.fixture
async def open_slots(database, doctor, monday, monday_row):
    """Six available 30-minute slots (09:00..11:30) on `monday`."""
    from clinic_portal.services.schedule import save_schedule
    from clinic_portal.services.slot_generator import find_available_slots, generate_slots

    async with database.session() as db:
        await save_schedule(db, doctor, [monday_row])
        await generate_slots(db, doctor, from_date=monday, to_date=monday)
        return list(await find_available_slots(db, doctor_id=DOCTOR_ID, on_date=monday))


@pytest.fixture
def booking_for():
    """Keyword arguments for booking one of the fixture slots."""
    def _build(slot, **overrides):
        kwargs = {
            "doctor_id": slot.doctor_id,
            "clinic_id": slot.clinic_id,
            "room_id": slot.room_id,
            "slot_id": slot.id,
            "payment_amount": 50,
            "payment_method": "card",
        }
        kwargs.update(overrides)
        return kwargs
    return _build


@pytest.fixture(autouse=True)
def monitor_test_performance(request):
    """Warn about slow tests that are not marked as such"""
    start_time = time.time()
    yield
    duration = time.time() - start_time

    node = request.node
    if node.get_closest_marker("essential") and duration > 5.0:
        print(f"⚠️ Essential test {node.name} took {duration:.2f}s (should be < 5s)")
    elif not node.get_closest_marker("slow") and duration > 10.0:
        print(f"⚠️ Test {node.name} took {duration:.2f}s (consider marking as @pytest.mark.slow)")


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: fast tests with no I/O beyond a local SQLite file")
    config.addinivalue_line("markers", "essential: core booking guarantees")
    config.addinivalue_line("markers", "slow: concurrency tests with many simultaneous sessions")


def pytest_collection_modifyitems(config, items):
    """Run essential tests first and slow ones last"""
    def test_priority(item):
        if item.get_closest_marker("essential"):
            return 0
        if item.get_closest_marker("slow"):
            return 2
        return 1

    items[:] = sorted(items, key=test_priority)
