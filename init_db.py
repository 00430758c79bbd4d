#!/usr/bin/env python3
"""
Database initialization script for local SQLite development
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))


async def init_database() -> bool:
    """Create every table on the configured database and check the connection"""
    from clinic_portal.core.config import settings
    from clinic_portal.db.session import Database

    print("🗄️  Initializing database...")
    Path("data").mkdir(exist_ok=True)

    database = Database(settings.async_db_uri)
    try:
        await database.connect()
        await database.create_all()
        print("✅ Database tables created successfully!")

        await database.ping()
        print("✅ Database connection test passed!")
    except Exception as e:
        print(f"❌ Database initialization failed: {e}")
        return False
    finally:
        await database.dispose()

    return True


async def create_sample_schedule(doctor_id: str = "doc_demo", clinic_id: str = "clinic_demo") -> None:
    """Give a demo doctor a Mon-Fri schedule and two weeks of slots"""
    from clinic_portal.core.config import settings
    from clinic_portal.core.security import DOCTOR, Identity
    from clinic_portal.crud.schedule import list_schedule_days
    from clinic_portal.db.session import Database
    from clinic_portal.services.schedule import save_schedule
    from clinic_portal.services.slot_generator import generate_slots

    print("📝 Creating sample schedule...")
    doctor = Identity(id=doctor_id, role=DOCTOR)
    database = Database(settings.async_db_uri)
    await database.connect()
    try:
        async with database.session() as db:
            if await list_schedule_days(db, doctor_id=doctor_id):
                print("📊 Sample schedule already exists, skipping creation")
            else:
                await save_schedule(db, doctor, [
                    {
                        "day_of_week": day,
                        "clinic_id": clinic_id,
                        "room_id": "room_1",
                        "start_time": "09:00",
                        "end_time": "17:00",
                        "slot_duration_minutes": 30,
                    }
                    for day in range(1, 6)
                ])
            created = await generate_slots(db, doctor)
            print(f"✅ {created} new slot(s) generated for {doctor_id}")
    finally:
        await database.dispose()


if __name__ == "__main__":
    print("🚀 Clinic Portal Database Initialization")
    print("=" * 50)

    # Local runs default to a SQLite file
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./data/clinic.db")

    success = asyncio.run(init_database())

    if success:
        if "--sample" in sys.argv:
            asyncio.run(create_sample_schedule())

        print("\n🎉 Database initialization complete!")
        print("\nNext steps:")
        print("1. Run: uvicorn clinic_portal.main:app --reload")
        print("2. Test: curl http://localhost:8000/healthz")
    else:
        print("\n❌ Database initialization failed!")
        sys.exit(1)
