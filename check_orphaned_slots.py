#!/usr/bin/env python3
"""
List slots held as booked without a live appointment (reconciliation candidates)
"""
import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

sys.path.insert(0, str(Path(__file__).parent))

from clinic_portal.core.config import settings
from clinic_portal.crud.slot import list_orphaned_slots
from clinic_portal.db.session import Database


async def check_orphans(doctor_id: str | None = None) -> int:
    print("🔍 Checking for orphaned slots")
    print("=" * 45)

    database = Database(settings.async_db_uri)
    await database.connect()
    try:
        async with database.session() as db:
            slots = await list_orphaned_slots(db, doctor_id=doctor_id)
    finally:
        await database.dispose()

    if not slots:
        print("✅ No orphaned slots found")
        return 0

    print(f"⚠️  Found {len(slots)} booked slot(s) with no active appointment:")
    print("=" * 45)
    for slot in slots:
        print(f"   Slot {slot.id}: doctor={slot.doctor_id} clinic={slot.clinic_id} "
              f"room={slot.room_id or '-'} {slot.date.isoformat()} {slot.time}")
    return len(slots)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--doctor", help="only check this doctor's slots")
    args = parser.parse_args()

    found = asyncio.run(check_orphans(args.doctor))
    sys.exit(1 if found else 0)
