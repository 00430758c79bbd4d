# clinic_portal/services/payments.py
"""
Read side of the payment mirror: doctors see payments for their appointments,
every other caller sees their own.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.errors import InvalidRequest, Unauthorized, translate_storage_errors
from clinic_portal.core.logging import get_logger
from clinic_portal.core.security import DOCTOR, Identity
from clinic_portal.crud import payment as payments
from clinic_portal.db.models.payment import Payment

logger = get_logger(__name__)


def parse_timestamp(value: Any, field: str) -> Optional[datetime]:
    """
    ISO date or datetime -> aware UTC datetime. Values without an offset
    (including bare dates) are taken as UTC.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidRequest(f"{field} must be an ISO date or timestamp")
    else:
        raise InvalidRequest(f"{field} must be an ISO date or timestamp")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@translate_storage_errors
async def list_payments_for(
    db: AsyncSession,
    actor: Optional[Identity],
    *,
    from_value: Any = None,
    to_value: Any = None,
) -> Sequence[Payment]:
    if actor is None:
        raise Unauthorized("Authentication required")
    since = parse_timestamp(from_value, "from")
    until = parse_timestamp(to_value, "to")

    if actor.role == DOCTOR:
        rows = await payments.list_payments(db, doctor_id=actor.id, since=since, until=until)
    else:
        rows = await payments.list_payments(db, patient_id=actor.id, since=since, until=until)

    logger.debug("payments_listed", role=actor.role, count=len(rows))
    return rows
