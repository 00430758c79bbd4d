# clinic_portal/api/routes/payments.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.api.deps import get_current_identity
from clinic_portal.core.errors import create_success_response
from clinic_portal.core.security import Identity
from clinic_portal.db.session import get_session
from clinic_portal.schemas.payment import PaymentRecordOut
from clinic_portal.services.payments import list_payments_for

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("")
async def list_payments(
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_session),
    actor: Optional[Identity] = Depends(get_current_identity),
):
    rows = await list_payments_for(db, actor, from_value=from_, to_value=to)
    return create_success_response([PaymentRecordOut.render(p) for p in rows])
