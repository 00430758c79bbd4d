# clinic_portal/core/security.py
"""
Identity resolution. Tokens are issued by the portal's auth service; this side
only verifies them and hands the (id, role) pair to the booking core.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from clinic_portal.core.config import settings
from clinic_portal.core.errors import Forbidden, Unauthorized

PATIENT = "patient"
DOCTOR = "doctor"


@dataclass(frozen=True)
class Identity:
    id: str
    role: str

    @property
    def is_patient(self) -> bool:
        return self.role == PATIENT

    @property
    def is_doctor(self) -> bool:
        return self.role == DOCTOR


def create_access_token(identity_id: str, role: str, expires_minutes: int = 60) -> str:
    to_encode: Dict[str, Any] = {"id": identity_id, "role": role}
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Identity]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    identity_id = payload.get("id") or payload.get("sub")
    role = payload.get("role")
    if not identity_id or not isinstance(role, str):
        return None
    return Identity(id=str(identity_id), role=role)


def require_role(actor: Optional[Identity], role: str, message: str = "") -> Identity:
    """Reject missing identities and identities without the exact role."""
    if actor is None:
        raise Unauthorized("Authentication required")
    if actor.role != role:
        raise Forbidden(message or f"Only {role}s can perform this action")
    return actor
