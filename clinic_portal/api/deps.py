# clinic_portal/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Request

from clinic_portal.core.logging import set_user_context
from clinic_portal.core.security import Identity, decode_access_token

AUTH_COOKIE = "auth_token"


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(AUTH_COOKIE) or None


async def get_current_identity(request: Request) -> Optional[Identity]:
    """
    Resolve the caller from a bearer token or the auth cookie.

    Returns None for anonymous or invalid tokens; the services decide whether
    an identity is required.
    """
    token = _bearer_token(request)
    if not token:
        return None
    identity = decode_access_token(token)
    if identity is not None:
        set_user_context(
            user_id=identity.id,
            endpoint=request.url.path,
            method=request.method,
            role=identity.role,
        )
    return identity
