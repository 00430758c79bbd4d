# clinic_portal/services/validators.py
"""
Input checks shared by the services. Each raises InvalidRequest before any
store access happens.
"""
from __future__ import annotations

import math
import re
from typing import Any, Optional

from clinic_portal.core.errors import InvalidRequest

REF_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def require_ref(value: Any, field: str) -> str:
    """Opaque external identifier (doctor, patient, clinic, room)."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(f"{field} is required")
    value = value.strip()
    if not REF_RE.match(value):
        raise InvalidRequest(f"{field} is malformed")
    return value


def optional_ref(value: Any, field: str) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_ref(value, field)


def require_id(value: Any, field: str) -> int:
    """Store-assigned positive integer id; digit strings are accepted."""
    if isinstance(value, bool):
        raise InvalidRequest(f"{field} is malformed")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if value is None or value == "":
        raise InvalidRequest(f"{field} is required")
    if not isinstance(value, int) or value <= 0:
        raise InvalidRequest(f"{field} is malformed")
    return value


def require_amount(value: Any, field: str = "paymentAmount") -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRequest(f"{field} must be a number")
    if not math.isfinite(value):
        raise InvalidRequest(f"{field} must be a finite number")
    if value < 0:
        raise InvalidRequest(f"{field} cannot be negative")
    return round(float(value), 2)


def require_choice(value: Any, choices: tuple, field: str, default: Optional[str] = None) -> str:
    if value is None and default is not None:
        return default
    if not isinstance(value, str) or value.lower() not in choices:
        raise InvalidRequest(f"{field} must be one of: {', '.join(choices)}")
    return value.lower()


def clean_text(value: Any, field: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequest(f"{field} must be text")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidRequest(f"{field} must be at most {max_length} characters")
    return value or None
