"""Validation helpers for Streamlit forms."""

from __future__ import annotations

import re
from typing import Iterable, Tuple


_ID_RE = re.compile(r"^[A-Za-z0-9_-]{2,32}$")
_DIGITS_RE = re.compile(r"^[0-9]+$")
# Bangladeshi mobile numbers: 01XXXXXXXXX, optional +88 / 88
_PHONE_RE = re.compile(r"^(?:\+?88)?01[3-9][0-9]{8}$")


def require_non_empty(value: str, field: str) -> Tuple[bool, str]:
    if not value or not value.strip():
        return False, f"{field} cannot be empty"
    return True, ""


def validate_id(value: str, field: str) -> Tuple[bool, str]:
    ok, msg = require_non_empty(value, field)
    if not ok:
        return ok, msg
    if not _ID_RE.match(value.strip()):
        return False, f"{field} must be 2-32 chars (letters/numbers/_/-)"
    return True, ""


def validate_digits(value: str, field: str, min_len: int = 1, max_len: int = 12) -> Tuple[bool, str]:
    """School code / year prefix: ASCII digits only, bounded length."""

    ok, msg = require_non_empty(value, field)
    if not ok:
        return ok, msg
    v = value.strip()
    if not _DIGITS_RE.match(v):
        return False, f"{field} must contain digits only"
    if len(v) < min_len or len(v) > max_len:
        return False, f"{field} must be {min_len}-{max_len} digits"
    return True, ""


def validate_phone(value: str, field: str, required: bool = False) -> Tuple[bool, str]:
    if not value or not value.strip():
        if required:
            return False, f"{field} is required"
        return True, ""
    if not _PHONE_RE.match(value.strip().replace(" ", "").replace("-", "")):
        return False, f"{field} must be a valid mobile number (01XXXXXXXXX)"
    return True, ""


def validate_positive_int(value: int, field: str, min_value: int = 1, max_value: int | None = None) -> Tuple[bool, str]:
    if value is None:
        return False, f"{field} is required"
    if value < min_value:
        return False, f"{field} must be >= {min_value}"
    if max_value is not None and value > max_value:
        return False, f"{field} must be <= {max_value}"
    return True, ""


def validate_unique(values: Iterable[str], field: str) -> Tuple[bool, str]:
    vals = [v.strip() for v in values if v and v.strip()]
    if len(vals) != len(set(vals)):
        return False, f"{field} contains duplicates"
    return True, ""


def validate_choice(value: str, field: str, allowed: Iterable[str]) -> Tuple[bool, str]:
    ok, msg = require_non_empty(value, field)
    if not ok:
        return ok, msg
    allowed_set = {str(x) for x in allowed}
    if str(value) not in allowed_set:
        return False, f"{field} must be one of: {', '.join(sorted(allowed_set))}"
    return True, ""
