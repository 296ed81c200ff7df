"""
Validation of signup profile payloads.
"""

from __future__ import annotations

import re
from typing import Any, Optional

MIN_AGE = 18
MIN_NAME_LENGTH = 2
MIN_PHONE_LENGTH = 10
MIN_COUNTRY_LENGTH = 2

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_age(value: Any) -> Optional[int]:
    """Read an age the way form input arrives: an int or a string starting with one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_profile(data: dict) -> list[str]:
    """Return one message per invalid field; an empty list means valid."""
    errors = []

    if not _text(data.get("userId")):
        errors.append("userId (Firebase UID) is required.")
    if len(_text(data.get("name"))) < MIN_NAME_LENGTH:
        errors.append("Name is required and must be at least 2 characters.")
    email = data.get("email")
    if not isinstance(email, str) or "@" not in email:
        errors.append("A valid Email is required.")
    if len(_text(data.get("phone"))) < MIN_PHONE_LENGTH:
        errors.append("Phone Number must be at least 10 digits.")
    age = parse_age(data.get("age"))
    if age is None or age < MIN_AGE:
        errors.append("Age is required and must be 18 or older.")
    if len(_text(data.get("country"))) < MIN_COUNTRY_LENGTH:
        errors.append("Country is required.")

    photo_url = data.get("photoUrl")
    if photo_url and not isinstance(photo_url, str):
        errors.append("Photo URL must be a string.")

    return errors
