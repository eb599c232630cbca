"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional

from ..timegrid import to_minutes


def normalize_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Strip formatting characters, keeping digits and a leading +.

    Gateway webhooks already send E.164 numbers; tenant-entered numbers may carry
    spaces, dashes or parentheses.
    """
    if not phone:
        return None
    normalized = re.sub(r"[^\d+]", "", phone.strip())
    return normalized or None


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164 format.

    Ten-digit numbers are treated as North American and get a +1 prefix.

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    has_plus = phone.strip().startswith("+")
    digits = re.sub(r"\D", "", phone)

    if not has_plus and len(digits) == 10:
        return f"+1{digits}"
    if not has_plus and len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if has_plus and 10 <= len(digits) <= 15:
        return f"+{digits}"

    raise ValueError("Phone number must have 10 to 15 digits")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address, or None for blank input

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return None

    email = email.strip().lower()
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_time(value: str) -> str:
    """Validate an HH:MM string"""
    to_minutes(value)
    return value.strip()


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD into a calendar date (no time-of-day component)"""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError) as e:
        raise ValueError("Date must be in YYYY-MM-DD format") from e
