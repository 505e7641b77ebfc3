"""
Shared validation functions used across schemas
"""

import re
from typing import Optional


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate an international phone number and normalize it to E.164.

    Accepts spaces, dashes, dots and parentheses. A leading 0 is treated as a
    Pakistani trunk prefix (03001234567 -> +923001234567).

    Raises:
        ValueError: If the number cannot be normalized
    """
    if not phone:
        return phone

    digits = re.sub(r"[\s\-\.\(\)]", "", phone.strip())

    if digits.startswith("00"):
        digits = "+" + digits[2:]
    elif digits.startswith("0"):
        digits = "+92" + digits[1:]
    elif not digits.startswith("+"):
        digits = "+" + digits

    if not re.match(r"^\+[1-9]\d{7,14}$", digits):
        raise ValueError("Invalid phone number. Use international format, e.g. +923001234567")

    return digits


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_time_slot(slot: str) -> str:
    """Validate an "HH:MM" 24h time slot label"""
    slot = slot.strip()
    if not re.match(r"^([01]\d|2[0-3]):[0-5]\d$", slot):
        raise ValueError(f"Invalid time slot '{slot}'. Use HH:MM (24h)")
    return slot


def validate_rating(value: Optional[int], field: str = "rating") -> Optional[int]:
    if value is None:
        return value
    if value < 1 or value > 5:
        raise ValueError(f"{field} must be between 1 and 5")
    return value
