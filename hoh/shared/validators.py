"""Shared validation utilities"""

import re
from typing import Optional

TIME_SLOT_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_indian_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize an Indian mobile number.

    Args:
        phone: Phone number string, optionally with +91 / 0 prefix and separators

    Returns:
        The bare 10-digit number (bookings are tracked by this exact value)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    if len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    elif len(digits) == 11 and digits.startswith("0"):
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Please provide a valid 10-digit phone number")

    return digits


def validate_pincode(pincode: Optional[str]) -> Optional[str]:
    """Indian postal codes are exactly six digits"""
    if not pincode:
        return pincode

    pincode = pincode.strip()
    if not re.fullmatch(r"\d{6}", pincode):
        raise ValueError("Please provide a valid 6-digit pincode")
    return pincode


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
        raise ValueError("Please provide a valid email")

    return email


def validate_time_slot(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not TIME_SLOT_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    return value


def validate_rating(value) -> Optional[int]:
    """Whole-number star rating; 4.0 is accepted as 4, 4.5 is not"""
    if value is None:
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 1 <= value <= 5:
        raise ValueError("Rating must be a whole number between 1 and 5")
    if value != int(value):
        raise ValueError("Rating must be a whole number between 1 and 5")
    return int(value)
