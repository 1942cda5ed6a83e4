"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number.

    Separators (spaces, hyphens, dots, parentheses) are dropped so that the
    same number typed two ways matches when looking up returning customers.

    Args:
        phone: Phone number string in various formats

    Returns:
        Digits only, keeping a leading "+" if present

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    prefix = "+" if phone.startswith("+") else ""
    digits = re.sub(r"\D", "", phone)

    if re.search(r"[^\d\s\-\.\(\)\+]", phone):
        raise ValueError("Phone number may only contain digits and separators")

    if not 9 <= len(digits) <= 15:
        raise ValueError("Phone number must have between 9 and 15 digits")

    return f"{prefix}{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_iso_date(value: str) -> date:
    """Parse a YYYY-MM-DD string"""
    try:
        return date.fromisoformat(value.strip())
    except (ValueError, AttributeError) as e:
        raise ValueError("Invalid date format. Expected YYYY-MM-DD") from e
