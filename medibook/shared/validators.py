"""Shared validation utilities"""

import re
import uuid
from datetime import date, timedelta
from typing import Optional

# Half-hour booking slots; lunch (12:00-14:00) is not bookable
SLOT_TIMES = (
    "09:00",
    "09:30",
    "10:00",
    "10:30",
    "11:00",
    "11:30",
    "14:00",
    "14:30",
    "15:00",
    "15:30",
    "16:00",
    "16:30",
    "17:00",
    "17:30",
)

CONSULTATION_MODES = ("in-person", "online")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number.

    Keeps a leading "+" and the digits; accepts 7 to 15 digits (E.164 range).

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)

    if not 7 <= len(digits) <= 15:
        raise ValueError("Phone number must contain 7 to 15 digits")

    return f"+{digits}" if phone.startswith("+") else digits


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

    if not re.match(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", email):
        raise ValueError("Invalid email format")

    return email


def validate_slot_time(value: str) -> str:
    """Normalize "H:MM"/"HH:MM[:SS]" and require one of SLOT_TIMES"""
    match = re.fullmatch(r"(\d{1,2}):(\d{2})(?::\d{2})?", (value or "").strip())
    if not match:
        raise ValueError("Time must be in HH:MM format")

    normalized = f"{int(match.group(1)):02d}:{match.group(2)}"
    if normalized not in SLOT_TIMES:
        raise ValueError(f"{normalized} is not an available time slot")

    return normalized


def validate_booking_date(value: date, window_days: int, today: Optional[date] = None) -> date:
    """Require today < value <= today + window_days; same-day slots are not bookable"""
    today = today or date.today()
    if value < today:
        raise ValueError("Appointment date cannot be in the past")
    if value == today:
        raise ValueError("Appointments must be booked at least one day in advance")
    if value > today + timedelta(days=window_days):
        raise ValueError(f"Appointments can only be booked up to {window_days} days ahead")
    return value


def validate_consultation_mode(value: Optional[str]) -> str:
    mode = (value or "in-person").strip().lower()
    if mode not in CONSULTATION_MODES:
        raise ValueError("Consultation mode must be 'in-person' or 'online'")
    return mode
