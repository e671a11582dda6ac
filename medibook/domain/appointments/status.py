"""Appointment status state machine"""

from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def parse_status(value: str) -> AppointmentStatus:
    try:
        return AppointmentStatus((value or "").strip().lower())
    except ValueError as e:
        allowed = ", ".join(s.value for s in AppointmentStatus)
        raise ValueError(f"Unknown status '{value}'. Expected one of: {allowed}") from e


def can_transition(current: AppointmentStatus, requested: AppointmentStatus) -> bool:
    """Re-applying the current status is always allowed and changes nothing"""
    return current == requested or requested in ALLOWED_TRANSITIONS[current]
