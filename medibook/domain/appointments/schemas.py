"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...shared.validators import validate_email, validate_phone


class AppointmentCreate(BaseModel):
    """Schema for an authenticated patient booking a slot"""

    doctor_id: str
    appointment_date: date
    appointment_time: str
    reason: str
    consultation_mode: Optional[str] = "in-person"
    notes: Optional[str] = None
    patient_id: Optional[str] = None  # Must match the caller unless the caller is an admin


class GuestAppointmentCreate(BaseModel):
    """Schema for a booking made without an account"""

    guestName: str
    guestEmail: str
    guestPhone: str
    doctor_id: str
    appointment_date: date
    appointment_time: str
    reason: str
    consultation_mode: Optional[str] = "in-person"

    @field_validator("guestName")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("guestEmail")
    @classmethod
    def validate_guest_email(cls, v):
        return validate_email(v)

    @field_validator("guestPhone")
    @classmethod
    def validate_guest_phone(cls, v):
        return validate_phone(v)


class StatusUpdate(BaseModel):
    status: str


class AppointmentResponse(BaseModel):
    """Appointment with the counterpart's display details"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: Optional[str] = None
    doctor_id: str
    appointment_date: date
    appointment_time: str
    status: str
    reason_for_visit: str
    consultation_mode: str
    notes: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    is_guest: bool = False
    doctor_name: Optional[str] = None
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingResponse(BaseModel):
    success: bool = True
    message: str
    appointment: AppointmentResponse


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
