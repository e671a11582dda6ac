"""Doctor domain schemas"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class DoctorCreate(BaseModel):
    """Schema for attaching a doctor record to an existing identity"""

    doctor_id: str
    specialization: str
    experience_years: int = Field(default=0, ge=0, le=80)
    consultation_fee: float = Field(default=0.0, ge=0)
    license_number: Optional[str] = None

    @field_validator("specialization")
    @classmethod
    def validate_specialization(cls, v):
        if not v or not v.strip():
            raise ValueError("Specialization is required")
        return v.strip()


class DoctorResponse(BaseModel):
    id: str
    full_name: str
    phone: Optional[str] = None
    specialization: str
    experience_years: int
    consultation_fee: float
    rating: float
    is_active: bool


class TimeSlot(BaseModel):
    time: str
    available: bool = True


class AvailabilityResponse(BaseModel):
    doctor_id: str
    date: date
    slots: list[TimeSlot]
