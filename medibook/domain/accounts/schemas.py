"""Account schemas - registration and session payloads"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import validate_email, validate_phone


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    fullName: str
    role: Optional[str] = "patient"
    phone: Optional[str] = None
    # Doctor details; when present for a doctor the doctor record is created in the same transaction
    specialization: Optional[str] = None
    experienceYears: Optional[int] = Field(default=0, ge=0, le=80)
    consultationFee: Optional[float] = Field(default=0.0, ge=0)
    licenseNumber: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_register_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_register_phone(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("fullName")
    @classmethod
    def validate_full_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Full name is required")
        return v.strip()


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user: dict


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class SessionResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"
    user: Optional[dict] = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str
    role: str
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
