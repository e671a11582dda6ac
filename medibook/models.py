import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from .database import Base

ROLE_PATIENT = "patient"
ROLE_DOCTOR = "doctor"
ROLE_ADMIN = "admin"
ROLES = (ROLE_PATIENT, ROLE_DOCTOR, ROLE_ADMIN)


def generate_id():
    """Generate a UUID primary key matching identity-provider user ids"""
    return str(uuid.uuid4())


def utcnow():
    """Naive UTC timestamp, stored identically by PostgreSQL and SQLite"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Profile(Base):
    """Application profile for an identity-provider user; the source of truth for role"""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # Supabase auth user id
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), default=ROLE_PATIENT, nullable=False)
    phone = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    doctor = relationship("Doctor", back_populates="profile", uselist=False)


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    specialization = Column(String(100), index=True, nullable=False)
    experience_years = Column(Integer, default=0, nullable=False)
    consultation_fee = Column(Float, default=0.0, nullable=False)
    rating = Column(Float, default=5.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    license_number = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    profile = relationship("Profile", back_populates="doctor")
    appointments = relationship("Appointment", back_populates="doctor")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # One live booking per slot; cancelled rows free the slot again
        Index(
            "uq_appointments_live_slot",
            "doctor_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    patient_id = Column(
        String(36), ForeignKey("profiles.id"), index=True, nullable=True
    )  # NULL for guest bookings
    doctor_id = Column(String(36), ForeignKey("doctors.id"), index=True, nullable=False)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String(20), default="pending", nullable=False)
    reason_for_visit = Column(Text, nullable=False)
    consultation_mode = Column(String(20), default="in-person", nullable=False)
    notes = Column(Text, nullable=True)
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    doctor = relationship("Doctor", back_populates="appointments")
    patient = relationship("Profile")


class AppointmentConflictLog(Base):
    """Append-only record of booking attempts rejected because the slot was taken"""

    __tablename__ = "appointment_conflicts_log"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), index=True, nullable=False)
    attempted_at = Column(DateTime, default=utcnow, index=True, nullable=False)
    conflicting_appointments = Column(JSON, nullable=False)
