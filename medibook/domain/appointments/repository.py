"""Appointment repository - Database operations for appointments and conflict logs"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentConflictLog, Doctor, Profile
from .status import AppointmentStatus


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_active_doctor(db: Session, doctor_id: str) -> Optional[Doctor]:
        return (
            db.query(Doctor)
            .filter(Doctor.id == doctor_id, Doctor.is_active.is_(True))
            .first()
        )

    @staticmethod
    def insert_appointment(db: Session, appointment: Appointment) -> Appointment:
        """
        Insert and commit a new appointment.
        Raises IntegrityError when the slot already holds a live appointment.
        """
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def get_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def list_for_patient(db: Session, patient_id: str) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .all()
        )

    @staticmethod
    def list_for_doctor(db: Session, doctor_id: str) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id)
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .all()
        )

    @staticmethod
    def list_all(db: Session) -> list[Appointment]:
        return (
            db.query(Appointment)
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .all()
        )

    @staticmethod
    def booked_times(db: Session, doctor_id: str, on_date: date) -> set[str]:
        rows = (
            db.query(Appointment.appointment_time)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == on_date,
                # Same predicate as uq_appointments_live_slot: only cancelled rows release a slot
                Appointment.status != AppointmentStatus.CANCELLED.value,
            )
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def update_status(db: Session, appointment: Appointment, status: str) -> Appointment:
        appointment.status = status
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def get_profiles(db: Session, profile_ids: set[str]) -> dict[str, Profile]:
        """Load display details for the given profile ids"""
        if not profile_ids:
            return {}
        profiles = db.query(Profile).filter(Profile.id.in_(profile_ids)).all()
        return {p.id: p for p in profiles}

    # Conflict Log Methods
    @staticmethod
    def count_recent_conflicts(db: Session, doctor_id: str, since: datetime) -> int:
        return (
            db.query(func.count(AppointmentConflictLog.id))
            .filter(
                AppointmentConflictLog.doctor_id == doctor_id,
                AppointmentConflictLog.attempted_at >= since,
            )
            .scalar()
        )

    @staticmethod
    def create_conflict_log(db: Session, doctor_id: str, detail: dict) -> AppointmentConflictLog:
        entry = AppointmentConflictLog(doctor_id=doctor_id, conflicting_appointments=detail)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
