"""Doctor service - Directory, availability and doctor registration"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    is_unique_violation,
    storage_errors,
)
from ...models import ROLE_ADMIN, ROLE_DOCTOR, Doctor, Profile
from ...shared.validators import SLOT_TIMES
from ..appointments.repository import AppointmentRepository
from .repository import DoctorRepository
from .schemas import DoctorCreate

logger = logging.getLogger(__name__)

UNKNOWN_DOCTOR_NAME = "Dr. Unknown"


class DoctorService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = DoctorRepository()

    def list_doctors(self, specialization: Optional[str] = None) -> list[dict]:
        """Active doctors, optionally for one specialization, with display names"""
        with storage_errors(self.db, "load doctors"):
            doctors = self.repo.list_active(self.db, specialization)

        try:
            profiles = self.repo.get_profiles(self.db, [d.id for d in doctors])
        except SQLAlchemyError as e:
            # Names are cosmetic; the directory stays usable without them
            self.db.rollback()
            logger.warning(f"⚠️ Doctor name lookup failed: {e}")
            profiles = {}

        return [self._to_view(d, profiles.get(d.id)) for d in doctors]

    def list_specializations(self) -> list[str]:
        with storage_errors(self.db, "load specializations"):
            return self.repo.list_specializations(self.db)

    def get_doctor(self, doctor_id: str) -> dict:
        with storage_errors(self.db, "load doctor"):
            doctor = self.repo.get_doctor(self.db, doctor_id)
            if not doctor:
                raise NotFoundError("Doctor not found")
            profile = self.repo.get_profile(self.db, doctor_id)
        return self._to_view(doctor, profile)

    def available_slots(self, doctor_id: str, on_date: date) -> list[str]:
        """Slot times on on_date still held by a non-cancelled appointment"""
        with storage_errors(self.db, "load availability"):
            doctor = self.repo.get_doctor(self.db, doctor_id)
            if not doctor or not doctor.is_active:
                raise NotFoundError("Doctor not found")
            booked = AppointmentRepository.booked_times(self.db, doctor_id, on_date)
        return [t for t in SLOT_TIMES if t not in booked]

    def register_doctor(self, data: DoctorCreate, actor: Profile) -> Doctor:
        """Attach the doctor record to an existing doctor identity"""
        if actor.role != ROLE_ADMIN and actor.id != data.doctor_id:
            raise PermissionDeniedError("You can only complete your own doctor registration")

        with storage_errors(self.db, "load profile"):
            profile = self.repo.get_profile(self.db, data.doctor_id)
            existing = self.repo.get_doctor(self.db, data.doctor_id)

        if not profile:
            raise NotFoundError("User profile not found")
        if profile.role != ROLE_DOCTOR:
            raise ValidationError("User is not registered as a doctor", "doctor_id")
        if existing:
            raise ConflictError("Doctor profile already exists")

        with storage_errors(self.db, "create doctor profile"):
            try:
                doctor = self.repo.create_doctor(
                    self.db,
                    id=data.doctor_id,
                    specialization=data.specialization,
                    experience_years=data.experience_years,
                    consultation_fee=data.consultation_fee,
                    license_number=data.license_number,
                    rating=5.0,
                    is_active=True,
                )
            except IntegrityError as e:
                self.db.rollback()
                if is_unique_violation(e):
                    raise ConflictError("Doctor profile already exists") from e
                raise ValidationError("Invalid doctor data") from e

        logger.info(f"🩺 Doctor profile created for {profile.email} ({doctor.specialization})")
        return doctor

    @staticmethod
    def _to_view(doctor: Doctor, profile: Optional[Profile]) -> dict:
        return {
            "id": doctor.id,
            "full_name": profile.full_name if profile else UNKNOWN_DOCTOR_NAME,
            "phone": profile.phone if profile else None,
            "specialization": doctor.specialization,
            "experience_years": doctor.experience_years,
            "consultation_fee": doctor.consultation_fee,
            "rating": doctor.rating,
            "is_active": doctor.is_active,
        }
