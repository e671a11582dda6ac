"""Doctor repository - Database operations for doctors"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Doctor, Profile


class DoctorRepository:
    @staticmethod
    def list_active(db: Session, specialization: Optional[str] = None) -> list[Doctor]:
        query = db.query(Doctor).filter(Doctor.is_active.is_(True))
        if specialization:
            query = query.filter(Doctor.specialization.ilike(specialization.strip()))
        return query.order_by(Doctor.rating.desc(), Doctor.experience_years.desc()).all()

    @staticmethod
    def list_specializations(db: Session) -> list[str]:
        rows = (
            db.query(Doctor.specialization)
            .filter(Doctor.is_active.is_(True))
            .distinct()
            .order_by(Doctor.specialization)
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def get_doctor(db: Session, doctor_id: str) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id).first()

    @staticmethod
    def get_profile(db: Session, profile_id: str) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.id == profile_id).first()

    @staticmethod
    def get_profiles(db: Session, profile_ids: list[str]) -> dict[str, Profile]:
        if not profile_ids:
            return {}
        return {p.id: p for p in db.query(Profile).filter(Profile.id.in_(profile_ids)).all()}

    @staticmethod
    def create_doctor(db: Session, **doctor_data) -> Doctor:
        doctor = Doctor(**doctor_data)
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor
