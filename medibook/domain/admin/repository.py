"""Admin repository - aggregate queries across users, appointments and conflicts"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentConflictLog, Profile


class AdminRepository:
    @staticmethod
    def count_profiles_by_role(db: Session) -> dict[str, int]:
        rows = db.query(Profile.role, func.count(Profile.id)).group_by(Profile.role).all()
        return {role: count for role, count in rows}

    @staticmethod
    def count_appointments_by_status(db: Session) -> dict[str, int]:
        rows = (
            db.query(Appointment.status, func.count(Appointment.id))
            .group_by(Appointment.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def count_conflicts(db: Session) -> int:
        return db.query(func.count(AppointmentConflictLog.id)).scalar()

    @staticmethod
    def list_conflicts(db: Session, limit: int) -> list[AppointmentConflictLog]:
        return (
            db.query(AppointmentConflictLog)
            .order_by(AppointmentConflictLog.attempted_at.desc(), AppointmentConflictLog.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_profiles(db: Session) -> list[Profile]:
        return db.query(Profile).order_by(Profile.created_at.desc()).all()
