"""Admin service - dashboard statistics and audit views"""

import logging

from sqlalchemy.orm import Session

from ...errors import storage_errors
from ...models import ROLE_DOCTOR, ROLE_PATIENT, AppointmentConflictLog, Profile
from ..appointments.service import AppointmentService
from ..appointments.status import AppointmentStatus
from .repository import AdminRepository

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AdminRepository()

    def get_stats(self) -> dict:
        with storage_errors(self.db, "load dashboard stats"):
            roles = self.repo.count_profiles_by_role(self.db)
            statuses = self.repo.count_appointments_by_status(self.db)
            conflicts = self.repo.count_conflicts(self.db)

        return {
            "totalUsers": sum(roles.values()),
            "totalDoctors": roles.get(ROLE_DOCTOR, 0),
            "totalPatients": roles.get(ROLE_PATIENT, 0),
            "totalAppointments": sum(statuses.values()),
            "pendingAppointments": statuses.get(AppointmentStatus.PENDING.value, 0),
            "confirmedAppointments": statuses.get(AppointmentStatus.CONFIRMED.value, 0),
            "conflicts": conflicts,
        }

    def list_appointments(self) -> list[dict]:
        return AppointmentService(self.db).list_all()

    def list_conflicts(self, limit: int = 200) -> list[AppointmentConflictLog]:
        with storage_errors(self.db, "load conflict log"):
            return self.repo.list_conflicts(self.db, limit)

    def list_users(self) -> list[Profile]:
        with storage_errors(self.db, "load users"):
            return self.repo.list_profiles(self.db)
