"""Admin router - every endpoint re-checks the admin role server-side"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import ROLE_ADMIN, Profile
from ..accounts.schemas import ProfileResponse
from ..appointments.schemas import AppointmentResponse
from .schemas import AdminStats, ConflictLogResponse
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"])

require_admin = require_role(ROLE_ADMIN)


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    _: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.get_stats()


@router.get("/appointments", response_model=list[AppointmentResponse])
async def list_appointments(
    _: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_appointments()


@router.get("/conflicts", response_model=list[ConflictLogResponse])
async def list_conflicts(
    limit: int = Query(200, ge=1, le=1000),
    _: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Rejected booking attempts, newest first"""
    return service.list_conflicts(limit)


@router.get("/users", response_model=list[ProfileResponse])
async def list_users(
    _: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_users()
