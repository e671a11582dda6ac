"""Appointment router - FastAPI endpoints for booking and appointment management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW_SECONDS
from ...database import get_db
from ...errors import PermissionDeniedError, ValidationError
from ...models import ROLE_ADMIN, ROLE_PATIENT, Profile
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    BookingResponse,
    GuestAppointmentCreate,
    StatusUpdate,
)
from .service import AppointmentService, GuestContact

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

booking_rate_limit = create_rate_limiter(
    limit=BOOKING_RATE_LIMIT, window_seconds=BOOKING_RATE_WINDOW_SECONDS, key_prefix="booking"
)


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# BOOKING
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    data: AppointmentCreate,
    current_user: Profile = Depends(require_role(ROLE_PATIENT, ROLE_ADMIN)),
    service: AppointmentService = Depends(get_appointment_service),
    _: None = Depends(booking_rate_limit),
):
    """Book a slot for the signed-in patient (admins book on behalf of a patient)"""
    patient = current_user
    if current_user.role == ROLE_ADMIN:
        if not data.patient_id:
            raise ValidationError("patient_id is required when booking as an admin", "patient_id")
        patient = service.get_patient(data.patient_id)
    elif data.patient_id and data.patient_id != current_user.id:
        raise PermissionDeniedError("You can only book appointments for yourself")

    appointment = service.book_slot(
        doctor_id=data.doctor_id,
        appointment_date=data.appointment_date,
        appointment_time=data.appointment_time,
        reason=data.reason,
        consultation_mode=data.consultation_mode,
        patient=patient,
        notes=data.notes,
    )
    return BookingResponse(
        message="Appointment booked successfully",
        appointment=AppointmentResponse(**service.to_view(appointment)),
    )


@router.post("/guest", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_guest_appointment(
    data: GuestAppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
    _: None = Depends(booking_rate_limit),
):
    """Book a slot without an account; contact details are stored on the appointment"""
    appointment = service.book_slot(
        doctor_id=data.doctor_id,
        appointment_date=data.appointment_date,
        appointment_time=data.appointment_time,
        reason=data.reason,
        consultation_mode=data.consultation_mode,
        guest=GuestContact(name=data.guestName, email=data.guestEmail, phone=data.guestPhone),
    )
    return BookingResponse(
        message="Appointment booked successfully. We will contact you to confirm.",
        appointment=AppointmentResponse(**service.to_view(appointment)),
    )


# ============================================================================
# QUERIES
# ============================================================================


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    patient_id: Optional[str] = Query(None),
    doctor_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """List appointments for one patient or one doctor"""
    appointments = service.list_appointments(current_user, patient_id=patient_id, doctor_id=doctor_id)
    return {"appointments": appointments}


@router.get("/mine", response_model=AppointmentListResponse)
async def my_appointments(
    current_user: Profile = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments for the caller: bookings for a patient, the queue for a doctor, everything for an admin"""
    if current_user.role == ROLE_PATIENT:
        return {"appointments": service.list_for_patient(current_user.id)}
    if current_user.role == ROLE_ADMIN:
        return {"appointments": service.list_all()}
    return {"appointments": service.list_for_doctor(current_user.id)}


# ============================================================================
# STATUS CHANGES
# ============================================================================


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: str,
    data: StatusUpdate,
    current_user: Profile = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Approve, complete or cancel an appointment"""
    appointment = service.set_status(appointment_id, data.status, actor=current_user)
    return service.to_view(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: str,
    current_user: Profile = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Cancel an appointment; cancelling twice is harmless"""
    appointment = service.cancel(appointment_id, actor=current_user)
    return service.to_view(appointment)
