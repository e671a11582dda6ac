"""
Appointment service - Booking and the appointment query layer.

Slot conflicts are decided by the database: the partial unique index on
(doctor_id, appointment_date, appointment_time) admits one live appointment
per slot, so the insert is the only conflict check and concurrent bookings
cannot both succeed.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import (
    BOOKING_WINDOW_DAYS,
    CONFLICT_LOG_MAX_PER_WINDOW,
    CONFLICT_LOG_WINDOW_SECONDS,
)
from ...errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    UpstreamError,
    ValidationError,
    is_unique_violation,
    storage_errors,
)
from ...models import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, Appointment, Profile, utcnow
from ...shared.validators import (
    validate_booking_date,
    validate_consultation_mode,
    validate_email,
    validate_phone,
    validate_slot_time,
    validate_uuid,
)
from .repository import AppointmentRepository
from .status import AppointmentStatus, can_transition, parse_status

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE_MESSAGE = "This time slot is no longer available. Please choose another time."


@dataclass
class GuestContact:
    name: str
    email: str
    phone: str


class AppointmentService:
    """Service layer for booking and appointment management"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    # ========================================================================
    # BOOKING
    # ========================================================================

    def book_slot(
        self,
        doctor_id: str,
        appointment_date: Union[date, str],
        appointment_time: str,
        reason: str,
        consultation_mode: Optional[str] = "in-person",
        patient: Optional[Profile] = None,
        guest: Optional[GuestContact] = None,
        notes: Optional[str] = None,
    ) -> Appointment:
        """
        Reserve a slot for a patient or a guest.

        Raises ValidationError before touching storage, NotFoundError for an
        unknown or inactive doctor, ConflictError when the slot is taken and
        UpstreamError when storage fails.
        """
        if (patient is None) == (guest is None):
            raise ValidationError("Provide either a patient or guest contact details", "requester")
        if not doctor_id:
            raise ValidationError("Doctor is required", "doctor_id")
        if not reason or not reason.strip():
            raise ValidationError("Reason for visit is required", "reason")

        slot_date = self._validate_date(appointment_date)
        slot_time = self._validate(validate_slot_time, appointment_time, "appointment_time")
        mode = self._validate(validate_consultation_mode, consultation_mode, "consultation_mode")
        if guest is not None:
            guest = self._validate_guest(guest)

        with storage_errors(self.db, "check doctor"):
            doctor = self.repo.get_active_doctor(self.db, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found or not accepting appointments")

        appointment = Appointment(
            patient_id=patient.id if patient else None,
            doctor_id=doctor_id,
            appointment_date=slot_date,
            appointment_time=slot_time,
            status=AppointmentStatus.PENDING.value,
            reason_for_visit=reason.strip(),
            consultation_mode=mode,
            notes=notes,
            guest_name=guest.name if guest else None,
            guest_email=guest.email if guest else None,
            guest_phone=guest.phone if guest else None,
        )

        try:
            appointment = self.repo.insert_appointment(self.db, appointment)
        except IntegrityError as e:
            self.db.rollback()
            if not is_unique_violation(e):
                logger.error(f"❌ Appointment insert rejected by storage: {e.orig}")
                raise ValidationError("Invalid appointment data") from e
            source = "guest" if guest else "patient"
            logger.info(f"⛔ Slot taken: doctor={doctor_id} {slot_date} {slot_time} ({source})")
            self._record_conflict(doctor_id, slot_date, slot_time, source)
            raise ConflictError(SLOT_UNAVAILABLE_MESSAGE) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to insert appointment: {type(e).__name__}: {e}")
            raise UpstreamError("Failed to book appointment. Please try again.") from e

        logger.info(
            f"✅ Appointment {appointment.id} booked: doctor={doctor_id} {slot_date} {slot_time}"
        )
        return appointment

    def _validate(self, validator, value, field: str):
        try:
            return validator(value)
        except ValueError as e:
            raise ValidationError(str(e), field) from e

    def _validate_date(self, value: Union[date, str]) -> date:
        if not value:
            raise ValidationError("Appointment date is required", "appointment_date")
        if isinstance(value, str):
            try:
                value = date.fromisoformat(value)
            except ValueError as e:
                raise ValidationError("Date must be in YYYY-MM-DD format", "appointment_date") from e
        try:
            return validate_booking_date(value, BOOKING_WINDOW_DAYS)
        except ValueError as e:
            raise ValidationError(str(e), "appointment_date") from e

    def _validate_guest(self, guest: GuestContact) -> GuestContact:
        if not guest.name or not guest.name.strip():
            raise ValidationError("Name is required", "guestName")
        if not guest.email:
            raise ValidationError("Email is required", "guestEmail")
        if not guest.phone:
            raise ValidationError("Phone is required", "guestPhone")
        return GuestContact(
            name=guest.name.strip(),
            email=self._validate(validate_email, guest.email, "guestEmail"),
            phone=self._validate(validate_phone, guest.phone, "guestPhone"),
        )

    def _record_conflict(self, doctor_id: str, slot_date: date, slot_time: str, source: str) -> None:
        """
        Append a conflict log entry unless the doctor's log is at its per-window limit.

        The limit is soft: the count and the insert are separate statements, so
        concurrent conflicts for one doctor can overshoot it by a few rows.
        """
        since = utcnow() - timedelta(seconds=CONFLICT_LOG_WINDOW_SECONDS)
        try:
            recent = self.repo.count_recent_conflicts(self.db, doctor_id, since)
            if recent >= CONFLICT_LOG_MAX_PER_WINDOW:
                logger.warning(
                    f"⚠️ Conflict log limit reached for doctor {doctor_id} "
                    f"({recent} in {CONFLICT_LOG_WINDOW_SECONDS}s); not persisting attempt"
                )
                return
            self.repo.create_conflict_log(
                self.db,
                doctor_id,
                {
                    "attempted_date": slot_date.isoformat(),
                    "attempted_time": slot_time,
                    "timestamp": utcnow().isoformat(),
                    "source": source,
                },
            )
        except SQLAlchemyError as e:
            # The booking is rejected either way; a lost log entry must not turn it into a 500
            self.db.rollback()
            logger.error(f"❌ Failed to write conflict log for doctor {doctor_id}: {e}")

    # ========================================================================
    # QUERIES
    # ========================================================================

    def list_for_patient(self, patient_id: str) -> list[dict]:
        """A patient's appointments with doctor names"""
        with storage_errors(self.db, "load appointments"):
            appointments = self.repo.list_for_patient(self.db, patient_id)
        profiles = self._load_profiles({a.doctor_id for a in appointments})
        return [self.to_view(a, profiles) for a in appointments]

    def list_for_doctor(self, doctor_id: str) -> list[dict]:
        """A doctor's queue with patient names and phones"""
        with storage_errors(self.db, "load appointments"):
            appointments = self.repo.list_for_doctor(self.db, doctor_id)
        profiles = self._load_profiles({a.patient_id for a in appointments if a.patient_id})
        return [self.to_view(a, profiles) for a in appointments]

    def list_all(self) -> list[dict]:
        with storage_errors(self.db, "load appointments"):
            appointments = self.repo.list_all(self.db)
        ids = {a.doctor_id for a in appointments} | {a.patient_id for a in appointments if a.patient_id}
        profiles = self._load_profiles(ids)
        return [self.to_view(a, profiles) for a in appointments]

    def list_appointments(
        self, actor: Profile, patient_id: Optional[str] = None, doctor_id: Optional[str] = None
    ) -> list[dict]:
        """Filtered listing with ownership checks for non-admin callers"""
        if not patient_id and not doctor_id:
            raise ValidationError("Provide either patient_id or doctor_id", "patient_id")

        if patient_id:
            if actor.role != ROLE_ADMIN and actor.id != patient_id:
                raise PermissionDeniedError("You can only view your own appointments")
            return self.list_for_patient(patient_id)

        if actor.role != ROLE_ADMIN and actor.id != doctor_id:
            raise PermissionDeniedError("You can only view your own appointment queue")
        return self.list_for_doctor(doctor_id)

    def _load_profiles(self, profile_ids: set[str]) -> dict:
        """Enrichment lookup; failure degrades to raw ids rather than failing the listing"""
        try:
            return self.repo.get_profiles(self.db, profile_ids)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Name lookup failed, returning appointments without names: {e}")
            return {}

    @staticmethod
    def to_view(appointment: Appointment, profiles: Optional[dict] = None) -> dict:
        profiles = profiles or {}
        doctor = profiles.get(appointment.doctor_id)
        patient = profiles.get(appointment.patient_id) if appointment.patient_id else None
        is_guest = appointment.patient_id is None

        return {
            "id": appointment.id,
            "patient_id": appointment.patient_id,
            "doctor_id": appointment.doctor_id,
            "appointment_date": appointment.appointment_date,
            "appointment_time": appointment.appointment_time,
            "status": appointment.status,
            "reason_for_visit": appointment.reason_for_visit,
            "consultation_mode": appointment.consultation_mode,
            "notes": appointment.notes,
            "guest_name": appointment.guest_name,
            "guest_email": appointment.guest_email,
            "guest_phone": appointment.guest_phone,
            "is_guest": is_guest,
            "doctor_name": doctor.full_name if doctor else None,
            "patient_name": appointment.guest_name if is_guest else (patient.full_name if patient else None),
            "patient_phone": appointment.guest_phone if is_guest else (patient.phone if patient else None),
            "created_at": appointment.created_at,
            "updated_at": appointment.updated_at,
        }

    # ========================================================================
    # STATUS CHANGES
    # ========================================================================

    def get_patient(self, patient_id: str) -> Profile:
        with storage_errors(self.db, "load patient"):
            patient = self.repo.get_profiles(self.db, {patient_id}).get(patient_id)
        if not patient or patient.role != ROLE_PATIENT:
            raise NotFoundError("Patient not found")
        return patient

    def get_appointment(self, appointment_id: str) -> Appointment:
        if not validate_uuid(appointment_id):
            raise NotFoundError("Appointment not found")
        with storage_errors(self.db, "load appointment"):
            appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def set_status(
        self, appointment_id: str, new_status: str, actor: Optional[Profile] = None
    ) -> Appointment:
        """
        Move an appointment through the state machine.

        pending -> confirmed -> completed, and pending/confirmed -> cancelled.
        Re-applying the current status is a no-op. When actor is given,
        patients may only cancel their own appointments and doctors may only
        act on their own queue.
        """
        try:
            requested = parse_status(new_status)
        except ValueError as e:
            raise ValidationError(str(e), "status") from e

        appointment = self.get_appointment(appointment_id)
        if actor is not None:
            self._check_can_change(appointment, requested, actor)

        current = parse_status(appointment.status)
        if not can_transition(current, requested):
            logger.warning(
                f"🚫 Rejected status change for {appointment_id}: {current.value} -> {requested.value}"
            )
            raise InvalidTransitionError(current.value, requested.value)

        if current == requested:
            logger.debug(f"Appointment {appointment_id} already {current.value}")
            return appointment

        with storage_errors(self.db, "update appointment"):
            appointment = self.repo.update_status(self.db, appointment, requested.value)

        logger.info(f"✅ Appointment {appointment_id}: {current.value} -> {requested.value}")
        return appointment

    def cancel(self, appointment_id: str, actor: Optional[Profile] = None) -> Appointment:
        return self.set_status(appointment_id, AppointmentStatus.CANCELLED.value, actor)

    @staticmethod
    def _check_can_change(appointment: Appointment, requested: AppointmentStatus, actor: Profile) -> None:
        if actor.role == ROLE_ADMIN:
            return
        if actor.role == ROLE_DOCTOR and appointment.doctor_id == actor.id:
            return
        if (
            actor.role == ROLE_PATIENT
            and appointment.patient_id == actor.id
            and requested == AppointmentStatus.CANCELLED
        ):
            return
        raise PermissionDeniedError("You cannot change the status of this appointment")
