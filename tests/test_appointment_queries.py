"""Appointment query layer: listings, enrichment and the status state machine"""

import pytest
from sqlalchemy.exc import OperationalError

from medibook.domain.appointments.repository import AppointmentRepository
from medibook.domain.appointments.service import AppointmentService, GuestContact
from medibook.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

from .conftest import future_date


@pytest.fixture
def service(db):
    return AppointmentService(db)


@pytest.fixture
def appointment(service, doctor, patient):
    return service.book_slot(
        doctor_id=doctor.id,
        appointment_date=future_date(),
        appointment_time="09:30",
        reason="Annual checkup",
        patient=patient,
    )


class TestListings:
    def test_patient_listing_ordered_with_doctor_names(self, service, doctor, patient):
        for days, time in [(5, "14:00"), (2, "11:00"), (5, "09:00")]:
            service.book_slot(
                doctor_id=doctor.id,
                appointment_date=future_date(days),
                appointment_time=time,
                reason="Checkup",
                patient=patient,
            )

        views = service.list_for_patient(patient.id)

        assert [(v["appointment_date"], v["appointment_time"]) for v in views] == [
            (future_date(2), "11:00"),
            (future_date(5), "09:00"),
            (future_date(5), "14:00"),
        ]
        assert {v["doctor_name"] for v in views} == {"Dr. Asha Rao"}

    def test_doctor_listing_includes_patient_and_guest_contact(self, service, doctor, patient):
        service.book_slot(
            doctor_id=doctor.id,
            appointment_date=future_date(),
            appointment_time="10:00",
            reason="Rash",
            patient=patient,
        )
        service.book_slot(
            doctor_id=doctor.id,
            appointment_date=future_date(),
            appointment_time="10:30",
            reason="Fever",
            guest=GuestContact(name="Ana Gomez", email="ana@example.com", phone="5551234567"),
        )

        first, second = service.list_for_doctor(doctor.id)

        assert first["patient_name"] == "Priya Patel"
        assert first["patient_phone"] == "9876543210"
        assert first["is_guest"] is False
        assert second["patient_id"] is None
        assert second["is_guest"] is True
        assert second["patient_name"] == "Ana Gomez"
        assert second["guest_email"] == "ana@example.com"

    def test_enrichment_failure_degrades_to_raw_ids(self, service, appointment, patient, doctor, monkeypatch):
        def broken_lookup(db, profile_ids):
            raise OperationalError("SELECT", {}, Exception("connection reset"))

        monkeypatch.setattr(AppointmentRepository, "get_profiles", staticmethod(broken_lookup))

        [view] = service.list_for_patient(patient.id)

        assert view["doctor_id"] == doctor.id
        assert view["doctor_name"] is None

    def test_listing_requires_a_filter(self, service, patient):
        with pytest.raises(ValidationError):
            service.list_appointments(patient)

    def test_patient_cannot_list_someone_else(self, service, patient, other_patient):
        with pytest.raises(PermissionDeniedError):
            service.list_appointments(other_patient, patient_id=patient.id)

    def test_doctor_cannot_list_another_queue(self, service, doctor, make_doctor):
        other = make_doctor(full_name="Dr. Other")
        with pytest.raises(PermissionDeniedError):
            service.list_appointments(other.profile, doctor_id=doctor.id)

    def test_admin_can_list_any(self, service, appointment, admin, patient, doctor):
        assert len(service.list_appointments(admin, patient_id=patient.id)) == 1
        assert len(service.list_appointments(admin, doctor_id=doctor.id)) == 1


class TestStatusTransitions:
    def test_pending_confirmed_completed(self, service, appointment):
        assert service.set_status(appointment.id, "confirmed").status == "confirmed"
        assert service.set_status(appointment.id, "completed").status == "completed"

    def test_completed_cannot_go_back_to_pending(self, service, appointment):
        service.set_status(appointment.id, "confirmed")
        service.set_status(appointment.id, "completed")

        with pytest.raises(InvalidTransitionError) as exc_info:
            service.set_status(appointment.id, "pending")

        assert exc_info.value.status_code == 409
        assert service.get_appointment(appointment.id).status == "completed"

    def test_completed_cannot_be_cancelled(self, service, appointment):
        service.set_status(appointment.id, "confirmed")
        service.set_status(appointment.id, "completed")

        with pytest.raises(InvalidTransitionError):
            service.cancel(appointment.id)

    def test_cancel_is_idempotent(self, service, appointment):
        first = service.cancel(appointment.id)
        updated_at = first.updated_at

        second = service.cancel(appointment.id)

        assert second.status == "cancelled"
        assert second.updated_at == updated_at

    def test_status_change_touches_updated_at(self, service, appointment):
        before = appointment.updated_at
        confirmed = service.set_status(appointment.id, "confirmed")
        assert confirmed.updated_at >= before

    def test_unknown_status_rejected(self, service, appointment):
        with pytest.raises(ValidationError) as exc_info:
            service.set_status(appointment.id, "scheduled")
        assert exc_info.value.field == "status"

    @pytest.mark.parametrize("appointment_id", ["not-a-uuid", "7c9e6679-7425-40de-944b-e07fc1f90ae7"])
    def test_unknown_appointment(self, service, appointment_id):
        with pytest.raises(NotFoundError):
            service.set_status(appointment_id, "confirmed")


class TestStatusPermissions:
    def test_doctor_confirms_own_appointment(self, service, appointment, doctor_profile):
        assert service.set_status(appointment.id, "confirmed", actor=doctor_profile).status == "confirmed"

    def test_other_doctor_cannot_confirm(self, service, appointment, make_doctor):
        other = make_doctor(full_name="Dr. Other")
        with pytest.raises(PermissionDeniedError):
            service.set_status(appointment.id, "confirmed", actor=other.profile)

    def test_patient_can_cancel_own(self, service, appointment, patient):
        assert service.cancel(appointment.id, actor=patient).status == "cancelled"

    def test_patient_cannot_confirm_own(self, service, appointment, patient):
        with pytest.raises(PermissionDeniedError):
            service.set_status(appointment.id, "confirmed", actor=patient)

    def test_patient_cannot_cancel_others(self, service, appointment, other_patient):
        with pytest.raises(PermissionDeniedError):
            service.cancel(appointment.id, actor=other_patient)

    def test_admin_can_do_anything_legal(self, service, appointment, admin):
        service.set_status(appointment.id, "confirmed", actor=admin)
        assert service.cancel(appointment.id, actor=admin).status == "cancelled"
