from datetime import date, timedelta

import pytest

from medibook.shared.validators import (
    SLOT_TIMES,
    validate_booking_date,
    validate_consultation_mode,
    validate_email,
    validate_phone,
    validate_slot_time,
    validate_uuid,
)


class TestSlotTimes:
    def test_slots_skip_lunch(self):
        assert "11:30" in SLOT_TIMES
        assert "14:00" in SLOT_TIMES
        assert not any(t.startswith(("12:", "13:")) for t in SLOT_TIMES)

    def test_slots_are_half_hourly_from_nine(self):
        assert SLOT_TIMES[0] == "09:00"
        assert SLOT_TIMES[-1] == "17:30"
        assert len(SLOT_TIMES) == 14

    @pytest.mark.parametrize("raw,expected", [("9:00", "09:00"), ("10:30", "10:30"), ("14:00:00", "14:00")])
    def test_normalizes_time(self, raw, expected):
        assert validate_slot_time(raw) == expected

    @pytest.mark.parametrize("raw", ["12:30", "13:00", "18:00", "09:15"])
    def test_rejects_times_outside_slots(self, raw):
        with pytest.raises(ValueError, match="not an available time slot"):
            validate_slot_time(raw)

    @pytest.mark.parametrize("raw", ["", "ten", "10-00", None])
    def test_rejects_malformed_time(self, raw):
        with pytest.raises(ValueError, match="HH:MM"):
            validate_slot_time(raw)


class TestBookingDate:
    def test_accepts_tomorrow_and_window_edge(self):
        today = date(2026, 3, 1)
        tomorrow = today + timedelta(days=1)
        assert validate_booking_date(tomorrow, 30, today=today) == tomorrow
        edge = today + timedelta(days=30)
        assert validate_booking_date(edge, 30, today=today) == edge

    def test_rejects_same_day(self):
        today = date(2026, 3, 1)
        with pytest.raises(ValueError, match="one day in advance"):
            validate_booking_date(today, 30, today=today)

    def test_rejects_past(self):
        today = date(2026, 3, 1)
        with pytest.raises(ValueError, match="past"):
            validate_booking_date(today - timedelta(days=1), 30, today=today)

    def test_rejects_beyond_window(self):
        today = date(2026, 3, 1)
        with pytest.raises(ValueError, match="30 days"):
            validate_booking_date(today + timedelta(days=31), 30, today=today)


class TestContactValidation:
    def test_email_lowercased(self):
        assert validate_email("  Guest@Example.COM ") == "guest@example.com"

    @pytest.mark.parametrize("email", ["no-at-sign", "a@b", "a b@c.com"])
    def test_email_rejected(self, email):
        with pytest.raises(ValueError):
            validate_email(email)

    def test_phone_normalized(self):
        assert validate_phone("(987) 654-3210") == "9876543210"
        assert validate_phone("+91 98765 43210") == "+919876543210"

    @pytest.mark.parametrize("phone", ["12345", "1" * 16])
    def test_phone_length_rejected(self, phone):
        with pytest.raises(ValueError):
            validate_phone(phone)

    def test_consultation_mode(self):
        assert validate_consultation_mode(None) == "in-person"
        assert validate_consultation_mode("Online") == "online"
        with pytest.raises(ValueError):
            validate_consultation_mode("telepathy")

    def test_uuid(self):
        assert validate_uuid("7c9e6679-7425-40de-944b-e07fc1f90ae7")
        assert not validate_uuid("not-a-uuid")
