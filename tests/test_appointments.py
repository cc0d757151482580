# tests/test_appointments.py
from datetime import date, timedelta

import pytest

from appointments.manager import (
    TIME_SLOTS,
    AppointmentNotFound,
    available_dates,
    is_bookable_date,
    validate_booking,
)
from rewards.ledger import AlreadyClaimed, Awarded
from storage.keyed_store import APPOINTMENT_REQUESTS_KEY
from storage.models import AppointmentStatus

from conftest import TODAY


class TestBookingRules:

    def test_closed_on_friday_and_saturday(self):
        friday = TODAY + timedelta(days=5)
        saturday = TODAY + timedelta(days=6)
        assert friday.weekday() == 4
        assert not is_bookable_date(friday, TODAY)
        assert not is_bookable_date(saturday, TODAY)
        assert is_bookable_date(TODAY, TODAY)

    def test_past_dates_not_bookable(self):
        assert not is_bookable_date(TODAY - timedelta(days=1), TODAY)

    def test_available_dates_window(self):
        dates = available_dates(30, TODAY)
        assert dates[0] == TODAY
        assert all(d.weekday() not in (4, 5) for d in dates)
        assert max(dates) < TODAY + timedelta(days=30)
        assert len(dates) == 22

    def test_time_slots(self):
        assert TIME_SLOTS[0] == "09:00 AM"
        assert TIME_SLOTS[-1] == "04:00 PM"
        assert len(TIME_SLOTS) == 15

    def test_validate_booking(self):
        validate_booking("misrata", TODAY, "10:30 AM", TODAY)
        validate_booking(None, None, None, TODAY)
        with pytest.raises(ValueError):
            validate_booking("atlantis", TODAY, "10:30 AM", TODAY)
        with pytest.raises(ValueError):
            validate_booking("misrata", TODAY, "08:00 PM", TODAY)
        with pytest.raises(ValueError):
            validate_booking("misrata", None, "10:30 AM", TODAY)


class TestAppointmentRequests:

    def _submit(self, appointments, department, **kwargs):
        return appointments.submit_request(
            kwargs.pop("customer", "1234567890"), "0912345678", "LY83002048000020100120361",
            department, "Open an account", "I would like to open a savings account",
            today=TODAY, **kwargs
        )

    def test_submit(self, store, appointments, department):
        request = self._submit(appointments, department, branch="misrata", day=TODAY, time_slot="10:00 AM")

        assert request.id.startswith("APT-")
        assert request.status == AppointmentStatus.PENDING
        stored = store.load(APPOINTMENT_REQUESTS_KEY)[0]
        assert stored["administrator"] == department.id
        assert stored["administratorLabel"] == "Retail Banking"
        assert stored["date"] == "2025-01-12"
        assert stored["timeSlot"] == "10:00 AM"
        assert stored["rewarded"] is False
        assert "attachment" not in stored

    def test_submit_on_closed_day(self, appointments, department):
        with pytest.raises(ValueError):
            self._submit(appointments, department, branch="misrata", day=date(2025, 1, 17))

    def test_queries(self, appointments, department):
        mine = self._submit(appointments, department, branch="misrata")
        other = self._submit(appointments, department, customer="999", branch="janzour")
        appointments.confirm(other.id)

        assert [r.id for r in appointments.requests_for_customer("1234567890")] == [mine.id]
        assert [r.id for r in appointments.filter_requests(status="confirmed")] == [other.id]
        assert [r.id for r in appointments.filter_requests(branch="misrata")] == [mine.id]

    def test_status_flow(self, appointments, department):
        request = self._submit(appointments, department)
        assert appointments.confirm(request.id).status == AppointmentStatus.CONFIRMED
        assert appointments.check_in(request.id).status == AppointmentStatus.CHECKED_IN
        assert appointments.update_status(request.id, "completed").status == AppointmentStatus.COMPLETED

    def test_assign(self, appointments, department):
        request = self._submit(appointments, department)
        appointments.assign(request.id, "Ali")
        assert appointments.get_request(request.id).assigned_to == "Ali"
        with pytest.raises(ValueError):
            appointments.assign(request.id, "")

    def test_accept_awards_once(self, appointments, ledger, department):
        request = self._submit(appointments, department)
        assert isinstance(appointments.accept(request.id), Awarded)
        assert isinstance(appointments.accept(request.id), AlreadyClaimed)
        assert ledger.balance("1234567890") == 20
        assert appointments.get_request(request.id).rewarded is True

    def test_missing_request(self, appointments):
        with pytest.raises(AppointmentNotFound):
            appointments.get_request("APT-404")
        with pytest.raises(AppointmentNotFound):
            appointments.accept("APT-404")
