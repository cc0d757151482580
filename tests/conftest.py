# tests/conftest.py
from datetime import date

import pytest

from storage.backends import FileBackend, MemoryBackend
from storage.keyed_store import KeyedStore
from storage.models import ResourceSchedule, ResourceType
from rewards.ledger import RewardLedger
from tickets.manager import TicketManager
from appointments.manager import AppointmentManager
from appointments.resources import FavoriteStore, ResourceAssignment
from atm.fleet import ATMFleetManager
from atm.locator import ATMFeedbackManager

# A Sunday, so the booking window starts on an open day
TODAY = date(2025, 1, 12)


@pytest.fixture
def store():
    return KeyedStore(MemoryBackend())


@pytest.fixture
def file_store(tmp_path):
    return KeyedStore(FileBackend(tmp_path / "profile"))


@pytest.fixture
def ledger(store):
    return RewardLedger(store)


@pytest.fixture
def tickets(store, ledger):
    return TicketManager(store, ledger)


@pytest.fixture
def appointments(store, ledger):
    return AppointmentManager(store, ledger)


@pytest.fixture
def resources(store):
    return ResourceAssignment(store)


@pytest.fixture
def favorites(store):
    return FavoriteStore(store)


@pytest.fixture
def atm_feedback(store):
    return ATMFeedbackManager(store)


@pytest.fixture
def fleet(store):
    return ATMFleetManager(store)


@pytest.fixture
def department():
    return ResourceSchedule("res-dept00001", "Retail Banking", ResourceType.DEPARTMENT, "Sun-Thu 09:00 AM - 03:00 PM")


@pytest.fixture
def customer_ticket(tickets):
    def _make(customer="1234567890", service="Activate a new card", **kwargs):
        return tickets.submit_ticket(
            customer, "0912345678", "LY83002048000020100120361",
            service, "Card Services", kwargs.pop("description", "Please activate my card"),
            **kwargs
        )

    return _make
