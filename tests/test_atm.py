# tests/test_atm.py
from datetime import date

import pytest

from atm.fleet import ATMNotFound
from atm.locator import ATM_LOCATIONS, cities, get_atm, search_atms
from storage.attachments import encode_attachment
from storage.keyed_store import ATM_FEEDBACK_KEY, ATM_FLEET_KEY
from storage.models import ATMStatus, Attachment, MachineType

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestLocator:

    def test_catalogue(self):
        assert len(ATM_LOCATIONS) == 11
        assert "Tripoli" in cities()

    def test_search_by_name_and_address(self):
        assert [a.id for a in search_atms("misrata")] == ["1"]
        assert [a.id for a in search_atms("business district")] == ["6"]
        assert len(search_atms("")) == 11

    def test_filter_by_city(self):
        tripoli = search_atms(city="Tripoli")
        assert tripoli and all(a.city == "Tripoli" for a in tripoli)
        assert search_atms("misrata", city="Tripoli") == []

    def test_get_atm(self):
        assert get_atm(6).name == "Tripoli Tower ATM"
        with pytest.raises(LookupError):
            get_atm("99")

    def test_map_url(self):
        assert get_atm("1").map_url == "https://www.google.com/maps/place/32.3756161,15.0837712"


class TestFeedback:

    def test_submit_with_image(self, store, atm_feedback):
        image = encode_attachment("screen.png", "image/png", PNG, 5 * 1024 * 1024, image_only=True, with_id=False)
        feedback = atm_feedback.submit_feedback("3", "1234567890", "Screen is broken", image)

        assert feedback.id.startswith("atm-feedback-")
        stored = store.load(ATM_FEEDBACK_KEY)[0]
        assert stored["atmId"] == "3"
        assert stored["atmName"] == "Sorman ATM"
        assert stored["imageAttachment"]["type"] == "image/png"
        assert atm_feedback.download_image(feedback.id) == ("screen.png", "image/png", PNG)

    def test_anonymous_feedback(self, atm_feedback):
        feedback = atm_feedback.submit_feedback("1", None, "No cash")
        assert feedback.customer == "Unknown"
        assert atm_feedback.feedback_for_atm("1") == [feedback]
        assert atm_feedback.feedback_for_atm("2") == []

    def test_rejects_non_image(self, atm_feedback):
        document = Attachment(name="a.pdf", type="application/pdf", data="data:application/pdf;base64,AA==")
        with pytest.raises(ValueError):
            atm_feedback.submit_feedback("1", "1234567890", "See attached", document)
        assert atm_feedback.list_feedback() == []

    def test_requires_description_and_known_atm(self, atm_feedback):
        with pytest.raises(ValueError):
            atm_feedback.submit_feedback("1", "1234567890", "  ")
        with pytest.raises(LookupError):
            atm_feedback.submit_feedback("99", "1234567890", "Where is this?")

    def test_download_without_image(self, atm_feedback):
        feedback = atm_feedback.submit_feedback("1", None, "No cash")
        with pytest.raises(LookupError):
            atm_feedback.download_image(feedback.id)


class TestFleet:

    def test_defaults_until_first_change(self, store, fleet):
        assert [m.id for m in fleet.list_machines()] == ["1", "3", "7", "6"]
        assert store.get_scalar(ATM_FLEET_KEY) is None

    def test_status_filter(self, fleet):
        assert [m.name for m in fleet.list_machines("maintenance")] == ["Sorman ATM"]
        assert [m.name for m in fleet.list_machines("out-of-service")] == ["Gargaresh ATM"]
        assert len(fleet.list_machines("active")) == 2
        with pytest.raises(ValueError):
            fleet.list_machines("broken")

    def test_add_atm(self, store, fleet):
        machine = fleet.add_machine("Souq ATM", "Old Town", 60, today=date(2025, 1, 12))

        assert machine.status == ATMStatus.ACTIVE
        assert machine.last_maintenance == "2025-01-12"
        assert machine.next_maintenance == "2025-02-11"
        assert machine.kiosk_type is None
        stored = store.load(ATM_FLEET_KEY)
        assert len(stored) == 5
        assert stored[-1]["cashLevel"] == 60
        assert "kioskType" not in stored[-1]

    def test_add_kiosk_requires_kiosk_type(self, fleet):
        with pytest.raises(ValueError):
            fleet.add_machine("Lobby Kiosk", "Head Office", machine_type="Kiosk")
        kiosk = fleet.add_machine("Lobby Kiosk", "Head Office", machine_type="Kiosk",
                                  kiosk_type="Kiosk for deposit")
        assert kiosk.machine_type == MachineType.KIOSK
        assert fleet.get_machine(kiosk.id).kiosk_type == "Kiosk for deposit"

    def test_add_validation(self, store, fleet):
        with pytest.raises(ValueError):
            fleet.add_machine("", "Old Town")
        with pytest.raises(ValueError):
            fleet.add_machine("Souq ATM", "Old Town", cash_level=101)
        assert store.get_scalar(ATM_FLEET_KEY) is None

    def test_update_cash_levels(self, fleet):
        updated = fleet.update_cash_levels({"1": 40, "7": 100})
        assert [m.cash_level for m in updated] == [40, 100]
        assert fleet.get_machine("1").cash_level == 40
        assert fleet.get_machine("6").cash_level == 92

    def test_cash_levels_all_or_nothing(self, fleet):
        with pytest.raises(ValueError):
            fleet.update_cash_levels({"1": 40, "7": -1})
        with pytest.raises(ATMNotFound):
            fleet.update_cash_levels({"1": 40, "99": 50})
        assert fleet.get_machine("1").cash_level == 85

    def test_schedule_maintenance(self, fleet):
        scheduled = fleet.schedule_maintenance(["1", "6"], date(2025, 2, 1))
        assert {m.id for m in scheduled} == {"1", "6"}
        for atm_id in ("1", "6"):
            machine = fleet.get_machine(atm_id)
            assert machine.status == ATMStatus.MAINTENANCE
            assert machine.next_maintenance == "2025-02-01"
        assert len(fleet.list_machines("maintenance")) == 3

    def test_schedule_maintenance_requires_selection_and_date(self, fleet):
        with pytest.raises(ValueError):
            fleet.schedule_maintenance([], date(2025, 2, 1))
        with pytest.raises(ValueError):
            fleet.schedule_maintenance(["1"], None)
        with pytest.raises(ATMNotFound):
            fleet.schedule_maintenance(["99"], date(2025, 2, 1))
        assert fleet.get_machine("1").status == ATMStatus.ACTIVE

    def test_unknown_machine(self, fleet):
        with pytest.raises(ATMNotFound):
            fleet.get_machine("99")

    def test_stored_kiosk_reads_back(self, store, fleet):
        store.save(ATM_FLEET_KEY, [
            {"id": 12, "name": "Mall Kiosk", "location": "City Mall", "status": "active",
             "cashLevel": 70, "machineType": "Kiosk", "kioskType": "Kiosk check printer"},
            {"name": "missing id"},
        ])
        [machine] = fleet.list_machines()
        assert machine.id == "12"
        assert machine.machine_type == MachineType.KIOSK
        assert machine.issues == []
