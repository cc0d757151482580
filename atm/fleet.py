import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from storage.keyed_store import ATM_FLEET_KEY, KeyedStore, get_store
from storage.models import ATMMachine, ATMStatus, MachineType, generate_id, index_of, parse_records

logger = logging.getLogger(__name__)

KIOSK_TYPES = (
    "Kiosk Account Opener",
    "Kiosk check printer",
    "Kiosk for deposit",
    "Kiosk check deposit",
)

MAINTENANCE_INTERVAL = timedelta(days=30)

# Fleet shown until an admin changes anything
DEFAULT_FLEET = [
    ATMMachine("1", "Misrata ATM", "Misrata City Center", ATMStatus.ACTIVE, 85,
               "2025-01-10", "2025-02-10", 124),
    ATMMachine("3", "Sorman ATM", "Sorman Main Street", ATMStatus.MAINTENANCE, 0,
               "2025-01-13", "2025-01-14", 0, ["Card reader malfunction", "Software update required"]),
    ATMMachine("7", "Gargaresh ATM", "Gargaresh Area", ATMStatus.OUT_OF_SERVICE, 15,
               "2025-01-05", "Pending", 0, ["Network connectivity issues", "Low cash alert"]),
    ATMMachine("6", "Tripoli Tower ATM", "Tripoli Tower", ATMStatus.ACTIVE, 92,
               "2025-01-08", "2025-02-08", 156),
]


class ATMNotFound(LookupError):
    def __init__(self, atm_id):
        self.atm_id = atm_id
        super().__init__(f"ATM {atm_id} not found")


def _check_cash_level(level) -> int:
    if isinstance(level, bool) or not isinstance(level, int) or not 0 <= level <= 100:
        raise ValueError(f"Cash level must be a whole number from 0 to 100, got {level!r}")
    return level


class ATMFleetManager:
    """Admin view of ATMs and kiosks, persisted under ``atmFleet``"""

    def __init__(self, store: Optional[KeyedStore] = None, defaults: Optional[List[ATMMachine]] = None):
        self.store = store or get_store()
        self.defaults = DEFAULT_FLEET if defaults is None else defaults

    def _records(self) -> list:
        if self.store.get_scalar(ATM_FLEET_KEY) is None:
            return [m.to_dict() for m in self.defaults]
        return self.store.load(ATM_FLEET_KEY)

    def list_machines(self, status: str = "all") -> List[ATMMachine]:
        machines = parse_records(self._records(), ATMMachine, logger)
        if status == "all":
            return machines
        status = ATMStatus(status)
        return [m for m in machines if m.status == status]

    def get_machine(self, atm_id: str) -> ATMMachine:
        for machine in self.list_machines():
            if machine.id == str(atm_id):
                return machine
        raise ATMNotFound(atm_id)

    def add_machine(self, name: str, location: str, cash_level: int = 100,
                    machine_type=MachineType.ATM, kiosk_type: Optional[str] = None,
                    today: Optional[date] = None) -> ATMMachine:
        """Register an active machine, due for maintenance in 30 days"""
        if not name or not name.strip():
            raise ValueError("An ATM name is required")
        if not location or not location.strip():
            raise ValueError("A location is required")
        machine_type = MachineType(machine_type)
        if machine_type == MachineType.KIOSK:
            if kiosk_type not in KIOSK_TYPES:
                raise ValueError(f"Kiosks need a kiosk type, one of: {', '.join(KIOSK_TYPES)}")
        else:
            kiosk_type = None
        cash_level = _check_cash_level(cash_level)
        today = today or date.today()

        with self.store.transaction():
            records = self._records()
            existing = {r.get('id') for r in records if isinstance(r, dict)}
            atm_id = generate_id('atm-', 9, 'abcdefghijklmnopqrstuvwxyz0123456789')
            while atm_id in existing:
                atm_id = generate_id('atm-', 9, 'abcdefghijklmnopqrstuvwxyz0123456789')

            machine = ATMMachine(
                id=atm_id,
                name=name.strip(),
                location=location.strip(),
                cash_level=cash_level,
                last_maintenance=today.isoformat(),
                next_maintenance=(today + MAINTENANCE_INTERVAL).isoformat(),
                machine_type=machine_type,
                kiosk_type=kiosk_type,
            )
            records.append(machine.to_dict())
            self.store.save(ATM_FLEET_KEY, records)

        logger.info(f"Added {machine.machine_type.value} {machine.name} ({machine.id})")
        return machine

    def update_cash_levels(self, levels: Dict[str, int]) -> List[ATMMachine]:
        """Set several cash levels (0-100) at once; all or nothing"""
        with self.store.transaction():
            records = self._records()
            updated = []
            for atm_id, level in levels.items():
                index = index_of(records, str(atm_id))
                if index is None:
                    raise ATMNotFound(atm_id)
                records[index] = dict(records[index], cashLevel=_check_cash_level(level))
                updated.append(ATMMachine.from_dict(records[index]))
            if updated:
                self.store.save(ATM_FLEET_KEY, records)
        return updated

    def schedule_maintenance(self, atm_ids: Iterable[str], day: date) -> List[ATMMachine]:
        """Put the selected machines into maintenance until ``day``"""
        atm_ids = [str(i) for i in atm_ids]
        if not atm_ids:
            raise ValueError("Select at least one ATM")
        if day is None:
            raise ValueError("A maintenance date is required")

        with self.store.transaction():
            records = self._records()
            scheduled = []
            for atm_id in atm_ids:
                index = index_of(records, atm_id)
                if index is None:
                    raise ATMNotFound(atm_id)
                records[index] = dict(
                    records[index],
                    status=ATMStatus.MAINTENANCE.value,
                    nextMaintenance=day.isoformat(),
                )
                scheduled.append(ATMMachine.from_dict(records[index]))
            self.store.save(ATM_FLEET_KEY, records)

        logger.info(f"Scheduled maintenance on {day.isoformat()} for {', '.join(atm_ids)}")
        return scheduled
