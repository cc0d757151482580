import logging
from datetime import date, timedelta
from typing import Callable, List, Optional

from storage.keyed_store import APPOINTMENT_REQUESTS_KEY, KeyedStore, get_store
from storage.models import (
    AppointmentRequest,
    AppointmentStatus,
    Attachment,
    ResourceSchedule,
    generate_id,
    index_of,
    now_iso,
    parse_records,
)
from rewards.ledger import ClaimResult, RewardLedger

logger = logging.getLogger(__name__)

SERVICE_CATEGORIES = {
    "account": {
        "label": "Account Services",
        "services": [
            "Open a new account",
            "Update KYC information",
            "Request account statement",
        ],
    },
    "financing": {
        "label": "Financing Services",
        "services": [
            "Financing consultation",
            "Submit financing application",
        ],
    },
    "corporate": {
        "label": "Corporate Banking",
        "services": [
            "Submit LC request",
            "Corporate account opening",
        ],
    },
}

BRANCHES = [
    {"id": "misrata", "name": "Misrata Branch", "address": "Misrata City Center"},
    {"id": "zliten", "name": "Zliten Branch", "address": "Zliten Downtown"},
    {"id": "sorman", "name": "Sorman Branch", "address": "Sorman Main Street"},
    {"id": "sabha", "name": "Sabha Branch", "address": "Sabha City Center"},
    {"id": "tajoura", "name": "Tajoura Branch", "address": "Tajoura District"},
    {"id": "tripoli-tower", "name": "Tripoli Tower", "address": "Tripoli Tower"},
    {"id": "gargaresh", "name": "Gargaresh Branch", "address": "Gargaresh Area"},
    {"id": "abu-sleem", "name": "Abu Sleem Branch", "address": "Abu Sleem District"},
    {"id": "bab-ben-ghashir", "name": "Bab Ben Ghashir Branch", "address": "Bab Ben Ghashir"},
    {"id": "janzour", "name": "Janzour Branch", "address": "Janzour Area"},
]

TIME_SLOTS = [
    "09:00 AM", "09:30 AM", "10:00 AM", "10:30 AM", "11:00 AM",
    "11:30 AM", "12:00 PM", "12:30 PM", "01:00 PM", "01:30 PM",
    "02:00 PM", "02:30 PM", "03:00 PM", "03:30 PM", "04:00 PM",
]

# Friday and Saturday
CLOSED_WEEKDAYS = {4, 5}


class AppointmentNotFound(LookupError):
    def __init__(self, request_id):
        self.request_id = request_id
        super().__init__(f"Appointment request {request_id} not found")


def is_bookable_date(day: date, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return day >= today and day.weekday() not in CLOSED_WEEKDAYS


def available_dates(days: int = 30, today: Optional[date] = None) -> List[date]:
    """Bookable dates from today over the next ``days`` days"""
    today = today or date.today()
    return [
        today + timedelta(days=offset)
        for offset in range(days)
        if is_bookable_date(today + timedelta(days=offset), today)
    ]


def validate_booking(branch: Optional[str], day: Optional[date], time_slot: Optional[str],
                     today: Optional[date] = None) -> None:
    """Raise ValueError for a branch, date or slot the booking wizard would not offer"""
    if branch is not None and branch not in {b["id"] for b in BRANCHES}:
        raise ValueError(f"Unknown branch: {branch}")
    if day is not None and not is_bookable_date(day, today):
        raise ValueError(f"{day.isoformat()} is not a bookable date")
    if time_slot is not None:
        if day is None:
            raise ValueError("Choose a date before a time slot")
        if time_slot not in TIME_SLOTS:
            raise ValueError(f"Unknown time slot: {time_slot}")


class AppointmentManager:
    """Appointment requests persisted under ``appointmentRequests``"""

    def __init__(self, store: Optional[KeyedStore] = None, ledger: Optional[RewardLedger] = None):
        self.store = store or get_store()
        self.ledger = ledger or RewardLedger(self.store)

    def list_requests(self) -> List[AppointmentRequest]:
        return parse_records(self.store.load(APPOINTMENT_REQUESTS_KEY), AppointmentRequest, logger)

    def get_request(self, request_id: str) -> AppointmentRequest:
        for request in self.list_requests():
            if request.id == request_id:
                return request
        raise AppointmentNotFound(request_id)

    def requests_for_customer(self, customer: str) -> List[AppointmentRequest]:
        return [r for r in self.list_requests() if r.customer == customer]

    def filter_requests(self, status: str = "all", branch: str = "all") -> List[AppointmentRequest]:
        return [
            r for r in self.list_requests()
            if (status == "all" or r.status.value == status)
            and (branch == "all" or r.branch == branch)
        ]

    def submit_request(self, customer: str, customer_phone: str, customer_iban: str,
                       resource: ResourceSchedule, title: str, description: str,
                       attachment: Optional[Attachment] = None, branch: Optional[str] = None,
                       day: Optional[date] = None, time_slot: Optional[str] = None,
                       today: Optional[date] = None) -> AppointmentRequest:
        if not title or not title.strip():
            raise ValueError("A title is required")
        if not description or not description.strip():
            raise ValueError("A description is required")
        validate_booking(branch, day, time_slot, today)

        with self.store.transaction():
            records = self.store.load(APPOINTMENT_REQUESTS_KEY)
            existing = {r.get('id') for r in records if isinstance(r, dict)}
            request_id = generate_id('APT-')
            while request_id in existing:
                request_id = generate_id('APT-')

            request = AppointmentRequest(
                id=request_id,
                customer=customer,
                customer_phone=customer_phone,
                customer_iban=customer_iban,
                administrator=resource.id,
                administrator_label=resource.name,
                title=title.strip(),
                description=description.strip(),
                attachment=attachment,
                branch=branch,
                date=day.isoformat() if day else None,
                time_slot=time_slot,
            )
            records.append(request.to_dict())
            self.store.save(APPOINTMENT_REQUESTS_KEY, records)

        logger.info(f"Created appointment request {request.id} for {customer} with {resource.name}")
        return request

    def _modify(self, request_id: str, change: Callable[[AppointmentRequest], None]) -> AppointmentRequest:
        with self.store.transaction():
            records = self.store.load(APPOINTMENT_REQUESTS_KEY)
            index = index_of(records, request_id)
            if index is None:
                raise AppointmentNotFound(request_id)

            request = AppointmentRequest.from_dict(records[index])
            change(request)
            request.updated_at = now_iso()
            records[index] = request.to_dict()
            self.store.save(APPOINTMENT_REQUESTS_KEY, records)
        return request

    def update_status(self, request_id: str, status) -> AppointmentRequest:
        status = AppointmentStatus(status)

        def change(request):
            request.status = status

        request = self._modify(request_id, change)
        logger.info(f"Appointment {request_id} status -> {status.value}")
        return request

    def confirm(self, request_id: str) -> AppointmentRequest:
        return self.update_status(request_id, AppointmentStatus.CONFIRMED)

    def check_in(self, request_id: str) -> AppointmentRequest:
        return self.update_status(request_id, AppointmentStatus.CHECKED_IN)

    def assign(self, request_id: str, assigned_to: str, assigned_email: Optional[str] = None) -> AppointmentRequest:
        if not assigned_to or not assigned_to.strip():
            raise ValueError("An assignee is required")

        def change(request):
            request.assigned_to = assigned_to.strip()
            request.assigned_email = (assigned_email or "").strip() or None

        return self._modify(request_id, change)

    def accept(self, request_id: str) -> ClaimResult:
        """Accept the request and award the customer's points once"""
        try:
            return self.ledger.claim_reward(APPOINTMENT_REQUESTS_KEY, request_id)
        except LookupError:
            raise AppointmentNotFound(request_id) from None
