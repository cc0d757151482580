import logging
from typing import Callable, List, Optional

from storage.keyed_store import KeyedStore, TICKETS_KEY, get_store
from storage.models import (
    Attachment,
    Reply,
    Ticket,
    TicketPriority,
    TicketStatus,
    generate_id,
    index_of,
    now_iso,
    parse_records,
)
from rewards.ledger import ClaimResult, RewardLedger

logger = logging.getLogger(__name__)

REQUEST_TYPES = {
    "card": {
        "label": "Card Services",
        "requests": [
            "Request a new card",
            "Activate a new card",
            "Request a replacement for a lost card",
            "Request to increase card limit",
            "Request activation/deactivation",
        ],
        "documents": ["ID Copy", "Card Application Form"],
    },
    "account": {
        "label": "Account Services",
        "requests": [
            "Monthly account statement",
            "Annual account statement",
            "Edit account information",
            "Request balance certificate",
        ],
        "documents": ["ID Verification", "Account Details Form"],
    },
    "transfer": {
        "label": "Transfer Services",
        "requests": [
            "Upload documents for international transfers",
            "Request transfer confirmation",
            "Request transfer cancellation",
        ],
        "documents": ["Transfer Authorization", "Beneficiary Details", "Source of Funds"],
    },
    "financing": {
        "label": "Financing Services",
        "requests": [
            "Upload required financing documents",
            "Track financing request status",
            "Submit inquiries",
        ],
        "documents": ["Income Certificate", "Employment Letter", "Bank Statements", "Property Documents"],
    },
}


class TicketNotFound(LookupError):
    def __init__(self, ticket_id):
        self.ticket_id = ticket_id
        super().__init__(f"Ticket {ticket_id} not found")


class TicketManager:
    """Customer tickets persisted under the ``tickets`` key"""

    def __init__(self, store: Optional[KeyedStore] = None, ledger: Optional[RewardLedger] = None):
        self.store = store or get_store()
        self.ledger = ledger or RewardLedger(self.store)

    # --- queries ----------------------------------------------------------

    def list_tickets(self) -> List[Ticket]:
        return parse_records(self.store.load(TICKETS_KEY), Ticket, logger)

    def get_ticket(self, ticket_id: str) -> Ticket:
        for ticket in self.list_tickets():
            if ticket.id == ticket_id:
                return ticket
        raise TicketNotFound(ticket_id)

    def tickets_for_customer(self, customer: str) -> List[Ticket]:
        return [t for t in self.list_tickets() if t.customer == customer]

    def search_customer_tickets(self, customer: str, query: str = "") -> List[Ticket]:
        """Customer view search over ticket id, service and category"""
        q = query.strip().lower()
        return [
            t for t in self.tickets_for_customer(customer)
            if not q
            or q in t.id.lower()
            or q in t.service.lower()
            or q in t.service_category.lower()
        ]

    def filter_tickets(self, query: str = "", status: str = "all", priority: str = "all") -> List[Ticket]:
        """Admin view filter: id or customer search plus status/priority"""
        q = query.strip().lower()
        results = []
        for t in self.list_tickets():
            matches_search = not q or q in t.id.lower() or q in t.customer.lower()
            matches_status = status == "all" or t.status.value == status
            matches_priority = priority == "all" or t.priority.value == priority
            if matches_search and matches_status and matches_priority:
                results.append(t)
        return results

    # --- customer actions -------------------------------------------------

    def submit_ticket(self, customer: str, customer_phone: str, customer_iban: str,
                      service: str, service_category: str, description: str,
                      attachments: Optional[List[Attachment]] = None) -> Ticket:
        if not service or not service.strip():
            raise ValueError("A service is required")
        if not description or not description.strip():
            raise ValueError("A description is required")

        with self.store.transaction():
            records = self.store.load(TICKETS_KEY)
            existing = {r.get('id') for r in records if isinstance(r, dict)}
            ticket_id = generate_id('TKT-')
            while ticket_id in existing:
                ticket_id = generate_id('TKT-')

            ticket = Ticket(
                id=ticket_id,
                customer=customer,
                customer_phone=customer_phone,
                customer_iban=customer_iban,
                service=service,
                service_category=service_category,
                description=description.strip(),
                attachments=list(attachments) if attachments else None,
            )
            records.append(ticket.to_dict())
            self.store.save(TICKETS_KEY, records)

        logger.info(f"Created ticket {ticket.id} for {customer} ({service})")
        return ticket

    # --- admin actions ----------------------------------------------------

    def _modify(self, ticket_id: str, change: Callable[[Ticket], None]) -> Ticket:
        with self.store.transaction():
            records = self.store.load(TICKETS_KEY)
            index = index_of(records, ticket_id)
            if index is None:
                raise TicketNotFound(ticket_id)

            ticket = Ticket.from_dict(records[index])
            change(ticket)
            ticket.updated_at = now_iso()
            records[index] = ticket.to_dict()
            self.store.save(TICKETS_KEY, records)
        return ticket

    def update_status(self, ticket_id: str, status, rejection_reason: Optional[str] = None) -> Ticket:
        """Change status; rejecting requires a reason, other statuses clear it"""
        status = TicketStatus(status)
        reason = (rejection_reason or "").strip()
        if status == TicketStatus.REJECTED and not reason:
            raise ValueError("A rejection reason is required")

        def change(ticket):
            ticket.status = status
            ticket.rejection_reason = reason if status == TicketStatus.REJECTED else None

        ticket = self._modify(ticket_id, change)
        logger.info(f"Ticket {ticket_id} status -> {status.value}")
        return ticket

    def set_priority(self, ticket_id: str, priority) -> Ticket:
        priority = TicketPriority(priority)

        def change(ticket):
            ticket.priority = priority

        return self._modify(ticket_id, change)

    def assign(self, ticket_id: str, assigned_to: str, assigned_email: Optional[str] = None) -> Ticket:
        if not assigned_to or not assigned_to.strip():
            raise ValueError("An assignee is required")

        def change(ticket):
            ticket.assigned_to = assigned_to.strip()
            ticket.assigned_email = (assigned_email or "").strip() or None

        ticket = self._modify(ticket_id, change)
        logger.info(f"Ticket {ticket_id} assigned to {assigned_to}")
        return ticket

    def add_reply(self, ticket_id: str, message: str, sent_by: str) -> Ticket:
        if not message or not message.strip():
            raise ValueError("A reply message is required")

        def change(ticket):
            ticket.replies.append(Reply(message=message.strip(), sent_by=sent_by))

        return self._modify(ticket_id, change)

    def accept(self, ticket_id: str) -> ClaimResult:
        """Accept the ticket and award the customer's points once"""
        try:
            return self.ledger.claim_reward(TICKETS_KEY, ticket_id)
        except LookupError:
            raise TicketNotFound(ticket_id) from None
