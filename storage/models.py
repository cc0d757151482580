import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List


def now_iso() -> str:
    """UTC timestamp in the ``2025-01-12T10:00:00.000Z`` form"""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def generate_id(prefix: str, length: int = 8, alphabet: str = string.ascii_uppercase + string.digits) -> str:
    return prefix + ''.join(secrets.choice(alphabet) for _ in range(length))


def _drop_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


class TicketStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under-review"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ResourceType(str, Enum):
    DEPARTMENT = "department"
    PERSON = "person"


class ATMStatus(str, Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out-of-service"


class MachineType(str, Enum):
    ATM = "ATM"
    KIOSK = "Kiosk"


@dataclass
class Attachment:
    name: str
    type: str
    data: str
    size: Optional[int] = None
    id: Optional[str] = None

    def to_dict(self) -> dict:
        return _drop_none({
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'size': self.size,
            'data': self.data,
        })

    @classmethod
    def from_dict(cls, data: dict) -> 'Attachment':
        return cls(
            id=data.get('id'),
            name=data['name'],
            type=data.get('type', 'application/octet-stream'),
            size=data.get('size'),
            data=data['data'],
        )


@dataclass
class Reply:
    message: str
    sent_by: str
    sent_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return {'message': self.message, 'sentAt': self.sent_at, 'sentBy': self.sent_by}

    @classmethod
    def from_dict(cls, data: dict) -> 'Reply':
        return cls(message=data['message'], sent_by=data.get('sentBy', ''), sent_at=data.get('sentAt', ''))


@dataclass
class Ticket:
    id: str
    customer: str
    customer_phone: str
    customer_iban: str
    service: str
    service_category: str
    description: str
    status: TicketStatus = TicketStatus.PENDING
    priority: TicketPriority = TicketPriority.MEDIUM
    assigned_to: Optional[str] = None
    assigned_email: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    replies: List[Reply] = field(default_factory=list)
    rejection_reason: Optional[str] = None
    attachments: Optional[List[Attachment]] = None
    rewarded: bool = False

    def to_dict(self) -> dict:
        return _drop_none({
            'id': self.id,
            'customer': self.customer,
            'customerPhone': self.customer_phone,
            'customerIban': self.customer_iban,
            'service': self.service,
            'serviceCategory': self.service_category,
            'description': self.description,
            'status': self.status.value,
            'priority': self.priority.value,
            'assignedTo': self.assigned_to,
            'assignedEmail': self.assigned_email,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'replies': [r.to_dict() for r in self.replies],
            'rejectionReason': self.rejection_reason,
            'attachments': [a.to_dict() for a in self.attachments] if self.attachments else None,
            'rewarded': self.rewarded,
        })

    @classmethod
    def from_dict(cls, data: dict) -> 'Ticket':
        attachments = data.get('attachments')
        return cls(
            id=data['id'],
            customer=data['customer'],
            customer_phone=data.get('customerPhone', ''),
            customer_iban=data.get('customerIban', ''),
            service=data.get('service', ''),
            service_category=data.get('serviceCategory', ''),
            description=data.get('description', ''),
            status=TicketStatus(data.get('status', TicketStatus.PENDING.value)),
            priority=TicketPriority(data.get('priority', TicketPriority.MEDIUM.value)),
            assigned_to=data.get('assignedTo'),
            assigned_email=data.get('assignedEmail'),
            created_at=data.get('createdAt', ''),
            updated_at=data.get('updatedAt', ''),
            replies=[Reply.from_dict(r) for r in data.get('replies', [])],
            rejection_reason=data.get('rejectionReason'),
            attachments=[Attachment.from_dict(a) for a in attachments] if attachments else None,
            rewarded=bool(data.get('rewarded', False)),
        )


@dataclass
class AppointmentRequest:
    id: str
    customer: str
    customer_phone: str
    customer_iban: str
    administrator: str
    administrator_label: str
    title: str
    description: str
    attachment: Optional[Attachment] = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    rewarded: bool = False
    assigned_to: Optional[str] = None
    assigned_email: Optional[str] = None
    branch: Optional[str] = None
    date: Optional[str] = None
    time_slot: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return _drop_none({
            'id': self.id,
            'customer': self.customer,
            'customerPhone': self.customer_phone,
            'customerIban': self.customer_iban,
            'administrator': self.administrator,
            'administratorLabel': self.administrator_label,
            'title': self.title,
            'description': self.description,
            'attachment': self.attachment.to_dict() if self.attachment else None,
            'status': self.status.value,
            'rewarded': self.rewarded,
            'assignedTo': self.assigned_to,
            'assignedEmail': self.assigned_email,
            'branch': self.branch,
            'date': self.date,
            'timeSlot': self.time_slot,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        })

    @classmethod
    def from_dict(cls, data: dict) -> 'AppointmentRequest':
        attachment = data.get('attachment')
        return cls(
            id=data['id'],
            customer=data['customer'],
            customer_phone=data.get('customerPhone', ''),
            customer_iban=data.get('customerIban', ''),
            administrator=data.get('administrator', ''),
            administrator_label=data.get('administratorLabel', ''),
            title=data.get('title', ''),
            description=data.get('description', ''),
            attachment=Attachment.from_dict(attachment) if attachment else None,
            status=AppointmentStatus(data.get('status', AppointmentStatus.PENDING.value)),
            rewarded=bool(data.get('rewarded', False)),
            assigned_to=data.get('assignedTo'),
            assigned_email=data.get('assignedEmail'),
            branch=data.get('branch'),
            date=data.get('date'),
            time_slot=data.get('timeSlot'),
            created_at=data.get('createdAt', ''),
            updated_at=data.get('updatedAt', ''),
        )


@dataclass
class ATMFeedback:
    id: str
    atm_id: str
    atm_name: str
    customer: str
    description: str
    image_attachment: Optional[Attachment] = None
    created_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return _drop_none({
            'id': self.id,
            'atmId': self.atm_id,
            'atmName': self.atm_name,
            'customer': self.customer,
            'description': self.description,
            'imageAttachment': self.image_attachment.to_dict() if self.image_attachment else None,
            'createdAt': self.created_at,
        })

    @classmethod
    def from_dict(cls, data: dict) -> 'ATMFeedback':
        image = data.get('imageAttachment')
        return cls(
            id=data['id'],
            atm_id=str(data['atmId']),
            atm_name=data.get('atmName', ''),
            customer=data.get('customer', 'Unknown'),
            description=data.get('description', ''),
            image_attachment=Attachment.from_dict(image) if image else None,
            created_at=data.get('createdAt', ''),
        )


@dataclass
class ResourceSchedule:
    id: str
    name: str
    type: ResourceType
    schedule: str = ""

    def to_dict(self) -> dict:
        return {'id': self.id, 'name': self.name, 'type': self.type.value, 'schedule': self.schedule}

    @classmethod
    def from_dict(cls, data: dict) -> 'ResourceSchedule':
        return cls(
            id=data['id'],
            name=data['name'],
            type=ResourceType(data.get('type', ResourceType.DEPARTMENT.value)),
            schedule=data.get('schedule', ''),
        )


@dataclass
class ATMMachine:
    id: str
    name: str
    location: str
    status: ATMStatus = ATMStatus.ACTIVE
    cash_level: int = 100
    last_maintenance: str = ""
    next_maintenance: str = ""
    transactions_today: int = 0
    issues: List[str] = field(default_factory=list)
    machine_type: MachineType = MachineType.ATM
    kiosk_type: Optional[str] = None

    def to_dict(self) -> dict:
        return _drop_none({
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'status': self.status.value,
            'cashLevel': self.cash_level,
            'lastMaintenance': self.last_maintenance,
            'nextMaintenance': self.next_maintenance,
            'transactionsToday': self.transactions_today,
            'issues': list(self.issues),
            'machineType': self.machine_type.value,
            'kioskType': self.kiosk_type,
        })

    @classmethod
    def from_dict(cls, data: dict) -> 'ATMMachine':
        return cls(
            id=str(data['id']),
            name=data['name'],
            location=data.get('location', ''),
            status=ATMStatus(data.get('status', ATMStatus.ACTIVE.value)),
            cash_level=int(data.get('cashLevel', 0)),
            last_maintenance=data.get('lastMaintenance', ''),
            next_maintenance=data.get('nextMaintenance', ''),
            transactions_today=int(data.get('transactionsToday', 0)),
            issues=list(data.get('issues', [])),
            machine_type=MachineType(data.get('machineType', MachineType.ATM.value)),
            kiosk_type=data.get('kioskType'),
        )


def parse_records(records, model, logger=None) -> list:
    """Parse raw dicts into ``model`` instances, skipping invalid ones."""
    parsed = []
    for record in records:
        try:
            parsed.append(model.from_dict(record))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            if logger is not None:
                logger.warning(f"Skipping invalid {model.__name__} record: {e}")
    return parsed


def index_of(records, record_id) -> Optional[int]:
    """Position of the record with ``id == record_id`` in a raw collection"""
    return next(
        (i for i, r in enumerate(records) if isinstance(r, dict) and r.get('id') == record_id),
        None
    )
