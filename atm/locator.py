import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from storage.attachments import decode_attachment
from storage.keyed_store import ATM_FEEDBACK_KEY, KeyedStore, get_store
from storage.models import ATMFeedback, Attachment, generate_id, parse_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ATMLocation:
    id: str
    name: str
    address: str
    city: str
    lat: float
    lng: float
    status: str
    cash_available: bool
    max_withdrawal: int
    congestion: str
    machine_type: str = "ATM"

    @property
    def map_url(self) -> str:
        return f"https://www.google.com/maps/place/{self.lat},{self.lng}"


ATM_LOCATIONS = [
    ATMLocation("1", "Misrata ATM", "Misrata City Center, Main Street", "Misrata",
                32.3756161, 15.0837712, "active", True, 2000, "low"),
    ATMLocation("2", "Zliten ATM", "Zliten Downtown Area", "Zliten",
                32.4695976, 14.5693255, "active", True, 1500, "medium"),
    ATMLocation("3", "Sorman ATM", "Sorman Main Street", "Sorman",
                32.7584125, 12.5947031, "maintenance", False, 0, "none"),
    ATMLocation("4", "Sabha ATM", "Sabha City Center", "Sabha",
                27.0455874, 14.4188677, "active", True, 2000, "low"),
    ATMLocation("5", "Tajoura ATM", "Tajoura District", "Tripoli",
                32.8914852, 13.3402398, "active", True, 2000, "high"),
    ATMLocation("6", "Tripoli Tower ATM", "Tripoli Tower, Business District", "Tripoli",
                32.8918934, 13.1676376, "active", True, 3000, "medium"),
    ATMLocation("7", "Gargaresh ATM", "Gargaresh Area", "Tripoli",
                32.8652184, 13.1074416, "out-of-service", False, 0, "none"),
    ATMLocation("8", "Abu Sleem ATM", "Abu Sleem District", "Tripoli",
                32.8680379, 13.1660046, "active", True, 1500, "low"),
    ATMLocation("9", "Bab Ben Ghashir ATM", "Bab Ben Ghashir", "Tripoli",
                32.8688393, 13.1960908, "active", False, 2000, "low"),
    ATMLocation("10", "Janzour ATM", "Janzour Area", "Tripoli",
                32.8689362, 13.1989504, "active", True, 2000, "medium"),
    ATMLocation("11", "General Administration ATM", "General Administration Building (Internal)", "Tripoli",
                32.90566477700083, 13.229422205698722, "active", True, 2500, "low"),
]


def cities() -> List[str]:
    return sorted({atm.city for atm in ATM_LOCATIONS})


def get_atm(atm_id: str) -> ATMLocation:
    for atm in ATM_LOCATIONS:
        if atm.id == str(atm_id):
            return atm
    raise LookupError(f"ATM {atm_id} not found")


def search_atms(query: str = "", city: str = "all") -> List[ATMLocation]:
    """Case-insensitive name/address search, optionally limited to one city"""
    q = query.strip().lower()
    return [
        atm for atm in ATM_LOCATIONS
        if (not q or q in atm.name.lower() or q in atm.address.lower())
        and (city == "all" or atm.city == city)
    ]


class ATMFeedbackManager:
    """Customer reports about ATMs, persisted under ``atmFeedback``"""

    def __init__(self, store: Optional[KeyedStore] = None):
        self.store = store or get_store()

    def list_feedback(self) -> List[ATMFeedback]:
        return parse_records(self.store.load(ATM_FEEDBACK_KEY), ATMFeedback, logger)

    def feedback_for_atm(self, atm_id: str) -> List[ATMFeedback]:
        return [f for f in self.list_feedback() if f.atm_id == str(atm_id)]

    def get_feedback(self, feedback_id: str) -> ATMFeedback:
        for feedback in self.list_feedback():
            if feedback.id == feedback_id:
                return feedback
        raise LookupError(f"ATM feedback {feedback_id} not found")

    def submit_feedback(self, atm_id: str, customer: Optional[str], description: str,
                        image: Optional[Attachment] = None) -> ATMFeedback:
        """Record feedback; ``image`` is expected to come from encode_attachment(image_only=True)"""
        if not description or not description.strip():
            raise ValueError("A description is required")
        if image is not None and not image.type.startswith('image/'):
            raise ValueError("ATM feedback attachments must be images")

        atm = get_atm(atm_id)
        feedback = ATMFeedback(
            id=generate_id('atm-feedback-', 9, 'abcdefghijklmnopqrstuvwxyz0123456789'),
            atm_id=atm.id,
            atm_name=atm.name,
            customer=customer or "Unknown",
            description=description.strip(),
            image_attachment=image,
        )
        self.store.update(ATM_FEEDBACK_KEY, lambda records: records + [feedback.to_dict()])

        logger.info(f"Feedback {feedback.id} recorded for {atm.name}")
        return feedback

    def download_image(self, feedback_id: str) -> Tuple[str, str, bytes]:
        """(file name, content type, raw bytes) of the feedback's image"""
        feedback = self.get_feedback(feedback_id)
        if feedback.image_attachment is None:
            raise LookupError(f"ATM feedback {feedback_id} has no image")
        image = feedback.image_attachment
        return image.name, image.type, decode_attachment(image)
