import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from config import Config
from storage.keyed_store import KeyedStore, REWARD_POINTS_KEY
from storage.models import index_of, now_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MilestoneDefinition:
    id: str
    threshold: int
    reward_label: str
    badge: str


MILESTONES = (
    MilestoneDefinition("restaurant", 500, "Discount at Partner Restaurant", "Restaurant Discount"),
    MilestoneDefinition("flight", 1000, "Discount on Flight to Turkey", "Flight Discount"),
)


@dataclass(frozen=True)
class Milestone:
    id: str
    threshold: int
    reward_label: str
    unlocked: bool


@dataclass(frozen=True)
class Awarded:
    entity_id: str
    user_id: str
    amount: int
    balance: int


@dataclass(frozen=True)
class AlreadyClaimed:
    entity_id: str


ClaimResult = Union[Awarded, AlreadyClaimed]


def milestones_for(points: int) -> List[Milestone]:
    """Milestones in threshold order, each flagged unlocked when reached"""
    return [
        Milestone(m.id, m.threshold, m.reward_label, points >= m.threshold)
        for m in MILESTONES
    ]


def next_milestone(points: int) -> Optional[Milestone]:
    return next((m for m in milestones_for(points) if not m.unlocked), None)


def progress_to_next(points: int) -> float:
    """Percentage towards the next locked milestone, 100 when all are unlocked"""
    upcoming = next_milestone(points)
    if upcoming is None:
        return 100.0
    return min(points / upcoming.threshold * 100, 100.0)


def milestone_badge(points: int) -> Optional[str]:
    """Badge of the highest milestone reached, if any"""
    badge = None
    for m in MILESTONES:
        if points >= m.threshold:
            badge = m.badge
    return badge


class RewardLedger:
    """National number -> point balance, persisted under ``userRewardPoints``."""

    def __init__(self, store: KeyedStore):
        self.store = store

    def all_points(self) -> Dict[str, int]:
        points = {}
        for user_id, value in self.store.load(REWARD_POINTS_KEY, dict).items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.warning(f"Ignoring non-numeric points for {user_id}: {value!r}")
                continue
            points[user_id] = int(value)
        return points

    def balance(self, user_id: str) -> int:
        return self.all_points().get(user_id, 0)

    def award(self, user_id: str, amount: int) -> int:
        """Add ``amount`` points to ``user_id`` and return the new balance"""
        if not user_id:
            raise ValueError("A user identifier is required to award points")
        if amount < 0:
            raise ValueError("Points can only be added")

        with self.store.transaction():
            points = self.store.load(REWARD_POINTS_KEY, dict)
            current = points.get(user_id, 0)
            if not isinstance(current, (int, float)) or isinstance(current, bool):
                current = 0
            points[user_id] = int(current) + amount
            self.store.save(REWARD_POINTS_KEY, points)

        logger.info(f"Awarded {amount} points to {user_id} (balance {points[user_id]})")
        return points[user_id]

    def milestones(self, user_id: str) -> List[Milestone]:
        return milestones_for(self.balance(user_id))

    def claim_reward(self, collection_key: str, entity_id: str, amount: Optional[int] = None) -> ClaimResult:
        """Award the entity's customer once and mark the entity rewarded.

        Both writes land in one store transaction; a second claim for the
        same entity returns ``AlreadyClaimed`` and leaves the ledger alone.
        """
        amount = Config.REWARD_POINTS_PER_ACCEPT if amount is None else amount

        with self.store.transaction():
            records = self.store.load(collection_key)
            index = index_of(records, entity_id)
            if index is None:
                raise LookupError(f"No record {entity_id} in {collection_key}")

            record = records[index]
            if record.get('rewarded'):
                logger.info(f"Reward for {entity_id} already claimed")
                return AlreadyClaimed(entity_id)

            user_id = record.get('customer')
            balance = self.award(user_id, amount)
            records[index] = dict(record, rewarded=True, updatedAt=now_iso())
            self.store.save(collection_key, records)

        return Awarded(entity_id, user_id, amount, balance)
