# tests/test_rewards.py
import pytest

from rewards.ledger import (
    AlreadyClaimed,
    Awarded,
    milestone_badge,
    milestones_for,
    next_milestone,
    progress_to_next,
)
from storage.keyed_store import REWARD_POINTS_KEY, TICKETS_KEY


class TestMilestones:

    @pytest.mark.parametrize("points, unlocked", [
        (0, [False, False]),
        (499, [False, False]),
        (500, [True, False]),
        (999, [True, False]),
        (1000, [True, True]),
    ])
    def test_unlocked_at_threshold(self, points, unlocked):
        assert [m.unlocked for m in milestones_for(points)] == unlocked

    def test_next_milestone_and_progress(self):
        assert next_milestone(120).threshold == 500
        assert progress_to_next(250) == pytest.approx(50.0)
        assert next_milestone(700).threshold == 1000
        assert progress_to_next(700) == pytest.approx(70.0)
        assert next_milestone(1200) is None
        assert progress_to_next(1200) == 100.0

    def test_badge_is_highest_reached(self):
        assert milestone_badge(100) is None
        assert milestone_badge(500) == "Restaurant Discount"
        assert milestone_badge(1500) == "Flight Discount"


class TestRewardLedger:

    def test_award_accumulates(self, ledger):
        assert ledger.award("1234567890", 20) == 20
        assert ledger.award("1234567890", 20) == 40
        assert ledger.balance("1234567890") == 40
        assert ledger.balance("someone-else") == 0

    def test_award_rejects_negative_and_anonymous(self, ledger):
        with pytest.raises(ValueError):
            ledger.award("1234567890", -5)
        with pytest.raises(ValueError):
            ledger.award("", 20)

    def test_non_numeric_points_are_ignored(self, store, ledger):
        store.save(REWARD_POINTS_KEY, {"a": 30, "b": "lots", "c": True})
        assert ledger.all_points() == {"a": 30}
        assert ledger.award("b", 20) == 20

    def test_milestones_for_user(self, store, ledger):
        store.save(REWARD_POINTS_KEY, {"1234567890": 500})
        assert [m.unlocked for m in ledger.milestones("1234567890")] == [True, False]


class TestClaimReward:

    def _seed(self, store, **extra):
        store.save(TICKETS_KEY, [dict({"id": "TKT-1", "customer": "1234567890"}, **extra)])

    def test_claim_awards_once(self, store, ledger):
        self._seed(store)
        result = ledger.claim_reward(TICKETS_KEY, "TKT-1")
        assert result == Awarded("TKT-1", "1234567890", 20, 20)
        assert store.load(TICKETS_KEY)[0]["rewarded"] is True

        assert ledger.claim_reward(TICKETS_KEY, "TKT-1") == AlreadyClaimed("TKT-1")
        assert ledger.balance("1234567890") == 20

    def test_already_rewarded_record(self, store, ledger):
        self._seed(store, rewarded=True)
        assert isinstance(ledger.claim_reward(TICKETS_KEY, "TKT-1"), AlreadyClaimed)
        assert ledger.all_points() == {}

    def test_missing_record(self, store, ledger):
        self._seed(store)
        with pytest.raises(LookupError):
            ledger.claim_reward(TICKETS_KEY, "TKT-404")

    def test_failed_award_leaves_record_unrewarded(self, store, ledger):
        self._seed(store, customer="")
        with pytest.raises(ValueError):
            ledger.claim_reward(TICKETS_KEY, "TKT-1")
        assert "rewarded" not in store.load(TICKETS_KEY)[0]
        assert ledger.all_points() == {}

    def test_custom_amount_and_unknown_fields_preserved(self, store, ledger):
        self._seed(store, legacyField="keep me")
        ledger.claim_reward(TICKETS_KEY, "TKT-1", amount=50)
        assert ledger.balance("1234567890") == 50
        assert store.load(TICKETS_KEY)[0]["legacyField"] == "keep me"
