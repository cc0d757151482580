# tests/test_analytics.py
from datetime import date

from analytics.engine import AnalyticsEngine
from storage.keyed_store import REWARD_POINTS_KEY, TICKETS_KEY


class TestDashboardMetrics:

    def test_empty_store(self, store):
        metrics = AnalyticsEngine.get_dashboard_metrics(store)
        assert metrics["total_tickets"] == 0
        assert metrics["status_distribution"]["pending"] == 0
        assert metrics["daily_trends"] == []
        assert metrics["total_reward_points"] == 0

    def test_counts(self, store, tickets, customer_ticket, atm_feedback):
        first = customer_ticket()
        second = customer_ticket()
        customer_ticket()
        tickets.update_status(first.id, "completed")
        tickets.update_status(second.id, "rejected", "Duplicate")
        tickets.accept(first.id)
        atm_feedback.submit_feedback("1", None, "No cash")
        atm_feedback.submit_feedback("1", None, "Still no cash")

        metrics = AnalyticsEngine.get_dashboard_metrics(store)
        assert metrics["total_tickets"] == 3
        assert metrics["open_tickets"] == 1
        assert metrics["completed_tickets"] == 1
        assert metrics["rejected_tickets"] == 1
        assert metrics["rewarded_tickets"] == 1
        assert metrics["status_distribution"]["completed"] == 1
        assert metrics["priority_distribution"]["medium"] == 3
        assert metrics["feedback_by_atm"] == {"Misrata ATM": 2}
        assert metrics["total_reward_points"] == 20

    def test_daily_trends_window(self, store):
        store.save(TICKETS_KEY, [
            {"id": "TKT-1", "customer": "a", "createdAt": "2025-01-10T08:00:00.000Z"},
            {"id": "TKT-2", "customer": "a", "createdAt": "2025-01-10T09:00:00.000Z"},
            {"id": "TKT-3", "customer": "b", "createdAt": "2024-10-01T09:00:00.000Z"},
        ])
        metrics = AnalyticsEngine.get_dashboard_metrics(store, today=date(2025, 1, 12))
        assert metrics["daily_trends"] == [(date(2025, 1, 10), 2)]


class TestRewardStatistics:

    def test_sorted_users_with_badges(self, store):
        store.save(REWARD_POINTS_KEY, {"111": 40, "222": 1000, "333": 0, "444": 520})
        stats = AnalyticsEngine.get_reward_statistics(store)

        assert [u["national_number"] for u in stats["users"]] == ["222", "444", "111"]
        assert stats["users"][0]["badge"] == "Flight Discount"
        assert stats["users"][1]["badge"] == "Restaurant Discount"
        assert stats["users"][2]["badge"] is None
        assert stats["total_points"] == 1560
        assert stats["total_users"] == 3
        assert stats["average_points"] == 520

    def test_average_rounds_half_up(self, store):
        store.save(REWARD_POINTS_KEY, {"111": 20, "222": 1})
        assert AnalyticsEngine.get_reward_statistics(store)["average_points"] == 11

    def test_search(self, store):
        store.save(REWARD_POINTS_KEY, {"111": 40, "222": 60})
        stats = AnalyticsEngine.get_reward_statistics(store, "22")
        assert [u["national_number"] for u in stats["users"]] == ["222"]
        assert stats["total_users"] == 2

    def test_no_points(self, store):
        stats = AnalyticsEngine.get_reward_statistics(store)
        assert stats == {"users": [], "total_points": 0, "total_users": 0, "average_points": 0}
