# tests/test_sync.py
import threading

from storage.sync import PollingSync, SyncRegistry


class TestPollingSync:

    def test_start_loads_current_value(self, store):
        store.save("tickets", [{"id": "TKT-1"}])
        seen = []
        with PollingSync(store, "tickets", seen.append, interval=60) as sync:
            assert sync.value == [{"id": "TKT-1"}]
        assert seen == [[{"id": "TKT-1"}]]

    def test_callback_only_on_change(self, store):
        seen = []
        sync = PollingSync(store, "tickets", seen.append, interval=60)
        assert sync.refresh() is True
        assert sync.refresh() is False
        store.backend.write_many({"tickets": "[1]"})
        assert sync.refresh() is True
        assert seen == [[], [1]]

    def test_store_write_refreshes_immediately(self, store):
        seen = []
        with PollingSync(store, "userRewardPoints", seen.append, interval=60, default=dict):
            store.save("userRewardPoints", {"1234567890": 20})
        assert seen == [{}, {"1234567890": 20}]

    def test_polls_changes_made_elsewhere(self, store):
        changed = threading.Event()

        def on_change(value):
            if value == [1]:
                changed.set()

        with PollingSync(store, "tickets", on_change, interval=0.01):
            # Bypass the store so only the poll loop can notice
            store.backend.write_many({"tickets": "[1]"})
            assert changed.wait(timeout=5)

    def test_stop_releases_thread_and_subscription(self, store):
        seen = []
        sync = PollingSync(store, "tickets", seen.append, interval=60).start()
        assert sync.running
        sync.stop()
        sync.stop()
        assert not sync.running
        store.save("tickets", [1])
        assert seen == [[]]

    def test_failing_callback_does_not_stop_sync(self, store):
        def broken(value):
            raise RuntimeError("render failed")

        with PollingSync(store, "tickets", broken, interval=60) as sync:
            store.save("tickets", [1])
            assert sync.value == [1]

    def test_corrupt_value_reads_as_default(self, store):
        store.backend.write_many({"tickets": "oops"})
        with PollingSync(store, "tickets", interval=60) as sync:
            assert sync.value == []


class TestSyncRegistry:

    def test_one_sync_per_owner_and_key(self, store):
        registry = SyncRegistry()
        try:
            first = registry.get("session-a", "tickets", store)
            assert registry.get("session-a", "tickets", store) is first
            assert registry.get("session-b", "tickets", store) is not first
            assert registry.keys("session-a") == ["tickets"]
        finally:
            registry.stop_all()

    def test_sweep_stops_ended_sessions(self, store):
        registry = SyncRegistry()
        ended = registry.get("ended", "tickets", store)
        active = registry.get("active", "tickets", store)
        try:
            assert registry.sweep(lambda owner: owner == "active") == 1
            assert not ended.running
            assert active.running
            assert registry.owners() == ["active"]
        finally:
            registry.stop_all()

    def test_swept_sessions_leave_no_subscriptions(self, store):
        registry = SyncRegistry()
        for owner in ("a", "b", "c"):
            registry.get(owner, "tickets", store)
        assert len(store._subscribers["tickets"]) == 3

        registry.sweep(lambda owner: False)
        assert store._subscribers["tickets"] == []
        assert registry.owners() == []

    def test_stop_owner(self, store):
        registry = SyncRegistry()
        sync = registry.get("session-a", "tickets", store)
        assert registry.stop_owner("session-a") == 1
        assert not sync.running
        assert registry.stop_owner("session-a") == 0
        assert registry.keys("session-a") == []

    def test_live_value_follows_writes(self, store):
        registry = SyncRegistry()
        try:
            sync = registry.get("session-a", "userRewardPoints", store, dict)
            store.save("userRewardPoints", {"1234567890": 20})
            assert sync.value == {"1234567890": 20}
        finally:
            registry.stop_all()
