import logging
import threading
from typing import Any, Callable, Dict, Hashable, List, Optional

from config import Config

logger = logging.getLogger(__name__)


class PollingSync:
    """Keep an in-memory copy of one persisted key up to date.

    Refreshes on a fixed interval from a background thread and immediately
    when the store reports a write to the key. ``callback`` receives the new
    value whenever it differs from the last one delivered.

    Use as a context manager (or call ``stop()``) so the thread and the
    subscription are always released.
    """

    def __init__(self, store, key: str, callback: Optional[Callable[[Any], None]] = None,
                 interval: Optional[float] = None, default: Callable[[], Any] = list):
        self.store = store
        self.key = key
        self.callback = callback
        self.interval = Config.POLL_INTERVAL if interval is None else interval
        self.default = default
        self.value = default()

        self._loaded = False
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._subscription = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self._thread is not None:
            return self

        self.refresh()
        self._subscription = self.store.subscribe(self.key, self._on_store_change)
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll,
            name=f"poll-{self.key}",
            daemon=True
        )
        self._thread.start()
        logger.debug(f"Started polling '{self.key}' every {self.interval}s")
        return self

    def stop(self):
        self._stop.set()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(self.interval * 2, 1.0))
        logger.debug(f"Stopped polling '{self.key}'")

    def refresh(self) -> bool:
        """Re-read the key; return True if the value changed."""
        value = self.store.load(self.key, self.default)
        with self._lock:
            if self._loaded and value == self.value:
                return False
            self.value = value
            self._loaded = True

        if self.callback is not None:
            try:
                self.callback(value)
            except Exception:
                logger.exception(f"Sync callback for '{self.key}' failed")
        return True

    def _on_store_change(self, key):
        self.refresh()

    def _poll(self):
        while not self._stop.wait(self.interval):
            try:
                self.refresh()
            except Exception as e:
                logger.error(f"Polling error for '{self.key}': {e}")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


class SyncRegistry:
    """PollingSync instances grouped by owner, e.g. one UI session each.

    ``sweep()`` stops every sync whose owner is no longer alive so polling
    threads and store subscriptions never outlive the session that started
    them.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._syncs: Dict[Hashable, Dict[str, PollingSync]] = {}

    def get(self, owner: Hashable, key: str, store, default: Callable[[], Any] = list) -> PollingSync:
        """Running sync for ``owner``/``key``, started on first use"""
        with self._lock:
            syncs = self._syncs.setdefault(owner, {})
            sync = syncs.get(key)
            if sync is None or not sync.running:
                sync = PollingSync(store, key, default=default).start()
                syncs[key] = sync
                logger.debug(f"Started live sync for '{key}' ({owner})")
            return sync

    def keys(self, owner: Hashable) -> List[str]:
        with self._lock:
            return sorted(self._syncs.get(owner, {}))

    def owners(self) -> List[Hashable]:
        with self._lock:
            return list(self._syncs)

    def stop_owner(self, owner: Hashable) -> int:
        with self._lock:
            syncs = self._syncs.pop(owner, {})
        for sync in syncs.values():
            sync.stop()
        return len(syncs)

    def sweep(self, is_alive: Callable[[Hashable], bool]) -> int:
        """Stop the syncs of every owner for which ``is_alive`` is false"""
        stopped = 0
        for owner in self.owners():
            if not is_alive(owner):
                stopped += self.stop_owner(owner)
        if stopped:
            logger.info(f"Stopped {stopped} live sync(s) of ended sessions")
        return stopped

    def stop_all(self) -> int:
        return sum(self.stop_owner(owner) for owner in self.owners())
