import json
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional

from config import StorageConfig
from storage.backends import FileBackend, MemoryBackend, MySQLBackend

logger = logging.getLogger(__name__)

# Persisted keys
TICKETS_KEY = 'tickets'
APPOINTMENT_REQUESTS_KEY = 'appointmentRequests'
ATM_FEEDBACK_KEY = 'atmFeedback'
REWARD_POINTS_KEY = 'userRewardPoints'
RESOURCES_KEY = 'appointmentResources'
SERVICE_MAPPINGS_KEY = 'serviceResourceMappings'
FAVORITES_KEY = 'favoriteAppointments'
ATM_FLEET_KEY = 'atmFleet'

# Scalar keys
USER_NATIONAL_NUMBER_KEY = 'userNationalNumber'
USER_PHONE_NUMBER_KEY = 'userPhoneNumber'
USER_IBAN_KEY = 'userIban'
IS_AUTHENTICATED_KEY = 'isAuthenticated'
LANGUAGE_KEY = 'language'


class Subscription:
    """Handle returned by ``KeyedStore.subscribe``; cancel() to stop listening."""

    def __init__(self, store, key, callback):
        self.store = store
        self.key = key
        self.callback = callback
        self.active = True

    def cancel(self):
        if self.active:
            self.store._unsubscribe(self)
            self.active = False


class KeyedStore:
    """Whole-value JSON reads and writes over namespaced keys.

    There are no partial updates: callers read a collection, transform it and
    save it back in full. Corrupt or mistyped data reads as the default value.
    """

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else MemoryBackend()
        self._lock = threading.RLock()
        self._subscribers: Dict[str, list] = defaultdict(list)
        self._pending: Optional[Dict[str, Optional[str]]] = None

    # --- raw access -------------------------------------------------------

    def _read_raw(self, key: str) -> Optional[str]:
        with self._lock:
            if self._pending is not None and key in self._pending:
                return self._pending[key]
            return self.backend.read(key)

    def _write_raw(self, key: str, text: Optional[str]) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending[key] = text
                return
            self.backend.write_many({key: text})
        self._notify(key)

    # --- JSON collections -------------------------------------------------

    def load(self, key: str, default: Callable[[], Any] = list) -> Any:
        """Parsed JSON under ``key``, or ``default()`` when missing or unusable.

        ``default`` also fixes the expected type: a stored value of another
        type reads as ``default()``. Dict keys such as ``userRewardPoints``
        and ``serviceResourceMappings`` must be loaded with ``default=dict``.
        """
        raw = self._read_raw(key)
        if raw is None:
            return default()

        try:
            value = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Corrupt JSON under '{key}', treating as empty: {e}")
            return default()

        expected = default()
        if expected is not None and not isinstance(value, type(expected)):
            logger.warning(
                f"Unexpected {type(value).__name__} under '{key}' "
                f"(wanted {type(expected).__name__}), treating as empty"
            )
            return expected
        return value

    def save(self, key: str, value: Any) -> None:
        self._write_raw(key, json.dumps(value, ensure_ascii=False))

    def update(self, key: str, fn: Callable[[Any], Any], default: Callable[[], Any] = list) -> Any:
        """Read-modify-write helper; returns the saved value."""
        with self._lock:
            value = fn(self.load(key, default))
            self.save(key, value)
        return value

    # --- scalars ----------------------------------------------------------

    def get_scalar(self, key: str, default: Optional[str] = None) -> Optional[str]:
        raw = self._read_raw(key)
        return default if raw is None else raw

    def set_scalar(self, key: str, value: str) -> None:
        self._write_raw(key, str(value))

    def remove(self, key: str) -> None:
        self._write_raw(key, None)

    def keys(self):
        return self.backend.keys()

    # --- transactions -----------------------------------------------------

    @contextmanager
    def transaction(self):
        """Buffer writes and persist them together when the block exits.

        Nothing is written if the block raises. Nested blocks join the
        outermost transaction.
        """
        written = []
        with self._lock:
            outer = self._pending is None
            if outer:
                self._pending = {}
            try:
                yield self
                if outer and self._pending:
                    self.backend.write_many(self._pending)
                    written = list(self._pending)
            finally:
                if outer:
                    self._pending = None
        for key in written:
            self._notify(key)

    # --- change notification ----------------------------------------------

    def subscribe(self, key: str, callback: Callable[[str], None]) -> Subscription:
        subscription = Subscription(self, key, callback)
        with self._lock:
            self._subscribers[key].append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.key, [])
            if subscription in subscribers:
                subscribers.remove(subscription)

    def _notify(self, key: str) -> None:
        with self._lock:
            subscribers = list(self._subscribers.get(key, []))
        for subscription in subscribers:
            try:
                subscription.callback(key)
            except Exception:
                logger.exception(f"Storage listener for '{key}' failed")


def create_store(config: Optional[StorageConfig] = None) -> KeyedStore:
    """Build a KeyedStore for the configured backend"""
    config = config or StorageConfig()

    if config.backend == 'memory':
        backend = MemoryBackend()
    elif config.backend == 'mysql':
        backend = MySQLBackend(table=config.table)
        backend.ensure_table()
    elif config.backend == 'file':
        backend = FileBackend(config.directory)
    else:
        raise ValueError(f"Unknown storage backend: {config.backend}")

    logger.info(f"Using {config.backend} storage backend")
    return KeyedStore(backend)


_default_store = None
_default_store_lock = threading.Lock()


def get_store() -> KeyedStore:
    """Process-wide store shared by every session"""
    global _default_store
    with _default_store_lock:
        if _default_store is None:
            _default_store = create_store()
        return _default_store
