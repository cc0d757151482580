import logging

from storage.backends import MySQLBackend
from storage.keyed_store import (
    KeyedStore,
    RESOURCES_KEY,
    SERVICE_MAPPINGS_KEY,
)

logger = logging.getLogger(__name__)


def init_db(store: KeyedStore) -> bool:
    """Prepare the backing storage and seed empty admin collections"""
    if isinstance(store.backend, MySQLBackend) and not store.backend.ensure_table():
        logger.error("Failed to prepare storage table")
        return False

    # Seeding only fills missing keys; existing data is never touched
    with store.transaction():
        if store.get_scalar(RESOURCES_KEY) is None:
            store.save(RESOURCES_KEY, [])
        if store.get_scalar(SERVICE_MAPPINGS_KEY) is None:
            store.save(SERVICE_MAPPINGS_KEY, {})

    logger.info("Storage initialized successfully")
    return True


def reset_db(store: KeyedStore) -> int:
    """Remove every persisted key (Admin only). Returns the number removed."""
    keys = store.keys()
    with store.transaction():
        for key in keys:
            store.remove(key)
    logger.warning(f"Storage has been reset ({len(keys)} keys removed)")
    init_db(store)
    return len(keys)
