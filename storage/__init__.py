"""
Storage module for the Bank Customer Portal
Handles the persisted key/value state, its backends and polling sync
"""

from .keyed_store import KeyedStore, Subscription, create_store, get_store
from .backends import FileBackend, MemoryBackend, MySQLBackend, StorageError
from .sync import PollingSync, SyncRegistry
from .setup import init_db, reset_db
from .models import (
    Attachment,
    Reply,
    Ticket,
    TicketStatus,
    TicketPriority,
    AppointmentRequest,
    AppointmentStatus,
    ATMFeedback,
    ResourceSchedule,
    ResourceType,
)

__all__ = [
    'KeyedStore',
    'Subscription',
    'create_store',
    'get_store',
    'FileBackend',
    'MemoryBackend',
    'MySQLBackend',
    'StorageError',
    'PollingSync',
    'SyncRegistry',
    'init_db',
    'reset_db',
    'Attachment',
    'Reply',
    'Ticket',
    'TicketStatus',
    'TicketPriority',
    'AppointmentRequest',
    'AppointmentStatus',
    'ATMFeedback',
    'ResourceSchedule',
    'ResourceType',
]
