"""
Appointments module for the Bank Customer Portal
Handles appointment requests, bookable resources and favorites
"""

from .manager import (
    AppointmentManager,
    AppointmentNotFound,
    SERVICE_CATEGORIES,
    BRANCHES,
    TIME_SLOTS,
    available_dates,
    is_bookable_date,
)
from .resources import ResourceAssignment, ResourceNotFound, FavoriteStore, DEFAULT_RESOURCES

__all__ = [
    'AppointmentManager',
    'AppointmentNotFound',
    'SERVICE_CATEGORIES',
    'BRANCHES',
    'TIME_SLOTS',
    'available_dates',
    'is_bookable_date',
    'ResourceAssignment',
    'ResourceNotFound',
    'FavoriteStore',
    'DEFAULT_RESOURCES',
]
