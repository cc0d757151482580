"""
ATM module for the Bank Customer Portal
Handles the ATM catalogue, search, customer ATM feedback and the admin fleet
"""

from .locator import ATMLocation, ATM_LOCATIONS, ATMFeedbackManager, cities, get_atm, search_atms
from .fleet import ATMFleetManager, ATMNotFound, KIOSK_TYPES, DEFAULT_FLEET

__all__ = [
    'ATMLocation',
    'ATM_LOCATIONS',
    'ATMFeedbackManager',
    'cities',
    'get_atm',
    'search_atms',
    'ATMFleetManager',
    'ATMNotFound',
    'KIOSK_TYPES',
    'DEFAULT_FLEET',
]
