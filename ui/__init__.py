"""
UI module for the Bank Customer Portal
Handles user interface components and pages
"""

from .components import UIComponents
from .pages import (
    show_login_section,
    show_main_application,
    show_tickets_page,
    show_appointments_page,
    show_atm_locator,
    show_rewards_page,
    show_admin_dashboard,
    live_value,
    live_sync_keys,
    stop_live_syncs
)

__all__ = [
    'UIComponents',
    'show_login_section',
    'show_main_application',
    'show_tickets_page',
    'show_appointments_page',
    'show_atm_locator',
    'show_rewards_page',
    'show_admin_dashboard',
    'live_value',
    'live_sync_keys',
    'stop_live_syncs'
]
