"""
Tickets module for the Bank Customer Portal
Handles customer feedback tickets and their admin workflow
"""

from .manager import TicketManager, TicketNotFound, REQUEST_TYPES

__all__ = ['TicketManager', 'TicketNotFound', 'REQUEST_TYPES']
