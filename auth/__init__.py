"""
Authentication module for the Bank Customer Portal
Handles customer login state and preferences
"""

from .authentication import AuthSystem, LANGUAGES

__all__ = ['AuthSystem', 'LANGUAGES']
