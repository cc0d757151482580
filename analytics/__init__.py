"""
Analytics module for the Bank Customer Portal
Handles dashboard metrics and reward statistics
"""

from .engine import AnalyticsEngine

__all__ = ['AnalyticsEngine']
