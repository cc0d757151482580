"""
Rewards module for the Bank Customer Portal
Handles reward points, milestones and reward claiming
"""

from .ledger import (
    RewardLedger,
    Milestone,
    MILESTONES,
    Awarded,
    AlreadyClaimed,
    milestones_for,
    next_milestone,
    progress_to_next,
    milestone_badge,
)

__all__ = [
    'RewardLedger',
    'Milestone',
    'MILESTONES',
    'Awarded',
    'AlreadyClaimed',
    'milestones_for',
    'next_milestone',
    'progress_to_next',
    'milestone_badge',
]
