"""Seller enforcement: penalties, appeals and their persistent state."""

from glowguard.enforcement.appeals import AppealWorkflow
from glowguard.enforcement.decision import decide_action
from glowguard.enforcement.models import AccountStatus, AppealStatus, PenaltyAction
from glowguard.enforcement.penalty import PenaltyEngine, hash_email
from glowguard.enforcement.store import EnforcementStore

__all__ = [
    "AccountStatus",
    "AppealStatus",
    "AppealWorkflow",
    "EnforcementStore",
    "PenaltyAction",
    "PenaltyEngine",
    "decide_action",
    "hash_email",
]
