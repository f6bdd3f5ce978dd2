"""Pure penalty decision.

Kept free of storage so the escalation ladder can be tested on its own.
"""

from __future__ import annotations

from typing import Optional

from glowguard.enforcement.models import AccountStatus, PenaltyAction

DEFAULT_STRIKE_LIMIT = 3


def decide_action(
    status: AccountStatus,
    is_under_probation: bool,
    new_count: int,
    strike_limit: int = DEFAULT_STRIKE_LIMIT,
) -> Optional[PenaltyAction]:
    """Return the penalty for a new violation, or None for banned sellers.

    A seller on probation is banned regardless of count. Otherwise the
    violation locks the account once the count reaches *strike_limit*.
    """
    if AccountStatus(status) == AccountStatus.BANNED:
        return None
    if is_under_probation:
        return PenaltyAction.ban
    if new_count >= strike_limit:
        return PenaltyAction.lock
    return PenaltyAction.warning


def resulting_status(action: PenaltyAction) -> AccountStatus:
    if action == PenaltyAction.ban:
        return AccountStatus.BANNED
    if action == PenaltyAction.lock:
        return AccountStatus.LOCKED
    return AccountStatus.ACTIVE
