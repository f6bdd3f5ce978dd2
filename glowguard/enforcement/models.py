"""Data models for seller enforcement: accounts, violations, appeals."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    LOCKED = "LOCKED"
    BANNED = "BANNED"


class PenaltyAction(str, Enum):
    warning = "warning"
    lock = "lock"
    ban = "ban"


class AppealStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


@dataclass
class SellerAccount:
    """Enforcement state for a seller."""

    id: str
    email: str = ""
    full_name: str = ""
    violation_count: int = 0
    account_status: AccountStatus = AccountStatus.ACTIVE
    is_under_probation: bool = False
    probation_started_at: str = ""
    last_violation_at: str = ""
    created_at: str = ""

    def __post_init__(self) -> None:
        self.account_status = AccountStatus(self.account_status)

    @property
    def is_banned(self) -> bool:
        return self.account_status == AccountStatus.BANNED


@dataclass
class Violation:
    """A recorded safety violation. Never modified once written."""

    id: str
    seller_id: str
    product_id: Optional[str] = None
    product_name: str = ""
    violation_type: str = "toxic_ingredient"
    detected_substances: list[dict[str, Any]] = field(default_factory=list)
    penalty_applied: PenaltyAction = PenaltyAction.warning
    violation_number: int = 0
    created_at: str = ""

    def __post_init__(self) -> None:
        self.penalty_applied = PenaltyAction(self.penalty_applied)


@dataclass
class Appeal:
    """A seller's request to overturn one violation."""

    id: str
    violation_id: str
    seller_id: str
    reason: str = ""
    status: AppealStatus = AppealStatus.pending
    reviewed_by: str = ""
    reviewed_at: str = ""
    admin_notes: str = ""
    created_at: str = ""

    def __post_init__(self) -> None:
        self.status = AppealStatus(self.status)


@dataclass
class BlacklistEntry:
    """A banned email that may not register again."""

    id: str
    email: str
    email_hash: str
    ban_reason: str = ""
    original_user_id: str = ""
    created_at: str = ""


@dataclass
class RejectedProduct:
    """Archived copy of a blocked submission."""

    id: str
    seller_id: str
    product_snapshot: dict[str, Any] = field(default_factory=dict)
    detected_substances: list[dict[str, Any]] = field(default_factory=list)
    rejection_reason: str = ""
    rejection_phase: str = "immediate"
    created_at: str = ""


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass
class PenaltyResult:
    success: bool
    action: Optional[PenaltyAction] = None
    message: str = ""
    violation: Optional[Violation] = None
    violation_count: int = 0
    code: str = ""


@dataclass
class AppealResult:
    success: bool
    appeal_id: str = ""
    message: str = ""
    code: str = ""
    cooldown_ends_at: str = ""
    remaining_hours: int = 0


@dataclass
class ReviewResult:
    success: bool
    appeal: Optional[Appeal] = None
    message: str = ""
    code: str = ""
    account_unlocked: bool = False


@dataclass
class ActionResult:
    """Generic outcome of an admin or registration action."""

    success: bool
    message: str = ""
    code: str = ""
    seller: Optional[SellerAccount] = None


@dataclass
class BlacklistCheck:
    blacklisted: bool
    reason: str = ""


@dataclass
class ViolationView:
    """A violation joined with the status of its appeal, if any."""

    violation: Violation
    appeal_status: Optional[AppealStatus] = None
    appeal_id: str = ""
