"""Appeal workflow for recorded violations.

A seller may appeal each violation once, and only after a cooldown
(24 hours by default) has passed since the violation. Admins approve or
reject pending appeals. Approval removes one strike and, when that takes
a locked seller back under the strike limit, unlocks the account on
probation in the same transaction.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from glowguard.enforcement.models import (
    AccountStatus,
    Appeal,
    AppealResult,
    AppealStatus,
    ReviewResult,
    ViolationView,
)
from glowguard.enforcement.penalty import (
    ACCOUNT_BANNED,
    PERSISTENCE_ERROR,
    PROBATION_NOTICE,
    Abort,
    PenaltyEngine,
)
from glowguard.enforcement.store import EnforcementStore, StateUnreadableError
from glowguard.notifications.center import NotificationCenter
from glowguard.security.audit_log import AuditLogger

logger = logging.getLogger(__name__)

NOT_FOUND = "NOT_FOUND"
COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
ALREADY_APPEALED = "ALREADY_APPEALED"
ALREADY_REVIEWED = "ALREADY_REVIEWED"
INVALID_DECISION = "INVALID_DECISION"
INVALID_REASON = "INVALID_REASON"

NO_APPEAL = "no_appeal"
DEFAULT_COOLDOWN_HOURS = 24

_DECISION_NOTICES = {
    AppealStatus.approved: (
        "Appeal Approved",
        "Your appeal has been approved. The violation has been removed from your record.",
    ),
    AppealStatus.rejected: (
        "Appeal Rejected",
        "Your appeal has been reviewed and rejected. The violation remains on your record.",
    ),
}


def _parse_timestamp(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class AppealWorkflow:
    """Submission and review of violation appeals."""

    def __init__(
        self,
        store: EnforcementStore,
        penalties: PenaltyEngine,
        notifications: Optional[NotificationCenter] = None,
        audit: Optional[AuditLogger] = None,
        cooldown_hours: int = DEFAULT_COOLDOWN_HOURS,
    ) -> None:
        self.store = store
        self.penalties = penalties
        self.notifications = notifications
        self.audit = audit
        self.cooldown = timedelta(hours=cooldown_hours)

    @property
    def clock(self):
        return self.penalties.clock

    # ------------------------------------------------------------------
    # Seller side
    # ------------------------------------------------------------------

    def submit_appeal(self, seller_id: str, violation_id: str, reason: str) -> AppealResult:
        """File an appeal against one of the seller's own violations."""
        now = self.clock()
        reason = (reason or "").strip()

        try:
            with self.store.transaction() as state:
                violation = state.get_violation(violation_id)
                if violation is None or violation.seller_id != seller_id:
                    raise Abort(AppealResult(success=False, message="Violation not found", code=NOT_FOUND))

                cooldown_ends = _parse_timestamp(violation.created_at) + self.cooldown
                if now < cooldown_ends:
                    remaining_hours = math.ceil((cooldown_ends - now).total_seconds() / 3600)
                    raise Abort(
                        AppealResult(
                            success=False,
                            message=(
                                f"Please wait {remaining_hours} hour(s) before submitting an appeal. "
                                "This cooldown period allows you to review the violation details."
                            ),
                            code=COOLDOWN_ACTIVE,
                            cooldown_ends_at=cooldown_ends.isoformat(),
                            remaining_hours=remaining_hours,
                        )
                    )

                if state.appeal_for_violation(violation_id) is not None:
                    raise Abort(
                        AppealResult(
                            success=False,
                            message="An appeal has already been submitted for this violation",
                            code=ALREADY_APPEALED,
                        )
                    )

                seller = state.get_seller(seller_id)
                if seller is not None and seller.is_banned:
                    raise Abort(
                        AppealResult(
                            success=False,
                            message="Banned accounts cannot submit appeals",
                            code=ACCOUNT_BANNED,
                        )
                    )

                if not reason:
                    raise Abort(
                        AppealResult(success=False, message="An appeal reason is required", code=INVALID_REASON)
                    )

                appeal = Appeal(
                    id=str(uuid.uuid4()),
                    violation_id=violation_id,
                    seller_id=seller_id,
                    reason=reason,
                    created_at=now.isoformat(),
                )
                state.add_appeal(appeal)
        except Abort as abort:
            return abort.result
        except (StateUnreadableError, OSError):
            logger.exception("Could not record appeal for violation %s", violation_id)
            return AppealResult(
                success=False,
                message="Could not submit the appeal. Please try again.",
                code=PERSISTENCE_ERROR,
            )

        self._audit(seller_id, "appeal.submit", appeal.id, {"violation_id": violation_id})
        return AppealResult(
            success=True,
            appeal_id=appeal.id,
            message="Appeal submitted successfully. Our team will review it within 48 hours.",
        )

    # ------------------------------------------------------------------
    # Admin side
    # ------------------------------------------------------------------

    def review_appeal(self, appeal_id: str, admin_id: str, decision: str, notes: str = "") -> ReviewResult:
        """Approve or reject a pending appeal."""
        try:
            status = AppealStatus(str(decision).strip().lower())
        except ValueError:
            status = None
        if status not in (AppealStatus.approved, AppealStatus.rejected):
            return ReviewResult(
                success=False,
                message='Decision must be "approved" or "rejected"',
                code=INVALID_DECISION,
            )

        unlocked = False
        try:
            with self.store.transaction() as state:
                appeal = state.get_appeal(appeal_id)
                if appeal is None:
                    raise Abort(ReviewResult(success=False, message="Appeal not found", code=NOT_FOUND))
                if appeal.status != AppealStatus.pending:
                    raise Abort(
                        ReviewResult(
                            success=False,
                            appeal=appeal,
                            message=f"Appeal has already been {appeal.status.value}",
                            code=ALREADY_REVIEWED,
                        )
                    )

                appeal.status = status
                appeal.reviewed_by = admin_id
                appeal.reviewed_at = self.clock().isoformat()
                appeal.admin_notes = notes
                state.put_appeal(appeal)

                seller = state.get_seller(appeal.seller_id)
                if status == AppealStatus.approved and seller is not None and not seller.is_banned:
                    seller.violation_count = max(seller.violation_count - 1, 0)
                    if (
                        seller.account_status == AccountStatus.LOCKED
                        and seller.violation_count < self.penalties.strike_limit
                    ):
                        self.penalties.place_on_probation(seller)
                        unlocked = True
                    state.put_seller(seller)
        except Abort as abort:
            return abort.result
        except (StateUnreadableError, OSError):
            logger.exception("Could not record review for appeal %s", appeal_id)
            return ReviewResult(
                success=False,
                message="Could not record the review. Please try again.",
                code=PERSISTENCE_ERROR,
            )

        title, body = _DECISION_NOTICES[status]
        if unlocked:
            body += f" Your account has been unlocked. {PROBATION_NOTICE}"
        self._notify(appeal.seller_id, title, body)
        self._audit(
            admin_id,
            f"appeal.{status.value}",
            appeal.id,
            {"violation_id": appeal.violation_id, "account_unlocked": unlocked},
        )
        return ReviewResult(
            success=True,
            appeal=appeal,
            message=f"Appeal {status.value}",
            account_unlocked=unlocked,
        )

    def list_appeals(self, status: Optional[str] = AppealStatus.pending.value) -> list[Appeal]:
        """Appeals in submission order, optionally filtered by status."""
        appeals = self.store.read().list_appeals()
        if status:
            appeals = [a for a in appeals if a.status.value == status]
        appeals.sort(key=lambda a: a.created_at)
        return appeals

    def list_violations(self, appeal_status: Optional[str] = None) -> list[ViolationView]:
        """All violations, newest first.

        *appeal_status* filters on the linked appeal: ``pending``,
        ``approved``, ``rejected`` or ``no_appeal``.
        """
        state = self.store.read()
        by_violation = {a.violation_id: a for a in state.list_appeals()}
        views = []
        for violation in state.list_violations():
            appeal = by_violation.get(violation.id)
            if appeal_status == NO_APPEAL and appeal is not None:
                continue
            if appeal_status and appeal_status != NO_APPEAL and (
                appeal is None or appeal.status.value != appeal_status
            ):
                continue
            views.append(
                ViolationView(
                    violation=violation,
                    appeal_status=appeal.status if appeal else None,
                    appeal_id=appeal.id if appeal else "",
                )
            )
        views.sort(key=lambda v: (v.violation.created_at, v.violation.violation_number), reverse=True)
        return views

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _notify(self, seller_id: str, title: str, body: str) -> None:
        if self.notifications is None:
            return
        try:
            self.notifications.notify(seller_id, title, body)
        except Exception:
            logger.warning("Could not notify seller %s", seller_id, exc_info=True)

    def _audit(self, actor: str, action: str, appeal_id: str, details: dict[str, Any]) -> None:
        if self.audit is None:
            return
        try:
            self.audit.log_event(actor, action, "appeal", appeal_id, details)
        except Exception:
            logger.warning("Could not write audit event %s", action, exc_info=True)
