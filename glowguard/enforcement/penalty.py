"""Three-strikes penalty engine.

Strikes one and two are warnings, the third locks the account. An admin
can unlock a locked seller, which places them on probation; any violation
during probation bans the seller and blacklists their email. A banned
account is final.

The seller load, violation insert and status change run inside a single
store transaction. Archiving the rejected product, notifying the seller
and writing the audit trail happen after commit and never undo it.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

from glowguard.enforcement.archive import RejectedProductArchive
from glowguard.enforcement.decision import DEFAULT_STRIKE_LIMIT, decide_action, resulting_status
from glowguard.enforcement.models import (
    AccountStatus,
    ActionResult,
    AppealStatus,
    BlacklistCheck,
    BlacklistEntry,
    PenaltyAction,
    PenaltyResult,
    SellerAccount,
    Violation,
    ViolationView,
)
from glowguard.enforcement.store import EnforcementStore, StateUnreadableError
from glowguard.notifications.center import NotificationCenter
from glowguard.scanner.models import Flag
from glowguard.security.audit_log import AuditLogger

logger = logging.getLogger(__name__)

SELLER_NOT_FOUND = "SELLER_NOT_FOUND"
ACCOUNT_BANNED = "ACCOUNT_BANNED"
EMAIL_BLACKLISTED = "EMAIL_BLACKLISTED"
SELLER_EXISTS = "SELLER_EXISTS"
PERSISTENCE_ERROR = "PERSISTENCE_ERROR"

PROBATION_BAN_REASON = "Repeated safety violations during probation"
PROBATION_NOTICE = "You are now on probation. Any further violations will result in permanent ban."

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hash_email(email: str, salt: str = "") -> str:
    """SHA-256 of *salt* followed by the normalised email."""
    normalized = (email or "").strip().lower()
    return hashlib.sha256((salt + normalized).encode("utf-8")).hexdigest()


def _substance_dict(item: Union[Flag, dict[str, Any]]) -> dict[str, Any]:
    if isinstance(item, Flag):
        return item.to_dict()
    return dict(item)


class Abort(Exception):
    """Leaves a store transaction without committing and carries the result."""

    def __init__(self, result: Any) -> None:
        super().__init__(getattr(result, "message", ""))
        self.result = result


class PenaltyEngine:
    """Records violations and moves sellers along the penalty ladder."""

    def __init__(
        self,
        store: EnforcementStore,
        archive: Optional[RejectedProductArchive] = None,
        notifications: Optional[NotificationCenter] = None,
        audit: Optional[AuditLogger] = None,
        strike_limit: int = DEFAULT_STRIKE_LIMIT,
        blacklist_salt: str = "",
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.archive = archive
        self.notifications = notifications
        self.audit = audit
        self.strike_limit = strike_limit
        self.blacklist_salt = blacklist_salt
        self.clock = clock

    # ------------------------------------------------------------------
    # Sellers
    # ------------------------------------------------------------------

    def hash_email(self, email: str) -> str:
        return hash_email(email, self.blacklist_salt)

    def register_seller(self, seller_id: str, email: str, full_name: str = "") -> ActionResult:
        """Create an ACTIVE seller account unless the email is blacklisted."""
        email = (email or "").strip().lower()
        check = self.is_blacklisted(email)
        if check.blacklisted:
            return ActionResult(
                success=False,
                message="This email address is not allowed to register as a seller.",
                code=EMAIL_BLACKLISTED,
            )
        try:
            with self.store.transaction() as state:
                if state.get_seller(seller_id) is not None or (email and state.find_seller_by_email(email)):
                    raise Abort(ActionResult(success=False, message="Seller already exists", code=SELLER_EXISTS))
                seller = SellerAccount(
                    id=seller_id,
                    email=email,
                    full_name=full_name,
                    created_at=self.clock().isoformat(),
                )
                state.put_seller(seller)
        except Abort as abort:
            return abort.result
        except (StateUnreadableError, OSError):
            logger.exception("Could not register seller %s", seller_id)
            return ActionResult(
                success=False,
                message="Could not register the seller. Please try again.",
                code=PERSISTENCE_ERROR,
            )
        self._audit("system", "seller.register", seller_id, {"email": email})
        return ActionResult(success=True, message="Seller registered", seller=seller)

    def get_account_status(self, seller_id: str) -> Optional[SellerAccount]:
        return self.store.read().get_seller(seller_id)

    def get_violation_history(self, seller_id: str) -> list[ViolationView]:
        """Seller's violations, newest first, with their appeal status."""
        state = self.store.read()
        views = []
        for violation in state.list_violations(seller_id):
            appeal = state.appeal_for_violation(violation.id)
            views.append(
                ViolationView(
                    violation=violation,
                    appeal_status=AppealStatus(appeal.status) if appeal else None,
                    appeal_id=appeal.id if appeal else "",
                )
            )
        views.sort(key=lambda v: (v.violation.created_at, v.violation.violation_number), reverse=True)
        return views

    def list_problem_sellers(self) -> list[SellerAccount]:
        """Sellers with strikes or a non-ACTIVE account, worst first."""
        order = {AccountStatus.BANNED: 0, AccountStatus.LOCKED: 1, AccountStatus.ACTIVE: 2}
        sellers = [
            s
            for s in self.store.read().list_sellers()
            if s.account_status != AccountStatus.ACTIVE or s.violation_count > 0
        ]
        sellers.sort(key=lambda s: (order[s.account_status], -s.violation_count, s.id))
        return sellers

    # ------------------------------------------------------------------
    # Blacklist
    # ------------------------------------------------------------------

    def is_blacklisted(self, email: str) -> BlacklistCheck:
        email = (email or "").strip().lower()
        if not email:
            return BlacklistCheck(blacklisted=False)
        entry = self.store.read().find_blacklist_entry(email, self.hash_email(email))
        if entry is None:
            return BlacklistCheck(blacklisted=False)
        return BlacklistCheck(blacklisted=True, reason=entry.ban_reason)

    def list_blacklist(self) -> list[BlacklistEntry]:
        entries = self.store.read().list_blacklist()
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries

    # ------------------------------------------------------------------
    # Penalties
    # ------------------------------------------------------------------

    def apply_penalty(
        self,
        seller_id: str,
        product_id: Optional[str],
        product_name: str,
        detected_substances: Iterable[Union[Flag, dict[str, Any]]],
        violation_type: str = "toxic_ingredient",
        product_snapshot: Optional[dict[str, Any]] = None,
    ) -> PenaltyResult:
        """Record a violation for *seller_id* and apply the resulting penalty."""
        substances = [_substance_dict(s) for s in detected_substances]
        now = self.clock().isoformat()

        try:
            with self.store.transaction() as state:
                seller = state.get_seller(seller_id)
                if seller is None:
                    raise Abort(PenaltyResult(success=False, message="Seller not found", code=SELLER_NOT_FOUND))

                new_count = seller.violation_count + 1
                action = decide_action(
                    seller.account_status, seller.is_under_probation, new_count, self.strike_limit
                )
                if action is None:
                    raise Abort(
                        PenaltyResult(
                            success=False,
                            message="Account is permanently banned",
                            violation_count=seller.violation_count,
                            code=ACCOUNT_BANNED,
                        )
                    )

                violation = Violation(
                    id=str(uuid.uuid4()),
                    seller_id=seller_id,
                    product_id=product_id,
                    product_name=product_name,
                    violation_type=violation_type,
                    detected_substances=substances,
                    penalty_applied=action,
                    violation_number=new_count,
                    created_at=now,
                )
                state.add_violation(violation)

                seller.violation_count = new_count
                seller.last_violation_at = now
                seller.account_status = resulting_status(action)
                if action == PenaltyAction.ban:
                    seller.is_under_probation = False
                    self._blacklist(state, seller, now)
                state.put_seller(seller)
        except Abort as abort:
            return abort.result
        except Exception:
            logger.exception("Could not record violation for seller %s", seller_id)
            return PenaltyResult(
                success=False,
                message="Could not record the violation. Please try again.",
                code=PERSISTENCE_ERROR,
            )

        logger.info("Seller %s: violation #%d -> %s", seller_id, new_count, action.value)
        self._archive(seller_id, product_id, product_name, product_snapshot, substances)
        self._notify_penalty(seller_id, action, product_name, substances, new_count)
        self._audit(
            "system",
            f"penalty.{action.value}",
            seller_id,
            {"violation_id": violation.id, "violation_count": new_count, "product_name": product_name},
        )
        return PenaltyResult(
            success=True,
            action=action,
            message=self._penalty_message(action, product_name, new_count),
            violation=violation,
            violation_count=new_count,
        )

    def unlock_account(self, seller_id: str, admin_id: str) -> ActionResult:
        """Reactivate a locked seller and place them on probation."""
        try:
            with self.store.transaction() as state:
                seller = state.get_seller(seller_id)
                if seller is None:
                    raise Abort(ActionResult(success=False, message="Seller not found", code=SELLER_NOT_FOUND))
                if seller.is_banned:
                    raise Abort(
                        ActionResult(
                            success=False,
                            message="Cannot unlock a permanently banned account",
                            code=ACCOUNT_BANNED,
                        )
                    )
                self.place_on_probation(seller)
                state.put_seller(seller)
        except Abort as abort:
            return abort.result
        except (StateUnreadableError, OSError):
            logger.exception("Could not unlock seller %s", seller_id)
            return ActionResult(
                success=False,
                message="Could not unlock the account. Please try again.",
                code=PERSISTENCE_ERROR,
            )

        self._notify(
            seller_id,
            "Account Unlocked - Probation Period",
            f"Your account has been unlocked after review. {PROBATION_NOTICE}",
        )
        self._audit(admin_id, "seller.unlock", seller_id, {"violation_count": seller.violation_count})
        return ActionResult(success=True, message="Account unlocked and placed on probation", seller=seller)

    def place_on_probation(self, seller: SellerAccount) -> None:
        """Mutate *seller* in place; callers own the transaction."""
        seller.account_status = AccountStatus.ACTIVE
        seller.is_under_probation = True
        seller.probation_started_at = self.clock().isoformat()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _blacklist(self, state: Any, seller: SellerAccount, now: str) -> None:
        email = seller.email.strip().lower()
        if not email:
            return
        email_hash = self.hash_email(email)
        if state.find_blacklist_entry(email, email_hash) is not None:
            return
        state.add_blacklist_entry(
            BlacklistEntry(
                id=str(uuid.uuid4()),
                email=email,
                email_hash=email_hash,
                ban_reason=PROBATION_BAN_REASON,
                original_user_id=seller.id,
                created_at=now,
            )
        )

    def _penalty_message(self, action: PenaltyAction, product_name: str, count: int) -> str:
        if action == PenaltyAction.ban:
            return (
                "Your account has been permanently banned due to repeated safety violations "
                "during probation. You may no longer sell on this platform."
            )
        if action == PenaltyAction.lock:
            return (
                f"Your account has been locked due to {self.strike_limit} safety violations. "
                "Please contact support to appeal."
            )
        remaining = max(self.strike_limit - count, 0)
        return (
            f'Your product "{product_name}" was rejected due to harmful ingredients. '
            f"You have {remaining} warning(s) remaining before account lock."
        )

    def _notify_penalty(
        self,
        seller_id: str,
        action: PenaltyAction,
        product_name: str,
        substances: list[dict[str, Any]],
        count: int,
    ) -> None:
        ingredients = ", ".join(s.get("name", "") for s in substances)
        if action == PenaltyAction.ban:
            title = "Account Permanently Banned"
            body = (
                "Your account has been permanently banned due to repeated safety violations. "
                f'Your product "{product_name}" contained prohibited ingredients: {ingredients}. '
                "This decision is final."
            )
        elif action == PenaltyAction.lock:
            title = f"Account Locked - {self.strike_limit} Strikes"
            body = (
                f"Your account has been locked due to {self.strike_limit} safety violations. "
                f'Your product "{product_name}" contained prohibited ingredients: {ingredients}. '
                "Contact support to submit an appeal."
            )
        else:
            title = "Product Rejected - Safety Violation"
            body = (
                f'Your product "{product_name}" was rejected because it contains prohibited '
                f"ingredients: {ingredients}. Please remove these ingredients and resubmit. "
                f"You have {max(self.strike_limit - count, 0)} warning(s) remaining before account lock."
            )
        self._notify(seller_id, title, body)

    def _notify(self, seller_id: str, title: str, body: str) -> None:
        if self.notifications is None:
            return
        try:
            self.notifications.notify(seller_id, title, body)
        except Exception:
            logger.warning("Could not notify seller %s", seller_id, exc_info=True)

    def _archive(
        self,
        seller_id: str,
        product_id: Optional[str],
        product_name: str,
        snapshot: Optional[dict[str, Any]],
        substances: list[dict[str, Any]],
    ) -> None:
        if self.archive is None:
            return
        product = dict(snapshot or {})
        product.setdefault("id", product_id)
        product.setdefault("name", product_name)
        try:
            self.archive.record(seller_id, product, substances)
        except Exception:
            logger.warning("Could not archive rejected product for seller %s", seller_id, exc_info=True)

    def _audit(self, actor: str, action: str, seller_id: str, details: dict[str, Any]) -> None:
        if self.audit is None:
            return
        try:
            self.audit.log_event(actor, action, "seller", seller_id, details)
        except Exception:
            logger.warning("Could not write audit event %s", action, exc_info=True)
