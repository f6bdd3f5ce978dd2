"""Seller router -- account status, violation history and appeals."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from glowguard.context import GlowGuardContext
from glowguard.enforcement.models import SellerAccount, ViolationView
from web.backend.app.dependencies import get_context, raise_for_code
from web.backend.app.middleware.auth import get_seller_id
from web.backend.app.models.api import (
    NotificationResponse,
    SellerStatusResponse,
    SubmitAppealRequest,
    SubmitAppealResponse,
    ViolationResponse,
)

router = APIRouter(prefix="/api/seller", tags=["seller"])


# ---------------------------------------------------------------------------
# Helpers (shared with the admin router)
# ---------------------------------------------------------------------------


def seller_response(s: SellerAccount) -> SellerStatusResponse:
    return SellerStatusResponse(
        id=s.id,
        email=s.email,
        full_name=s.full_name,
        status=s.account_status.value,
        violation_count=s.violation_count,
        is_under_probation=s.is_under_probation,
        probation_started_at=s.probation_started_at,
        last_violation_at=s.last_violation_at,
    )


def violation_response(view: ViolationView) -> ViolationResponse:
    v = view.violation
    return ViolationResponse(
        id=v.id,
        seller_id=v.seller_id,
        product_id=v.product_id,
        product_name=v.product_name,
        violation_type=v.violation_type,
        detected_substances=v.detected_substances,
        penalty_applied=v.penalty_applied.value,
        violation_number=v.violation_number,
        created_at=v.created_at,
        appeal_status=view.appeal_status.value if view.appeal_status else None,
        appeal_id=view.appeal_id,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/status", response_model=SellerStatusResponse, summary="Current account status")
async def get_status(
    seller_id: str = Depends(get_seller_id),
    ctx: GlowGuardContext = Depends(get_context),
):
    seller = ctx.penalties.get_account_status(seller_id)
    if seller is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Seller not found")
    return seller_response(seller)


@router.get("/violations", response_model=list[ViolationResponse], summary="Violation history")
async def get_violations(
    seller_id: str = Depends(get_seller_id),
    ctx: GlowGuardContext = Depends(get_context),
):
    """Return the caller's violations, newest first, with appeal status."""
    return [violation_response(v) for v in ctx.penalties.get_violation_history(seller_id)]


@router.post(
    "/appeals",
    response_model=SubmitAppealResponse,
    summary="Appeal a violation",
    status_code=status.HTTP_201_CREATED,
)
async def submit_appeal(
    body: SubmitAppealRequest,
    seller_id: str = Depends(get_seller_id),
    ctx: GlowGuardContext = Depends(get_context),
):
    """File an appeal. Answers ``429`` with ``cooldownEndsAt`` while the
    violation is still inside its cooldown window."""
    result = ctx.appeals.submit_appeal(seller_id, body.violation_id, body.reason)
    if not result.success:
        if result.cooldown_ends_at:
            raise_for_code(
                result.code,
                result.message,
                cooldownEndsAt=result.cooldown_ends_at,
                remainingHours=result.remaining_hours,
            )
        raise_for_code(result.code, result.message)
    return SubmitAppealResponse(appeal_id=result.appeal_id, message=result.message)


@router.get("/notifications", response_model=list[NotificationResponse], summary="Seller notifications")
async def get_notifications(
    unread_only: bool = False,
    seller_id: str = Depends(get_seller_id),
    ctx: GlowGuardContext = Depends(get_context),
):
    return [
        NotificationResponse(id=n.id, title=n.title, body=n.body, created_at=n.created_at, read=n.read)
        for n in ctx.notifications.list_for_user(seller_id, unread_only=unread_only)
    ]
