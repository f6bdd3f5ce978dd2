"""Admin router -- violation review, appeals, unlocks, blacklist and registry."""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from glowguard.context import GlowGuardContext
from glowguard.enforcement.models import Appeal
from glowguard.registry.models import SEVERITY_NAMES, ToxicSubstance
from glowguard.registry.seed import load_seed_file
from web.backend.app.dependencies import get_context, raise_for_code
from web.backend.app.middleware.auth import get_admin_id
from web.backend.app.models.api import (
    ActionResponse,
    AddSubstanceRequest,
    AppealResponse,
    BlacklistCheckResponse,
    BlacklistEntryResponse,
    DeepScanRequest,
    DeepScanResponse,
    RegisterSellerRequest,
    RegistryStatsResponse,
    RejectedProductResponse,
    ReviewAppealRequest,
    ReviewAppealResponse,
    SeedResponse,
    SellerStatusResponse,
    SubstanceResponse,
    ViolationResponse,
)
from web.backend.app.routers.seller import seller_response, violation_response

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(get_admin_id)])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _appeal_response(a: Appeal) -> AppealResponse:
    return AppealResponse(
        id=a.id,
        violation_id=a.violation_id,
        seller_id=a.seller_id,
        reason=a.reason,
        status=a.status.value,
        reviewed_by=a.reviewed_by,
        reviewed_at=a.reviewed_at,
        admin_notes=a.admin_notes,
        created_at=a.created_at,
    )


def _substance_response(s: ToxicSubstance) -> SubstanceResponse:
    return SubstanceResponse(
        name=s.name,
        severity=s.severity.value,
        aliases=s.aliases,
        reason=s.reason,
        source=s.source,
        created_at=s.created_at,
    )


# ---------------------------------------------------------------------------
# Violations & appeals
# ---------------------------------------------------------------------------


@router.get("/violations", response_model=list[ViolationResponse], summary="List violations")
async def list_violations(
    appeal_status: Optional[str] = Query(None, pattern="^(pending|approved|rejected|no_appeal)$"),
    ctx: GlowGuardContext = Depends(get_context),
):
    return [violation_response(v) for v in ctx.appeals.list_violations(appeal_status)]


@router.get("/appeals", response_model=list[AppealResponse], summary="List appeals")
async def list_appeals(
    status_filter: str = Query("pending", alias="status", pattern="^(pending|approved|rejected|all)$"),
    ctx: GlowGuardContext = Depends(get_context),
):
    appeals = ctx.appeals.list_appeals(None if status_filter == "all" else status_filter)
    return [_appeal_response(a) for a in appeals]


@router.post("/appeals/{appeal_id}/review", response_model=ReviewAppealResponse, summary="Review an appeal")
async def review_appeal(
    appeal_id: str,
    body: ReviewAppealRequest,
    admin_id: str = Depends(get_admin_id),
    ctx: GlowGuardContext = Depends(get_context),
):
    result = ctx.appeals.review_appeal(appeal_id, admin_id, body.decision, body.notes)
    if not result.success:
        raise_for_code(result.code, result.message)
    return ReviewAppealResponse(
        message=result.message,
        account_unlocked=result.account_unlocked,
        appeal=_appeal_response(result.appeal),
    )


# ---------------------------------------------------------------------------
# Sellers
# ---------------------------------------------------------------------------


@router.post(
    "/sellers",
    response_model=SellerStatusResponse,
    summary="Register a seller",
    status_code=status.HTTP_201_CREATED,
)
async def register_seller(body: RegisterSellerRequest, ctx: GlowGuardContext = Depends(get_context)):
    result = ctx.penalties.register_seller(body.seller_id, body.email, body.full_name)
    if not result.success:
        raise_for_code(result.code, result.message)
    return seller_response(result.seller)


@router.post("/sellers/{seller_id}/unlock", response_model=ActionResponse, summary="Unlock a seller")
async def unlock_seller(
    seller_id: str,
    admin_id: str = Depends(get_admin_id),
    ctx: GlowGuardContext = Depends(get_context),
):
    """Reactivate a locked seller on probation."""
    result = ctx.penalties.unlock_account(seller_id, admin_id)
    if not result.success:
        raise_for_code(result.code, result.message)
    return ActionResponse(message=result.message)


@router.get("/sellers/problems", response_model=list[SellerStatusResponse], summary="Problem sellers")
async def problem_sellers(ctx: GlowGuardContext = Depends(get_context)):
    return [seller_response(s) for s in ctx.penalties.list_problem_sellers()]


# ---------------------------------------------------------------------------
# Blacklist
# ---------------------------------------------------------------------------


@router.get("/blacklist", response_model=list[BlacklistEntryResponse], summary="List blacklist")
async def list_blacklist(ctx: GlowGuardContext = Depends(get_context)):
    return [
        BlacklistEntryResponse(
            id=e.id,
            email=e.email,
            ban_reason=e.ban_reason,
            original_user_id=e.original_user_id,
            created_at=e.created_at,
        )
        for e in ctx.penalties.list_blacklist()
    ]


@router.get("/blacklist/check", response_model=BlacklistCheckResponse, summary="Check an email")
async def check_blacklist(email: str, ctx: GlowGuardContext = Depends(get_context)):
    result = ctx.penalties.is_blacklisted(email)
    return BlacklistCheckResponse(email=email, blacklisted=result.blacklisted, reason=result.reason or None)


# ---------------------------------------------------------------------------
# Toxicity registry
# ---------------------------------------------------------------------------


@router.get("/toxic-ingredients", response_model=list[SubstanceResponse], summary="List substances")
async def list_substances(ctx: GlowGuardContext = Depends(get_context)):
    return [_substance_response(s) for s in ctx.registry.list_all()]


@router.post(
    "/toxic-ingredients",
    response_model=SubstanceResponse,
    summary="Add a substance",
    status_code=status.HTTP_201_CREATED,
)
async def add_substance(body: AddSubstanceRequest, ctx: GlowGuardContext = Depends(get_context)):
    if body.severity.strip().lower() not in SEVERITY_NAMES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"severity must be one of {', '.join(SEVERITY_NAMES)}",
        )
    substance = ToxicSubstance(
        name=body.name,
        severity=body.severity,
        aliases=body.aliases,
        reason=body.reason,
    )
    result = ctx.registry.add_substance(substance)
    if not result.success:
        raise_for_code(result.code, result.message)
    return _substance_response(result.substance)


@router.post("/toxic-ingredients/seed", response_model=SeedResponse, summary="Seed the registry")
async def seed_registry(ctx: GlowGuardContext = Depends(get_context)):
    """Import the bundled dataset. Existing names are skipped."""
    result = ctx.registry.seed(load_seed_file())
    return SeedResponse(**asdict(result))


@router.get("/toxic-ingredients/stats", response_model=RegistryStatsResponse, summary="Registry stats")
async def registry_stats(ctx: GlowGuardContext = Depends(get_context)):
    seed_names = {s.name for s in load_seed_file()}
    available = len(seed_names - {s.name for s in ctx.registry.snapshot()})
    stats = ctx.registry.stats(available_to_seed=available)
    return RegistryStatsResponse(**asdict(stats), version=ctx.registry.version)


# ---------------------------------------------------------------------------
# Rejected products & deep scan
# ---------------------------------------------------------------------------


@router.get("/rejected-products", response_model=list[RejectedProductResponse], summary="Rejected products")
async def rejected_products(
    limit: int = Query(100, ge=1, le=1000),
    ctx: GlowGuardContext = Depends(get_context),
):
    return [RejectedProductResponse(**asdict(r)) for r in ctx.archive.list_recent(limit=limit)]


@router.post("/deep-scan", response_model=DeepScanResponse, summary="Deep scan a product")
async def deep_scan(body: DeepScanRequest, ctx: GlowGuardContext = Depends(get_context)):
    return DeepScanResponse(**ctx.scanner.deep_scan(body.model_dump()).to_dict())
