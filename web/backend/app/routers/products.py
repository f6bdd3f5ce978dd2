"""Products router -- safety screening of seller submissions."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from glowguard.context import GlowGuardContext
from glowguard.enforcement.models import AccountStatus
from web.backend.app.dependencies import get_context
from web.backend.app.middleware.auth import get_seller_id
from web.backend.app.models.api import SubmitProductRequest, SubmitProductResponse

router = APIRouter(prefix="/api/products", tags=["products"])


@router.post(
    "/submit",
    response_model=SubmitProductResponse,
    summary="Submit a product for safety screening",
    status_code=status.HTTP_201_CREATED,
)
async def submit_product(
    body: SubmitProductRequest,
    seller_id: str = Depends(get_seller_id),
    ctx: GlowGuardContext = Depends(get_context),
):
    """Screen a product's ingredients and apply a penalty if it is blocked.

    Rejected submissions answer ``400`` with the scan verdict and the
    penalty that was applied.
    """
    seller = ctx.penalties.get_account_status(seller_id)
    if seller is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Seller not found")
    if seller.account_status == AccountStatus.BANNED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been permanently banned.",
        )
    if seller.account_status == AccountStatus.LOCKED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is locked due to safety violations. Please submit an appeal.",
        )

    product_id = body.id or str(uuid.uuid4())
    verdict = ctx.scanner.scan(body.ingredients, body.name, body.description)

    if not verdict.safe:
        result = ctx.penalties.apply_penalty(
            seller_id,
            product_id,
            body.name,
            verdict.blocking,
            product_snapshot={**body.model_dump(), "id": product_id, "seller_id": seller_id},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                **verdict.to_payload(),
                "penalty": {
                    "action": result.action.value if result.action else None,
                    "message": result.message,
                    "violationCount": result.violation_count,
                },
            },
        )

    return SubmitProductResponse(
        product_id=product_id,
        needs_review=verdict.needs_review,
        safety=verdict.to_payload(),
    )
