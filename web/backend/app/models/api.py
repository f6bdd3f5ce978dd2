"""Pydantic models for API request/response serialization.

These models mirror the GlowGuard dataclasses and provide proper JSON
serialization for the FastAPI endpoints. Scan payloads keep the camelCase
keys the storefront already consumes.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class SubmitProductRequest(BaseModel):
    """A seller's product submission."""

    name: str = Field(..., min_length=1)
    ingredients: str = ""
    description: str = ""
    id: Optional[str] = None
    brand: str = ""
    category: str = ""
    price: Optional[float] = None


class FlagResponse(BaseModel):
    """Mirrors glowguard.scanner.models.Flag."""

    name: str
    severity: str
    reason: str = ""
    match_kind: str = "exact"
    obfuscated: bool = False
    source: str = "database"


class ScanVerdictResponse(BaseModel):
    safe: bool
    flaggedIngredients: list[FlagResponse] = Field(default_factory=list)
    warnings: list[FlagResponse] = Field(default_factory=list)
    severity: str = "none"
    message: str = ""
    error: Optional[str] = None


class PenaltyInfo(BaseModel):
    action: Optional[str] = None
    message: str = ""
    violationCount: int = 0


class SubmitProductResponse(BaseModel):
    product_id: str
    accepted: bool = True
    needs_review: bool = False
    safety: ScanVerdictResponse


# ---------------------------------------------------------------------------
# Sellers, violations, appeals
# ---------------------------------------------------------------------------


class SellerStatusResponse(BaseModel):
    """Mirrors glowguard.enforcement.models.SellerAccount."""

    id: str
    email: str = ""
    full_name: str = ""
    status: str = "ACTIVE"
    violation_count: int = 0
    is_under_probation: bool = False
    probation_started_at: str = ""
    last_violation_at: str = ""


class RegisterSellerRequest(BaseModel):
    seller_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    full_name: str = ""


class ViolationResponse(BaseModel):
    """A violation joined with its appeal status."""

    id: str
    seller_id: str
    product_id: Optional[str] = None
    product_name: str = ""
    violation_type: str = "toxic_ingredient"
    detected_substances: list[dict[str, Any]] = Field(default_factory=list)
    penalty_applied: str = "warning"
    violation_number: int = 0
    created_at: str = ""
    appeal_status: Optional[str] = None
    appeal_id: str = ""


class SubmitAppealRequest(BaseModel):
    violation_id: str
    reason: str = ""


class SubmitAppealResponse(BaseModel):
    success: bool = True
    appeal_id: str
    message: str


class AppealResponse(BaseModel):
    """Mirrors glowguard.enforcement.models.Appeal."""

    id: str
    violation_id: str
    seller_id: str
    reason: str = ""
    status: str = "pending"
    reviewed_by: str = ""
    reviewed_at: str = ""
    admin_notes: str = ""
    created_at: str = ""


class ReviewAppealRequest(BaseModel):
    decision: str
    notes: str = ""


class ReviewAppealResponse(BaseModel):
    success: bool = True
    message: str
    account_unlocked: bool = False
    appeal: AppealResponse


class ActionResponse(BaseModel):
    success: bool = True
    message: str = ""


class NotificationResponse(BaseModel):
    id: str
    title: str
    body: str
    created_at: str = ""
    read: bool = False


# ---------------------------------------------------------------------------
# Blacklist
# ---------------------------------------------------------------------------


class BlacklistEntryResponse(BaseModel):
    id: str
    email: str
    ban_reason: str = ""
    original_user_id: str = ""
    created_at: str = ""


class BlacklistCheckResponse(BaseModel):
    email: str
    blacklisted: bool
    reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Toxicity registry
# ---------------------------------------------------------------------------


class SubstanceResponse(BaseModel):
    """Mirrors glowguard.registry.models.ToxicSubstance."""

    name: str
    severity: str
    aliases: list[str] = Field(default_factory=list)
    reason: str = ""
    source: str = "manual"
    created_at: str = ""


class AddSubstanceRequest(BaseModel):
    name: str = Field(..., min_length=1)
    severity: str = "medium"
    aliases: list[str] = Field(default_factory=list)
    reason: str = ""


class SeedResponse(BaseModel):
    added: int = 0
    skipped: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)


class RegistryStatsResponse(BaseModel):
    total_in_registry: int = 0
    available_to_seed: int = 0
    by_severity: dict[str, int] = Field(default_factory=dict)
    version: int = 0


class RejectedProductResponse(BaseModel):
    id: str
    seller_id: str
    product_snapshot: dict[str, Any] = Field(default_factory=dict)
    detected_substances: list[dict[str, Any]] = Field(default_factory=list)
    rejection_reason: str = ""
    rejection_phase: str = "immediate"
    created_at: str = ""


class DeepScanRequest(BaseModel):
    id: str = ""
    seller_id: str = ""
    name: str = ""
    ingredients: str = ""
    description: str = ""


class ScanIssueResponse(BaseModel):
    ingredient: str
    severity: str
    reason: str = ""
    recommendation: str = ""
    type: str = "toxic_ingredient"


class DeepScanResponse(BaseModel):
    product_id: str = ""
    seller_id: str = ""
    safe: bool = True
    overall_severity: str = "none"
    issues: list[ScanIssueResponse] = Field(default_factory=list)
    warnings: list[ScanIssueResponse] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    scanned_at: str = ""
    error: str = ""
