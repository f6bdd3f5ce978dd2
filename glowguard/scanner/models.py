"""Data models for ingredient scanning."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from glowguard.registry.models import Severity


class MatchKind(str, Enum):
    """How a substance was found in the product text."""

    exact = "exact"  # canonical name present after lenient normalization
    alias = "alias"  # only an alias matched
    obfuscated = "obfuscated"  # only found once punctuation/spacing was stripped
    advisory = "advisory"  # reported by the AI advisory check


@dataclass
class Match:
    """Raw registry hit, before severity escalation and routing."""

    name: str
    nominal_severity: Severity
    kind: MatchKind
    reason: str = ""


@dataclass
class Flag:
    """A flagged substance as reported to sellers and stored on violations."""

    name: str
    severity: Severity
    reason: str = ""
    match_kind: MatchKind = MatchKind.exact
    obfuscated: bool = False
    source: str = "database"  # "database" | "ai"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "severity": self.severity.value,
            "reason": self.reason,
            "match_kind": self.match_kind.value,
            "obfuscated": self.obfuscated,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Flag:
        return cls(
            name=data["name"],
            severity=Severity(data.get("severity", "high")),
            reason=data.get("reason", ""),
            match_kind=MatchKind(data.get("match_kind", "exact")),
            obfuscated=bool(data.get("obfuscated", False)),
            source=data.get("source", "database"),
        )


@dataclass
class ScanVerdict:
    """Result of screening one product submission."""

    safe: bool
    blocking: list[Flag] = field(default_factory=list)
    warnings: list[Flag] = field(default_factory=list)
    severity: str = "none"  # highest blocking severity | "none" | "unknown"
    message: str = ""
    error: str = ""  # set only when the scan failed open
    advisory_checked: bool = False

    @property
    def needs_review(self) -> bool:
        return bool(self.error)

    def to_payload(self) -> dict[str, Any]:
        """Caller-facing shape consumed by the product-submission path."""
        payload: dict[str, Any] = {
            "safe": self.safe,
            "flaggedIngredients": [f.to_dict() for f in self.blocking],
            "warnings": [f.to_dict() for f in self.warnings],
            "severity": self.severity,
            "message": self.message,
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass
class AdvisoryConcern:
    """One substance the advisory check is worried about."""

    ingredient: str
    severity: str = "high"
    reason: str = ""


@dataclass
class AdvisoryResult:
    """Outcome of the best-effort AI advisory check."""

    checked: bool = False
    concerns: list[AdvisoryConcern] = field(default_factory=list)


@dataclass
class ScanIssue:
    """A blocking flag rephrased as an actionable item for admins."""

    ingredient: str
    severity: str
    reason: str
    recommendation: str
    type: str = "toxic_ingredient"


@dataclass
class DeepScanReport:
    """Admin-triggered re-scan of a stored product."""

    product_id: str = ""
    seller_id: str = ""
    safe: bool = True
    overall_severity: str = "none"
    issues: list[ScanIssue] = field(default_factory=list)
    warnings: list[ScanIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    scanned_at: str = ""
    error: str = ""

    def __post_init__(self) -> None:
        if not self.scanned_at:
            self.scanned_at = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
