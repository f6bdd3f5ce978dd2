"""Registry data models: toxic substances, severities, seeding results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Severity(str, Enum):
    """Substance severity, ordered critical > high > medium > low."""

    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"

    @property
    def rank(self) -> int:
        """Numeric rank for comparison (higher = more severe)."""
        return {
            Severity.critical: 4,
            Severity.high: 3,
            Severity.medium: 2,
            Severity.low: 1,
        }[self]

    @property
    def blocks(self) -> bool:
        """Critical and high severities block a product; the rest only warn."""
        return self in (Severity.critical, Severity.high)


SEVERITY_NAMES = [s.value for s in Severity]


@dataclass
class ToxicSubstance:
    """A banned or restricted substance in the toxicity registry."""

    name: str
    severity: Severity = Severity.medium
    aliases: list[str] = field(default_factory=list)
    reason: str = ""
    source: str = "manual"
    created_at: str = ""

    def __post_init__(self) -> None:
        self.name = self.name.strip().lower()
        if isinstance(self.severity, str):
            self.severity = Severity(self.severity.strip().lower())
        seen: list[str] = []
        for alias in self.aliases:
            alias = str(alias).strip().lower()
            if alias and alias != self.name and alias not in seen:
                seen.append(alias)
        self.aliases = seen
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()

    @property
    def search_terms(self) -> list[str]:
        """Canonical name followed by every alias."""
        return [self.name, *self.aliases]


@dataclass
class SeedResult:
    """Outcome of importing a substance list into the registry."""

    added: int = 0
    skipped: int = 0
    total: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class AddResult:
    """Outcome of an admin adding a single substance."""

    success: bool
    substance: ToxicSubstance | None = None
    code: str = ""
    message: str = ""


@dataclass
class RegistryStats:
    """Counts shown on the admin safety dashboard."""

    total_in_registry: int = 0
    available_to_seed: int = 0
    by_severity: dict[str, int] = field(default_factory=dict)
