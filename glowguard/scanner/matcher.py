"""Pure registry matching. No I/O: the registry is passed in explicitly.

Pipeline per substance::

    match_substance()  ->  Match | None
    effective_severity(match)  ->  Severity  (obfuscation escalates to critical)
    to_flag(match)  ->  Flag
    route_flag(flag)  ->  blocking | warnings
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from glowguard.registry.models import Severity, ToxicSubstance
from glowguard.scanner.models import AdvisoryResult, Flag, Match, MatchKind
from glowguard.scanner.normalizer import deobfuscate, normalize_lenient

# Below this the product text has nothing worth scanning.
MIN_SCANNABLE_LENGTH = 3

# Shorter letter-only terms ("hq", "dcm", "tcs") produce false positives once
# every separator is stripped from the product text.
MIN_DEOBFUSCATED_TERM_LENGTH = 4


@dataclass(frozen=True)
class PreparedText:
    """Product text in both canonical forms."""

    lenient: str
    deobfuscated: str

    @property
    def scannable(self) -> bool:
        return len(self.lenient) >= MIN_SCANNABLE_LENGTH


def prepare_text(ingredients: str | None, product_name: str | None = "", description: str | None = "") -> PreparedText:
    """Combine ingredients, name and description and normalize both ways."""
    combined = f"{ingredients or ''} {product_name or ''} {description or ''}"
    return PreparedText(lenient=normalize_lenient(combined), deobfuscated=deobfuscate(combined))


def match_substance(substance: ToxicSubstance, text: PreparedText) -> Match | None:
    """Match one substance against the product text.

    A lenient hit on any search term is a normal match. Only when there is no
    normal match is the deobfuscated text consulted, and then only for terms
    of at least ``MIN_DEOBFUSCATED_TERM_LENGTH`` letters.
    """
    canonical = normalize_lenient(substance.name)
    lenient_terms = [t for t in (normalize_lenient(term) for term in substance.search_terms) if t]

    if any(term in text.lenient for term in lenient_terms):
        kind = MatchKind.exact if canonical and canonical in text.lenient else MatchKind.alias
        return Match(substance.name, substance.severity, kind, substance.reason)

    clean_terms = (deobfuscate(term) for term in substance.search_terms)
    if any(
        len(term) >= MIN_DEOBFUSCATED_TERM_LENGTH and term in text.deobfuscated
        for term in clean_terms
    ):
        return Match(substance.name, substance.severity, MatchKind.obfuscated, substance.reason)

    return None


def effective_severity(match: Match) -> Severity:
    """Deliberate evasion is itself the violation: obfuscated hits are critical."""
    if match.kind == MatchKind.obfuscated:
        return Severity.critical
    return match.nominal_severity


def to_flag(match: Match) -> Flag:
    obfuscated = match.kind == MatchKind.obfuscated
    reason = match.reason
    if obfuscated:
        reason = (
            f'Obfuscation detected: "{match.name}" was disguised to bypass safety checks. '
            f"Original reason: {match.reason}"
        )
    return Flag(
        name=match.name,
        severity=effective_severity(match),
        reason=reason,
        match_kind=match.kind,
        obfuscated=obfuscated,
        source="ai" if match.kind == MatchKind.advisory else "database",
    )


class FlagRouter:
    """Collects flags into blocking/warning lists, de-duplicated by name."""

    def __init__(self) -> None:
        self.blocking: list[Flag] = []
        self.warnings: list[Flag] = []
        self._seen: set[str] = set()

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._seen

    def add(self, flag: Flag) -> bool:
        key = flag.name.strip().lower()
        if key in self._seen:
            return False
        self._seen.add(key)
        if flag.severity.blocks:
            self.blocking.append(flag)
        else:
            self.warnings.append(flag)
        return True

    @property
    def highest_severity(self) -> str:
        if not self.blocking:
            return "none"
        return max(self.blocking, key=lambda f: f.severity.rank).severity.value


def match_registry(substances: Iterable[ToxicSubstance], text: PreparedText, router: FlagRouter | None = None) -> FlagRouter:
    """Run every substance through the pipeline and route the hits."""
    router = router or FlagRouter()
    for substance in substances:
        match = match_substance(substance, text)
        if match is not None:
            router.add(to_flag(match))
    return router


def merge_advisory(router: FlagRouter, advisory: AdvisoryResult) -> int:
    """Merge advisory concerns that the registry did not already flag.

    Returns the number of flags added.
    """
    if not advisory.checked:
        return 0

    added = 0
    for concern in advisory.concerns:
        name = concern.ingredient.strip().lower()
        if not name or name in router:
            continue
        try:
            severity = Severity(str(concern.severity).strip().lower())
        except ValueError:
            severity = Severity.high
        match = Match(name, severity, MatchKind.advisory, concern.reason or "Flagged by AI safety analysis")
        if router.add(to_flag(match)):
            added += 1
    return added
