"""Ingredient scanning — normalization, registry matching, advisory merge."""

from glowguard.scanner.models import AdvisoryConcern, AdvisoryResult, Flag, MatchKind, ScanVerdict
from glowguard.scanner.normalizer import deobfuscate, normalize_lenient
from glowguard.scanner.scanner import IngredientScanner

__all__ = [
    "AdvisoryConcern",
    "AdvisoryResult",
    "Flag",
    "IngredientScanner",
    "MatchKind",
    "ScanVerdict",
    "deobfuscate",
    "normalize_lenient",
]
