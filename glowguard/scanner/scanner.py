"""Ingredient scanner — registry match plus best-effort AI advisory.

The scanner favours availability: if anything unexpected goes wrong while
scanning, the product is allowed through with an ``error`` marker so it
can be reviewed manually. The penalty layer is the real gate.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Protocol

from glowguard.registry.models import ToxicSubstance
from glowguard.scanner.matcher import match_registry, merge_advisory, prepare_text
from glowguard.scanner.models import AdvisoryResult, DeepScanReport, ScanIssue, ScanVerdict

logger = logging.getLogger(__name__)

DEFAULT_ADVISORY_TIMEOUT = 5.0

_RECOMMENDATIONS = {
    "critical": "This product contains critically dangerous ingredients and should be removed immediately.",
    "high": "This product contains high-risk ingredients. Consider reformulation.",
}
_WARNING_RECOMMENDATION = (
    "Some ingredients may cause sensitivity in certain individuals. Add appropriate warnings."
)


class SubstanceSource(Protocol):
    def snapshot(self) -> tuple[ToxicSubstance, ...]: ...


class AdvisoryChecker(Protocol):
    def quick_check(self, ingredients: str) -> AdvisoryResult: ...


class IngredientScanner:
    """Screens product text against the toxicity registry.

    Parameters
    ----------
    registry : SubstanceSource
        Anything exposing ``snapshot()``, normally a
        :class:`~glowguard.registry.local_registry.ToxicityRegistry`.
    advisory : AdvisoryChecker | None
        Optional quick AI opinion. Runs on a worker thread alongside the
        registry match and is abandoned after *advisory_timeout* seconds.
    """

    def __init__(
        self,
        registry: SubstanceSource,
        advisory: AdvisoryChecker | None = None,
        advisory_timeout: float = DEFAULT_ADVISORY_TIMEOUT,
    ) -> None:
        self.registry = registry
        self.advisory = advisory
        self.advisory_timeout = advisory_timeout
        self._executor = (
            ThreadPoolExecutor(max_workers=2, thread_name_prefix="advisory") if advisory else None
        )

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)

    # -- public API ----------------------------------------------------------

    def scan(self, ingredients: str | None, product_name: str | None = "", description: str | None = "") -> ScanVerdict:
        """Screen one product submission and return a verdict."""
        try:
            return self._scan(ingredients, product_name, description)
        except Exception as exc:
            logger.exception("Ingredient scan failed; allowing product pending manual review")
            return ScanVerdict(
                safe=True,
                severity="unknown",
                message="Safety check encountered an error, flagged for manual review",
                error=str(exc) or exc.__class__.__name__,
            )

    def deep_scan(self, product: dict[str, Any]) -> DeepScanReport:
        """Re-scan a stored product and turn every hit into an actionable issue."""
        verdict = self.scan(
            product.get("ingredients", ""),
            product.get("name", ""),
            product.get("description", ""),
        )
        report = DeepScanReport(
            product_id=str(product.get("id", "")),
            seller_id=str(product.get("seller_id", "")),
            safe=verdict.safe,
            overall_severity=verdict.severity,
            error=verdict.error,
        )
        for flag in verdict.blocking:
            report.issues.append(
                ScanIssue(
                    ingredient=flag.name,
                    severity=flag.severity.value,
                    reason=flag.reason,
                    recommendation=f"Remove or replace {flag.name} with a safer alternative",
                )
            )
        for flag in verdict.warnings:
            report.warnings.append(
                ScanIssue(
                    ingredient=flag.name,
                    severity=flag.severity.value,
                    reason=flag.reason,
                    recommendation=f"Disclose {flag.name} and respect concentration limits",
                    type="restricted_ingredient",
                )
            )

        if verdict.severity in _RECOMMENDATIONS:
            report.recommendations.append(_RECOMMENDATIONS[verdict.severity])
        elif verdict.warnings:
            report.recommendations.append(_WARNING_RECOMMENDATION)
        return report

    # -- internals -----------------------------------------------------------

    def _scan(self, ingredients: str | None, product_name: str | None, description: str | None) -> ScanVerdict:
        text = prepare_text(ingredients, product_name, description)
        if not text.scannable:
            return ScanVerdict(safe=True, message="No ingredients provided for scanning")

        pending = self._start_advisory(ingredients or "")
        router = match_registry(self.registry.snapshot(), text)
        advisory = self._finish_advisory(pending)
        merge_advisory(router, advisory)

        safe = not router.blocking
        if not safe:
            message = f"Found {len(router.blocking)} harmful ingredient(s)"
        elif router.warnings:
            message = f"Product approved with {len(router.warnings)} warning(s)"
        else:
            message = "All ingredients passed safety check"

        return ScanVerdict(
            safe=safe,
            blocking=router.blocking,
            warnings=router.warnings,
            severity=router.highest_severity,
            message=message,
            advisory_checked=advisory.checked,
        )

    def _start_advisory(self, ingredients: str) -> Future | None:
        if self.advisory is None or self._executor is None:
            return None
        try:
            return self._executor.submit(self.advisory.quick_check, ingredients)
        except RuntimeError as exc:
            logger.warning("Advisory check could not be scheduled: %s", exc)
            return None

    def _finish_advisory(self, pending: Future | None) -> AdvisoryResult:
        if pending is None:
            return AdvisoryResult()
        try:
            result = pending.result(timeout=self.advisory_timeout)
        except FutureTimeout:
            pending.cancel()
            logger.warning("Advisory check timed out after %.1fs", self.advisory_timeout)
            return AdvisoryResult()
        except Exception as exc:
            logger.warning("Advisory check unavailable: %s", exc)
            return AdvisoryResult()
        return result if isinstance(result, AdvisoryResult) else AdvisoryResult()
