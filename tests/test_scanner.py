"""Tests for registry matching and the ingredient scanner."""

import tempfile
import threading
from pathlib import Path

from glowguard.registry.local_registry import ToxicityRegistry
from glowguard.registry.models import Severity, ToxicSubstance
from glowguard.registry.seed import load_seed_file
from glowguard.scanner.matcher import match_registry, prepare_text
from glowguard.scanner.models import AdvisoryConcern, AdvisoryResult, MatchKind
from glowguard.scanner.scanner import IngredientScanner


SUBSTANCES = [
    ToxicSubstance("mercury", Severity.critical, ["mercuric chloride", "calomel"], "Neurotoxin"),
    ToxicSubstance("hydroquinone", Severity.critical, ["quinol", "hq"], "Banned skin lightener"),
    ToxicSubstance("dmdm hydantoin", Severity.high, ["glydant"], "Formaldehyde releaser"),
    ToxicSubstance("methylparaben", Severity.medium, ["methyl paraben"], "Possible endocrine disruptor"),
    ToxicSubstance("talc", Severity.low, [], "Possible asbestos contamination"),
]


def _registry(tmpdir: str, substances=SUBSTANCES) -> ToxicityRegistry:
    reg = ToxicityRegistry(Path(tmpdir) / "registry")
    reg.seed(list(substances))
    return reg


class FakeAdvisory:
    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result or AdvisoryResult(checked=True)
        self.error = error
        self.delay = delay
        self.calls = []
        self._release = threading.Event()

    def quick_check(self, ingredients):
        self.calls.append(ingredients)
        if self.delay:
            self._release.wait(self.delay)
        if self.error:
            raise self.error
        return self.result


# ── Pure matching ────────────────────────────────────────────────────


def test_match_registry_exact_and_alias():
    text = prepare_text("Aqua, Calomel, Mercury, Glydant")
    router = match_registry(SUBSTANCES, text)
    kinds = {f.name: f.match_kind for f in router.blocking}
    assert kinds["mercury"] == MatchKind.exact
    assert kinds["dmdm hydantoin"] == MatchKind.alias


def test_short_alias_does_not_match_obfuscated():
    # "hq" is only two letters: no deobfuscated match inside unrelated words
    text = prepare_text("Aqua, Shea Butter, Ch Quat")
    router = match_registry(SUBSTANCES, text)
    assert "hydroquinone" not in router


# ── Scanner ──────────────────────────────────────────────────────────


def test_verbatim_critical_name_blocks():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))
        verdict = scanner.scan("Water, Hydroquinone, Glycerin")

        assert verdict.safe is False
        assert [f.name for f in verdict.blocking] == ["hydroquinone"]
        assert verdict.blocking[0].severity == Severity.critical
        assert verdict.blocking[0].obfuscated is False
        assert verdict.severity == "critical"
        assert verdict.message == "Found 1 harmful ingredient(s)"


def test_obfuscated_name_is_escalated_and_marked():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))
        verdict = scanner.scan("Water, H-y-d-r-o-q-u-i-n-o-n-e, Glycerin")

        assert verdict.safe is False
        flag = verdict.blocking[0]
        assert flag.name == "hydroquinone"
        assert flag.obfuscated is True
        assert flag.match_kind == MatchKind.obfuscated
        assert flag.severity == Severity.critical
        assert flag.reason.startswith('Obfuscation detected: "hydroquinone"')


def test_obfuscated_low_severity_substance_blocks():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))

        plain = scanner.scan("Water, Talc, Mica")
        assert plain.safe is True
        assert [f.name for f in plain.warnings] == ["talc"]

        disguised = scanner.scan("Water, T.a.l.c, Mica")
        assert disguised.safe is False
        assert disguised.blocking[0].severity == Severity.critical


def test_medium_severity_is_a_warning():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))
        verdict = scanner.scan("Aqua, Methylparaben, Glycerin")

        assert verdict.safe is True
        assert verdict.blocking == []
        assert [f.name for f in verdict.warnings] == ["methylparaben"]
        assert verdict.severity == "none"
        assert verdict.message == "Product approved with 1 warning(s)"


def test_clean_product_passes():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))
        verdict = scanner.scan("Aqua, Glycerin, Aloe Juice", "Gentle Gel", "Soothing gel")
        assert verdict.safe is True
        assert verdict.message == "All ingredients passed safety check"


def test_name_and_description_are_scanned():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))
        verdict = scanner.scan("Aqua, Glycerin", "Calomel Cream", "")
        assert verdict.safe is False
        assert verdict.blocking[0].name == "mercury"


def test_short_text_is_not_scanned():
    with tempfile.TemporaryDirectory() as tmpdir:
        advisory = FakeAdvisory()
        scanner = IngredientScanner(_registry(tmpdir), advisory)
        verdict = scanner.scan(" , ", "", None)
        assert verdict.safe is True
        assert verdict.message == "No ingredients provided for scanning"
        assert advisory.calls == []
        scanner.close()


def test_duplicate_hits_are_reported_once():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))
        verdict = scanner.scan("Mercury, Calomel, Mercuric Chloride")
        assert [f.name for f in verdict.blocking] == ["mercury"]


def test_bundled_dataset_end_to_end():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir, load_seed_file()))
        verdict = scanner.scan("Aqua, Mercuric Chloride, Glycerin")

        assert verdict.safe is False
        assert [f.name for f in verdict.blocking] == ["mercury"]
        assert verdict.blocking[0].match_kind == MatchKind.alias
        assert verdict.severity == "critical"


# ── Advisory ─────────────────────────────────────────────────────────


def test_advisory_concerns_are_merged():
    with tempfile.TemporaryDirectory() as tmpdir:
        advisory = FakeAdvisory(
            AdvisoryResult(
                checked=True,
                concerns=[
                    AdvisoryConcern("Mercury"),  # already flagged by the registry
                    AdvisoryConcern("Lead Acetate", severity=""),
                    AdvisoryConcern("Fragrance Mix", severity="low", reason="Allergen"),
                ],
            )
        )
        scanner = IngredientScanner(_registry(tmpdir), advisory)
        verdict = scanner.scan("Mercury, Lead Acetate, Fragrance Mix")
        scanner.close()

        blocking = {f.name: f for f in verdict.blocking}
        assert set(blocking) == {"mercury", "lead acetate"}
        assert blocking["lead acetate"].severity == Severity.high
        assert blocking["lead acetate"].source == "ai"
        assert blocking["lead acetate"].reason == "Flagged by AI safety analysis"
        assert blocking["mercury"].source == "database"
        assert [f.name for f in verdict.warnings] == ["fragrance mix"]
        assert verdict.advisory_checked is True


def test_advisory_failure_is_ignored():
    with tempfile.TemporaryDirectory() as tmpdir:
        advisory = FakeAdvisory(error=RuntimeError("provider down"))
        scanner = IngredientScanner(_registry(tmpdir), advisory)
        verdict = scanner.scan("Aqua, Glycerin")
        scanner.close()

        assert verdict.safe is True
        assert verdict.error == ""
        assert verdict.advisory_checked is False


def test_advisory_timeout_is_no_concerns():
    with tempfile.TemporaryDirectory() as tmpdir:
        advisory = FakeAdvisory(
            AdvisoryResult(checked=True, concerns=[AdvisoryConcern("glycerin")]),
            delay=2.0,
        )
        scanner = IngredientScanner(_registry(tmpdir), advisory, advisory_timeout=0.05)
        verdict = scanner.scan("Aqua, Glycerin")
        advisory._release.set()
        scanner.close()

        assert verdict.safe is True
        assert verdict.blocking == []


def test_internal_error_fails_open():
    class BrokenRegistry:
        def snapshot(self):
            raise OSError("disk gone")

    scanner = IngredientScanner(BrokenRegistry())
    verdict = scanner.scan("Aqua, Mercury")

    assert verdict.safe is True
    assert verdict.severity == "unknown"
    assert verdict.error == "disk gone"
    assert verdict.needs_review is True
    assert "manual review" in verdict.message


def test_payload_shape():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))
        payload = scanner.scan("Aqua, Mercury, Methylparaben").to_payload()

        assert payload["safe"] is False
        assert payload["severity"] == "critical"
        assert payload["flaggedIngredients"][0]["name"] == "mercury"
        assert payload["flaggedIngredients"][0]["severity"] == "critical"
        assert payload["warnings"][0]["name"] == "methylparaben"
        assert "error" not in payload


# ── Deep scan ────────────────────────────────────────────────────────


def test_deep_scan_report():
    with tempfile.TemporaryDirectory() as tmpdir:
        scanner = IngredientScanner(_registry(tmpdir))
        report = scanner.deep_scan(
            {"id": "p1", "seller_id": "s1", "name": "Glow Cream", "ingredients": "Aqua, Calomel, Methylparaben"}
        )

        assert report.product_id == "p1"
        assert report.safe is False
        assert report.overall_severity == "critical"
        assert report.issues[0].ingredient == "mercury"
        assert report.issues[0].recommendation == "Remove or replace mercury with a safer alternative"
        assert report.warnings[0].ingredient == "methylparaben"
        assert report.recommendations[0].startswith("This product contains critically dangerous")
        assert report.scanned_at
