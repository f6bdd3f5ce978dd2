"""Seed dataset loading and validation.

The bundled reference dataset lives in ``data/toxic_substances.yaml``.
Admins can also import their own YAML files with the same layout.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from glowguard.registry.models import SEVERITY_NAMES, ToxicSubstance


DEFAULT_SEED_PATH = Path(__file__).parent / "data" / "toxic_substances.yaml"

REQUIRED_FIELDS = {"name", "severity"}


def validate_seed_data(data: object) -> list[str]:
    """Check a parsed seed document for structural problems.

    Returns a list of issues found. Empty list means valid.
    """
    if not isinstance(data, dict) or "substances" not in data:
        return ["Missing top-level 'substances' key"]

    entries = data["substances"]
    if not isinstance(entries, list) or not entries:
        return ["No substances defined; a seed file must list at least one"]

    issues: list[str] = []
    seen: set[str] = set()
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            issues.append(f"Substance {i + 1} is not a mapping")
            continue
        for field_name in sorted(REQUIRED_FIELDS):
            if not entry.get(field_name):
                issues.append(f"Substance {i + 1} missing required field: {field_name}")
        severity = str(entry.get("severity", "")).lower()
        if severity and severity not in SEVERITY_NAMES:
            issues.append(
                f"Substance {i + 1} invalid severity '{severity}'. Must be one of: {SEVERITY_NAMES}"
            )
        aliases = entry.get("aliases", [])
        if aliases is not None and not isinstance(aliases, list):
            issues.append(f"Substance {i + 1} 'aliases' must be a list")
        name = str(entry.get("name", "")).strip().lower()
        if name:
            if name in seen:
                issues.append(f"Duplicate substance name: {name}")
            seen.add(name)

    return issues


def parse_seed_data(data: dict) -> list[ToxicSubstance]:
    """Convert a validated seed document into substances."""
    return [
        ToxicSubstance(
            name=str(entry["name"]),
            severity=str(entry["severity"]),
            aliases=list(entry.get("aliases") or []),
            reason=str(entry.get("reason", "")),
            source=str(entry.get("source", "manual")),
        )
        for entry in data["substances"]
    ]


def load_seed_file(path: str | Path | None = None) -> list[ToxicSubstance]:
    """Load and validate a seed YAML file (the bundled dataset by default).

    Raises ``ValueError`` listing every issue when the file is invalid.
    """
    seed_path = Path(path) if path else DEFAULT_SEED_PATH
    if not seed_path.exists():
        raise ValueError(f"Seed file not found: {seed_path}")

    try:
        with open(seed_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML: {e}") from e

    issues = validate_seed_data(data)
    if issues:
        raise ValueError("; ".join(issues))
    return parse_seed_data(data)
