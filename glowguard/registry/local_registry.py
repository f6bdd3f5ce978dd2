"""Local file-based toxicity registry.

Stores the substance catalog as a single JSON index in a local directory.
Every write bumps the index version; readers get a cached, immutable
snapshot that is only reloaded when the version on disk changes.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from glowguard.registry.models import (
    AddResult,
    RegistryStats,
    SeedResult,
    Severity,
    ToxicSubstance,
)

logger = logging.getLogger(__name__)


class ToxicityRegistry:
    """Versioned read-through store for banned/restricted substances."""

    INDEX_FILE = "index.json"

    def __init__(self, registry_dir: str | Path):
        self.registry_dir = Path(registry_dir)
        self.registry_dir.mkdir(parents=True, exist_ok=True)
        self.index_path = self.registry_dir / self.INDEX_FILE
        self._lock = threading.Lock()
        self._snapshot: tuple[ToxicSubstance, ...] = ()
        self._snapshot_key: tuple[int, int] | None = None
        self._snapshot_version = 0

    # -- reads ---------------------------------------------------------------

    @property
    def version(self) -> int:
        self.snapshot()
        return self._snapshot_version

    def snapshot(self) -> tuple[ToxicSubstance, ...]:
        """Return every substance, reusing the cached copy when still current.

        The cache is keyed on the index file's mtime and size, so another
        process updating the registry is picked up on the next read.
        """
        key = self._file_key()
        if key != self._snapshot_key:
            index = self._load_index()
            self._snapshot = tuple(
                _dict_to_substance(d) for d in index["substances"].values()
            )
            self._snapshot_version = index["version"]
            self._snapshot_key = key
        return self._snapshot

    def get(self, name: str) -> ToxicSubstance | None:
        """Look up a substance by canonical name (case-insensitive)."""
        data = self._load_index()["substances"].get(name.strip().lower())
        return _dict_to_substance(data) if data else None

    def list_all(self) -> list[ToxicSubstance]:
        """All substances, most severe first, then by name."""
        return sorted(self.snapshot(), key=lambda s: (-s.severity.rank, s.name))

    def stats(self, available_to_seed: int = 0) -> RegistryStats:
        by_severity = {s.value: 0 for s in Severity}
        substances = self.snapshot()
        for substance in substances:
            by_severity[substance.severity.value] += 1
        return RegistryStats(
            total_in_registry=len(substances),
            available_to_seed=available_to_seed,
            by_severity=by_severity,
        )

    # -- writes --------------------------------------------------------------

    def add_substance(self, substance: ToxicSubstance) -> AddResult:
        """Add one substance. Names are unique case-insensitively."""
        if not substance.name:
            return AddResult(success=False, code="INVALID_SUBSTANCE", message="Substance name is required")

        with self._lock:
            index = self._load_index()
            if substance.name in index["substances"]:
                return AddResult(
                    success=False,
                    code="DUPLICATE_SUBSTANCE",
                    message=f"Substance '{substance.name}' already exists",
                )
            index["substances"][substance.name] = _substance_to_dict(substance)
            self._save_index(index)

        logger.info("Added toxic substance %s (%s)", substance.name, substance.severity.value)
        return AddResult(success=True, substance=substance, message=f"Added '{substance.name}'")

    def seed(self, substances: list[ToxicSubstance]) -> SeedResult:
        """Import a substance list, skipping names already present.

        Seeding the same list twice adds nothing the second time.
        """
        result = SeedResult(total=len(substances))
        with self._lock:
            index = self._load_index()
            for substance in substances:
                if not substance.name:
                    result.errors.append("Skipped substance with empty name")
                    continue
                if substance.name in index["substances"]:
                    result.skipped += 1
                    continue
                index["substances"][substance.name] = _substance_to_dict(substance)
                result.added += 1
            if result.added:
                self._save_index(index)

        logger.info("Seeding complete: %d added, %d already existed", result.added, result.skipped)
        return result

    # -- persistence ---------------------------------------------------------

    def _file_key(self) -> tuple[int, int]:
        try:
            st = self.index_path.stat()
        except FileNotFoundError:
            return (0, 0)
        return (st.st_mtime_ns, st.st_size)

    def _load_index(self) -> dict:
        if not self.index_path.exists():
            return {"version": 0, "substances": {}}
        with open(self.index_path, encoding="utf-8") as f:
            data = json.load(f)
        data.setdefault("version", 0)
        data.setdefault("substances", {})
        return data

    def _save_index(self, index: dict) -> None:
        index["version"] = index.get("version", 0) + 1
        tmp_path = self.index_path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(index, f, indent=2)
        os.replace(tmp_path, self.index_path)
        self._snapshot_key = None


def _substance_to_dict(substance: ToxicSubstance) -> dict:
    return {
        "name": substance.name,
        "aliases": substance.aliases,
        "severity": substance.severity.value,
        "reason": substance.reason,
        "source": substance.source,
        "created_at": substance.created_at,
    }


def _dict_to_substance(data: dict) -> ToxicSubstance:
    return ToxicSubstance(
        name=data["name"],
        aliases=data.get("aliases", []),
        severity=data.get("severity", "medium"),
        reason=data.get("reason", ""),
        source=data.get("source", "manual"),
        created_at=data.get("created_at", ""),
    )
