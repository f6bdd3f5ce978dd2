"""Append-only archive of rejected product submissions.

Records are JSONL lines in ``~/.glowguard/enforcement/rejected_products.jsonl``
and feed later model training. Nothing is ever updated in place.
"""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from glowguard.enforcement.models import RejectedProduct


class RejectedProductArchive:
    """JSONL-backed store for rejected products."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base = Path(base_dir) if base_dir else Path.home() / ".glowguard" / "enforcement"
        self._base.mkdir(parents=True, exist_ok=True)
        self._path = self._base / "rejected_products.jsonl"
        self._lock = threading.Lock()

    # -- helpers -------------------------------------------------------------

    def _read_file(self) -> list[RejectedProduct]:
        records: list[RejectedProduct] = []
        if not self._path.exists():
            return records
        for line in self._path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                records.append(RejectedProduct(**json.loads(line)))
            except (json.JSONDecodeError, TypeError):
                continue
        return records

    # -- public API ----------------------------------------------------------

    def record(
        self,
        seller_id: str,
        product_snapshot: Optional[dict[str, Any]],
        detected_substances: list[dict[str, Any]],
        rejection_reason: str = "",
    ) -> RejectedProduct:
        """Append a rejected product and return it."""
        names = ", ".join(s.get("name", "") for s in detected_substances)
        record = RejectedProduct(
            id=str(uuid.uuid4()),
            seller_id=seller_id,
            product_snapshot=dict(product_snapshot or {}),
            detected_substances=list(detected_substances),
            rejection_reason=rejection_reason or f"Contains harmful ingredients: {names}",
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        with self._lock, self._path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(asdict(record)) + "\n")
        return record

    def list_recent(self, limit: int = 100, seller_id: Optional[str] = None) -> list[RejectedProduct]:
        """Return archived products, newest first."""
        records = self._read_file()
        if seller_id:
            records = [r for r in records if r.seller_id == seller_id]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]
