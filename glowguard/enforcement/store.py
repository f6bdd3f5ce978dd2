"""Transactional JSON storage for enforcement state.

Sellers, violations, appeals and the blacklist live in one document,
``~/.glowguard/enforcement/state.json``. Every mutation goes through
:meth:`EnforcementStore.transaction`, which holds a process-wide lock for
the whole load, mutate and save cycle and commits by atomic file replace.
If the block raises, nothing is written.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import asdict, fields
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Optional

from glowguard.enforcement.models import (
    Appeal,
    BlacklistEntry,
    SellerAccount,
    Violation,
)

logger = logging.getLogger(__name__)

# Stores pointing at the same file share one lock.
_LOCKS: dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


class StateUnreadableError(Exception):
    """The state file exists but cannot be parsed or read."""


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.RLock()
        return lock


def _plain(obj: Any) -> dict[str, Any]:
    """Dataclass to a JSON-ready dict with enum members flattened."""
    data = asdict(obj)
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in data.items()}


def _build(cls: type, data: dict[str, Any]) -> Any:
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


def _empty_document() -> dict[str, Any]:
    return {"sellers": {}, "violations": [], "appeals": [], "blacklist": []}


class EnforcementState:
    """Typed view over the enforcement document.

    Returned objects are copies; call the matching ``put_*``/``add_*``
    method to write a change back.
    """

    def __init__(self, document: dict[str, Any]) -> None:
        self._doc = document
        for key, default in _empty_document().items():
            self._doc.setdefault(key, default)

    @property
    def document(self) -> dict[str, Any]:
        return self._doc

    # -- sellers -------------------------------------------------------------

    def get_seller(self, seller_id: str) -> Optional[SellerAccount]:
        data = self._doc["sellers"].get(seller_id)
        return _build(SellerAccount, data) if data else None

    def put_seller(self, seller: SellerAccount) -> None:
        self._doc["sellers"][seller.id] = _plain(seller)

    def list_sellers(self) -> list[SellerAccount]:
        return [_build(SellerAccount, d) for d in self._doc["sellers"].values()]

    def find_seller_by_email(self, email: str) -> Optional[SellerAccount]:
        email = email.strip().lower()
        for d in self._doc["sellers"].values():
            if d.get("email", "").lower() == email:
                return _build(SellerAccount, d)
        return None

    # -- violations ----------------------------------------------------------

    def add_violation(self, violation: Violation) -> None:
        self._doc["violations"].append(_plain(violation))

    def get_violation(self, violation_id: str) -> Optional[Violation]:
        for d in self._doc["violations"]:
            if d["id"] == violation_id:
                return _build(Violation, d)
        return None

    def list_violations(self, seller_id: Optional[str] = None) -> list[Violation]:
        items = [_build(Violation, d) for d in self._doc["violations"]]
        if seller_id is not None:
            items = [v for v in items if v.seller_id == seller_id]
        return items

    # -- appeals -------------------------------------------------------------

    def add_appeal(self, appeal: Appeal) -> None:
        self._doc["appeals"].append(_plain(appeal))

    def put_appeal(self, appeal: Appeal) -> None:
        for i, d in enumerate(self._doc["appeals"]):
            if d["id"] == appeal.id:
                self._doc["appeals"][i] = _plain(appeal)
                return
        self.add_appeal(appeal)

    def get_appeal(self, appeal_id: str) -> Optional[Appeal]:
        for d in self._doc["appeals"]:
            if d["id"] == appeal_id:
                return _build(Appeal, d)
        return None

    def appeal_for_violation(self, violation_id: str) -> Optional[Appeal]:
        for d in self._doc["appeals"]:
            if d["violation_id"] == violation_id:
                return _build(Appeal, d)
        return None

    def list_appeals(self) -> list[Appeal]:
        return [_build(Appeal, d) for d in self._doc["appeals"]]

    # -- blacklist -----------------------------------------------------------

    def add_blacklist_entry(self, entry: BlacklistEntry) -> None:
        self._doc["blacklist"].append(_plain(entry))

    def find_blacklist_entry(self, email: str, email_hash: str) -> Optional[BlacklistEntry]:
        for d in self._doc["blacklist"]:
            if d.get("email") == email or d.get("email_hash") == email_hash:
                return _build(BlacklistEntry, d)
        return None

    def list_blacklist(self) -> list[BlacklistEntry]:
        return [_build(BlacklistEntry, d) for d in self._doc["blacklist"]]


class EnforcementStore:
    """File-backed owner of the enforcement document."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base = Path(base_dir) if base_dir else Path.home() / ".glowguard" / "enforcement"
        self._base.mkdir(parents=True, exist_ok=True)
        self._state_path = self._base / "state.json"
        self._lock = _lock_for(self._state_path)

    @property
    def path(self) -> Path:
        return self._state_path

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self, strict: bool = False) -> dict[str, Any]:
        """Read the document from disk.

        An unreadable file reads as empty unless *strict* is set, in which
        case :class:`StateUnreadableError` is raised.
        """
        if not self._state_path.exists():
            return _empty_document()
        try:
            data = json.loads(self._state_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            if strict:
                raise StateUnreadableError(f"Enforcement state at {self._state_path} is unreadable") from exc
            logger.warning("Enforcement state at %s is unreadable; reading as empty", self._state_path)
            return _empty_document()
        if not isinstance(data, dict):
            if strict:
                raise StateUnreadableError(f"Enforcement state at {self._state_path} is not a JSON object")
            return _empty_document()
        return data

    def _commit(self, document: dict[str, Any]) -> None:
        tmp = self._state_path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
        os.replace(tmp, self._state_path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[EnforcementState]:
        """Serialised read-modify-write over the whole document.

        Exceptions raised inside the block propagate and leave the file
        untouched. An existing but unreadable file raises
        :class:`StateUnreadableError` before the block runs.
        """
        with self._lock:
            state = EnforcementState(self._load(strict=True))
            yield state
            self._commit(state.document)

    def read(self) -> EnforcementState:
        """A consistent snapshot for queries. Changes to it are not saved."""
        with self._lock:
            return EnforcementState(self._load())
