"""Tests for the penalty decision and engine."""

import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

from glowguard.enforcement.archive import RejectedProductArchive
from glowguard.enforcement.decision import decide_action
from glowguard.enforcement.models import AccountStatus, PenaltyAction
from glowguard.enforcement.penalty import PenaltyEngine, hash_email
from glowguard.enforcement.store import EnforcementStore
from glowguard.notifications.center import NotificationCenter
from glowguard.registry.models import Severity
from glowguard.scanner.models import Flag
from glowguard.security.audit_log import AuditLogger

FLAGS = [Flag("mercury", Severity.critical, "Neurotoxin")]


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def _engine(tmpdir: str, **kwargs) -> PenaltyEngine:
    base = Path(tmpdir)
    engine = PenaltyEngine(
        EnforcementStore(base / "enforcement"),
        archive=RejectedProductArchive(base / "enforcement"),
        notifications=NotificationCenter(base / "notifications"),
        audit=AuditLogger(base / "audit"),
        clock=kwargs.pop("clock", FakeClock()),
        **kwargs,
    )
    engine.register_seller("s1", "Seller@Example.com", "Sam Seller")
    return engine


def _penalize(engine: PenaltyEngine, n: int = 1, seller_id: str = "s1"):
    return [
        engine.apply_penalty(seller_id, f"p{i}", f"Product {i}", FLAGS)
        for i in range(n)
    ]


# ── Decision ─────────────────────────────────────────────────────────


def test_decide_action_ladder():
    assert decide_action(AccountStatus.ACTIVE, False, 1) == PenaltyAction.warning
    assert decide_action(AccountStatus.ACTIVE, False, 2) == PenaltyAction.warning
    assert decide_action(AccountStatus.ACTIVE, False, 3) == PenaltyAction.lock
    assert decide_action(AccountStatus.LOCKED, False, 4) == PenaltyAction.lock


def test_decide_action_probation_and_banned():
    assert decide_action(AccountStatus.ACTIVE, True, 1) == PenaltyAction.ban
    assert decide_action(AccountStatus.ACTIVE, True, 9) == PenaltyAction.ban
    assert decide_action(AccountStatus.BANNED, False, 1) is None
    assert decide_action("BANNED", True, 1) is None


def test_decide_action_custom_strike_limit():
    assert decide_action(AccountStatus.ACTIVE, False, 3, strike_limit=5) == PenaltyAction.warning
    assert decide_action(AccountStatus.ACTIVE, False, 5, strike_limit=5) == PenaltyAction.lock


# ── Engine ───────────────────────────────────────────────────────────


def test_warning_warning_lock():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        first, second, third = _penalize(engine, 3)

        assert first.action == PenaltyAction.warning
        assert "2 warning(s) remaining" in first.message
        assert second.action == PenaltyAction.warning
        assert "1 warning(s) remaining" in second.message
        assert third.action == PenaltyAction.lock
        assert "locked due to 3 safety violations" in third.message

        seller = engine.get_account_status("s1")
        assert seller.account_status == AccountStatus.LOCKED
        assert seller.violation_count == 3
        assert seller.is_under_probation is False
        assert [v.violation.violation_number for v in engine.get_violation_history("s1")] == [3, 2, 1]


def test_violation_snapshot_is_recorded():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        result = engine.apply_penalty("s1", "p1", "Glow Cream", FLAGS)

        violation = engine.get_violation_history("s1")[0].violation
        assert violation.id == result.violation.id
        assert violation.product_id == "p1"
        assert violation.product_name == "Glow Cream"
        assert violation.violation_type == "toxic_ingredient"
        assert violation.penalty_applied == PenaltyAction.warning
        assert violation.detected_substances[0]["name"] == "mercury"
        assert violation.detected_substances[0]["severity"] == "critical"


def test_probation_violation_bans_and_blacklists():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        _penalize(engine, 3)
        unlock = engine.unlock_account("s1", "admin1")
        assert unlock.success
        assert unlock.seller.is_under_probation is True

        result = engine.apply_penalty("s1", "p9", "Another Cream", FLAGS)

        assert result.action == PenaltyAction.ban
        assert "permanently banned" in result.message
        seller = engine.get_account_status("s1")
        assert seller.account_status == AccountStatus.BANNED
        assert seller.is_under_probation is False
        assert seller.violation_count == 4

        check = engine.is_blacklisted("  SELLER@example.com ")
        assert check.blacklisted is True
        assert check.reason == "Repeated safety violations during probation"
        entry = engine.list_blacklist()[0]
        assert entry.email == "seller@example.com"
        assert entry.email_hash == hash_email("seller@example.com")
        assert entry.original_user_id == "s1"


def test_probation_short_circuits_below_strike_limit():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        engine.unlock_account("s1", "admin1")  # probation with zero strikes
        result = engine.apply_penalty("s1", "p1", "Cream", FLAGS)
        assert result.action == PenaltyAction.ban


def test_banned_seller_is_terminal():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        _penalize(engine, 3)
        engine.unlock_account("s1", "admin1")
        _penalize(engine, 1)

        result = engine.apply_penalty("s1", "p10", "Cream", FLAGS)
        assert result.success is False
        assert result.code == "ACCOUNT_BANNED"
        assert len(engine.get_violation_history("s1")) == 4

        unlock = engine.unlock_account("s1", "admin1")
        assert unlock.success is False
        assert unlock.code == "ACCOUNT_BANNED"
        assert engine.get_account_status("s1").account_status == AccountStatus.BANNED


def test_unknown_seller():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        assert engine.apply_penalty("ghost", None, "Cream", FLAGS).code == "SELLER_NOT_FOUND"
        assert engine.unlock_account("ghost", "admin1").code == "SELLER_NOT_FOUND"


def test_persistence_failure_commits_nothing(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)

        def broken_commit(document):
            raise OSError("disk full")

        monkeypatch.setattr(engine.store, "_commit", broken_commit)
        result = engine.apply_penalty("s1", "p1", "Cream", FLAGS)
        monkeypatch.undo()

        assert result.success is False
        assert result.code == "PERSISTENCE_ERROR"
        assert engine.get_account_status("s1").violation_count == 0
        assert engine.get_violation_history("s1") == []
        assert engine.archive.list_recent() == []

        # safe to retry
        retry = engine.apply_penalty("s1", "p1", "Cream", FLAGS)
        assert retry.success is True
        assert retry.violation_count == 1


def test_unreadable_state_is_never_overwritten():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        _penalize(engine, 3)
        engine.unlock_account("s1", "admin1")
        assert engine.apply_penalty("s1", "p9", "Cream", FLAGS).action == PenaltyAction.ban

        path = engine.store.path
        damaged = path.read_bytes()[:-5]
        path.write_bytes(damaged)

        register = engine.register_seller("s2", "other@example.com")
        assert register.success is False
        assert register.code == "PERSISTENCE_ERROR"
        assert engine.unlock_account("s1", "admin1").code == "PERSISTENCE_ERROR"
        assert engine.apply_penalty("s1", "p10", "Cream", FLAGS).code == "PERSISTENCE_ERROR"
        assert path.read_bytes() == damaged

        # queries stay tolerant
        assert engine.get_account_status("s1") is None


def test_concurrent_violations_do_not_double_count():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir, strike_limit=100)
        results = []
        lock = threading.Lock()

        def worker(i):
            r = engine.apply_penalty("s1", f"p{i}", f"Product {i}", FLAGS)
            with lock:
                results.append(r)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(r.success for r in results)
        assert sorted(r.violation_count for r in results) == list(range(1, 11))
        assert engine.get_account_status("s1").violation_count == 10
        assert len(engine.get_violation_history("s1")) == 10


def test_rejected_product_is_archived_and_seller_notified():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        engine.apply_penalty(
            "s1", "p1", "Glow Cream", FLAGS, product_snapshot={"ingredients": "Aqua, Mercury"}
        )

        archived = engine.archive.list_recent()
        assert len(archived) == 1
        assert archived[0].seller_id == "s1"
        assert archived[0].rejection_phase == "immediate"
        assert archived[0].product_snapshot["ingredients"] == "Aqua, Mercury"
        assert archived[0].product_snapshot["name"] == "Glow Cream"
        assert archived[0].rejection_reason == "Contains harmful ingredients: mercury"

        notes = engine.notifications.list_for_user("s1")
        assert notes[0].title == "Product Rejected - Safety Violation"
        assert "mercury" in notes[0].body
        assert "2 warning(s) remaining" in notes[0].body

        events = engine.audit.get_events(action="penalty.warning")
        assert events[0].resource_id == "s1"


def test_archive_failure_does_not_undo_penalty(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)

        def broken_record(*args, **kwargs):
            raise OSError("archive offline")

        monkeypatch.setattr(engine.archive, "record", broken_record)
        result = engine.apply_penalty("s1", "p1", "Cream", FLAGS)

        assert result.success is True
        assert engine.get_account_status("s1").violation_count == 1


def test_register_blacklisted_email_is_refused():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        _penalize(engine, 3)
        engine.unlock_account("s1", "admin1")
        _penalize(engine, 1)

        result = engine.register_seller("s2", "seller@example.com")
        assert result.success is False
        assert result.code == "EMAIL_BLACKLISTED"


def test_register_duplicate_seller():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        assert engine.register_seller("s1", "other@example.com").code == "SELLER_EXISTS"
        assert engine.register_seller("s2", "SELLER@example.com").code == "SELLER_EXISTS"


def test_salted_email_hash():
    assert hash_email(" A@B.com ") == hash_email("a@b.com")
    assert hash_email("a@b.com", salt="pepper") != hash_email("a@b.com")


def test_problem_sellers():
    with tempfile.TemporaryDirectory() as tmpdir:
        engine = _engine(tmpdir)
        engine.register_seller("s2", "clean@example.com")
        engine.register_seller("s3", "warned@example.com")
        _penalize(engine, 3)
        _penalize(engine, 1, seller_id="s3")

        assert [s.id for s in engine.list_problem_sellers()] == ["s1", "s3"]
