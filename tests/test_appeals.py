"""Tests for the appeal workflow."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from glowguard.enforcement.appeals import AppealWorkflow
from glowguard.enforcement.models import AccountStatus, AppealStatus, PenaltyAction
from glowguard.enforcement.penalty import PenaltyEngine
from glowguard.enforcement.store import EnforcementStore
from glowguard.notifications.center import NotificationCenter
from glowguard.registry.models import Severity
from glowguard.scanner.models import Flag

FLAGS = [Flag("hydroquinone", Severity.critical, "Banned skin lightener")]
START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self):
        self.now = START

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def _setup(tmpdir: str):
    clock = FakeClock()
    base = Path(tmpdir)
    store = EnforcementStore(base / "enforcement")
    notifications = NotificationCenter(base / "notifications")
    engine = PenaltyEngine(store, notifications=notifications, clock=clock)
    workflow = AppealWorkflow(store, engine, notifications=notifications)
    engine.register_seller("s1", "seller@example.com")
    engine.register_seller("s2", "other@example.com")
    return clock, engine, workflow


def _violate(engine, n=1, seller_id="s1"):
    return [engine.apply_penalty(seller_id, f"p{i}", f"Product {i}", FLAGS).violation for i in range(n)]


def test_cooldown_boundary():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        (violation,) = _violate(engine)

        clock.advance(hours=23, minutes=59)
        early = workflow.submit_appeal("s1", violation.id, "Supplier mislabeled the batch")
        assert early.success is False
        assert early.code == "COOLDOWN_ACTIVE"
        assert early.remaining_hours == 1
        assert early.cooldown_ends_at == (START + timedelta(hours=24)).isoformat()
        assert "Please wait 1 hour(s)" in early.message

        clock.advance(minutes=1)
        ok = workflow.submit_appeal("s1", violation.id, "Supplier mislabeled the batch")
        assert ok.success is True
        assert ok.appeal_id
        assert ok.message.startswith("Appeal submitted successfully")


def test_remaining_hours_round_up():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        (violation,) = _violate(engine)

        clock.advance(hours=2, minutes=30)
        result = workflow.submit_appeal("s1", violation.id, "reason")
        assert result.remaining_hours == 22


def test_only_one_appeal_per_violation():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        (violation,) = _violate(engine)
        clock.advance(hours=24)

        assert workflow.submit_appeal("s1", violation.id, "first").success
        second = workflow.submit_appeal("s1", violation.id, "second")
        assert second.success is False
        assert second.code == "ALREADY_APPEALED"


def test_cannot_appeal_someone_elses_violation():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        (violation,) = _violate(engine)
        clock.advance(hours=24)

        assert workflow.submit_appeal("s2", violation.id, "mine?").code == "NOT_FOUND"
        assert workflow.submit_appeal("s1", "missing", "where?").code == "NOT_FOUND"


def test_empty_reason_is_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        (violation,) = _violate(engine)
        clock.advance(hours=24)

        assert workflow.submit_appeal("s1", violation.id, "   ").code == "INVALID_REASON"


def test_approval_unlocks_with_probation():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        violations = _violate(engine, 3)
        assert engine.get_account_status("s1").account_status == AccountStatus.LOCKED

        clock.advance(hours=24)
        submitted = workflow.submit_appeal("s1", violations[2].id, "Lab report attached")
        review = workflow.review_appeal(submitted.appeal_id, "admin1", "approved", "Report checks out")

        assert review.success is True
        assert review.account_unlocked is True
        assert review.appeal.status == AppealStatus.approved
        assert review.appeal.reviewed_by == "admin1"
        assert review.appeal.admin_notes == "Report checks out"
        assert review.appeal.reviewed_at == clock.now.isoformat()

        seller = engine.get_account_status("s1")
        assert seller.account_status == AccountStatus.ACTIVE
        assert seller.violation_count == 2
        assert seller.is_under_probation is True
        assert seller.probation_started_at == clock.now.isoformat()

        # the next violation is terminal
        assert engine.apply_penalty("s1", "p9", "Cream", FLAGS).action == PenaltyAction.ban

        notes = engine.notifications.list_for_user("s1")
        approved = [n for n in notes if n.title == "Appeal Approved"]
        assert "Any further violations will result in permanent ban" in approved[0].body


def test_approval_without_lock_only_decrements():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        (violation,) = _violate(engine)
        clock.advance(hours=24)
        submitted = workflow.submit_appeal("s1", violation.id, "reason")

        review = workflow.review_appeal(submitted.appeal_id, "admin1", "approved")
        assert review.account_unlocked is False
        seller = engine.get_account_status("s1")
        assert seller.violation_count == 0
        assert seller.is_under_probation is False


def test_rejection_leaves_account_untouched():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        violations = _violate(engine, 3)
        clock.advance(hours=24)
        submitted = workflow.submit_appeal("s1", violations[0].id, "reason")

        review = workflow.review_appeal(submitted.appeal_id, "admin1", "REJECTED")
        assert review.success is True
        assert review.appeal.status == AppealStatus.rejected
        seller = engine.get_account_status("s1")
        assert seller.account_status == AccountStatus.LOCKED
        assert seller.violation_count == 3


def test_review_only_once():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        (violation,) = _violate(engine)
        clock.advance(hours=24)
        submitted = workflow.submit_appeal("s1", violation.id, "reason")

        assert workflow.review_appeal(submitted.appeal_id, "admin1", "rejected").success
        again = workflow.review_appeal(submitted.appeal_id, "admin2", "approved")
        assert again.success is False
        assert again.code == "ALREADY_REVIEWED"
        assert engine.get_account_status("s1").violation_count == 1


def test_review_validation():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        assert workflow.review_appeal("missing", "admin1", "approved").code == "NOT_FOUND"
        assert workflow.review_appeal("missing", "admin1", "maybe").code == "INVALID_DECISION"
        assert workflow.review_appeal("missing", "admin1", "pending").code == "INVALID_DECISION"


def test_banned_seller_cannot_appeal():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        _violate(engine, 3)
        engine.unlock_account("s1", "admin1")
        (ban,) = _violate(engine)
        clock.advance(hours=24)

        result = workflow.submit_appeal("s1", ban.id, "please")
        assert result.success is False
        assert result.code == "ACCOUNT_BANNED"


def test_review_for_banned_seller_records_decision_only():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        violations = _violate(engine, 3)
        clock.advance(hours=25)
        submitted = workflow.submit_appeal("s1", violations[0].id, "reason")
        engine.unlock_account("s1", "admin1")
        _violate(engine)

        review = workflow.review_appeal(submitted.appeal_id, "admin1", "approved")
        assert review.success is True
        assert review.account_unlocked is False
        seller = engine.get_account_status("s1")
        assert seller.account_status == AccountStatus.BANNED
        assert seller.violation_count == 4


def test_listing_filters():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        first, second = _violate(engine, 2)
        clock.advance(hours=24)
        a1 = workflow.submit_appeal("s1", first.id, "one").appeal_id

        assert [a.id for a in workflow.list_appeals()] == [a1]
        assert [v.violation.id for v in workflow.list_violations("pending")] == [first.id]
        assert [v.violation.id for v in workflow.list_violations("no_appeal")] == [second.id]

        workflow.review_appeal(a1, "admin1", "rejected")
        assert workflow.list_appeals() == []
        assert [a.id for a in workflow.list_appeals("rejected")] == [a1]
        assert [v.violation.id for v in workflow.list_violations("rejected")] == [first.id]
        assert len(workflow.list_violations()) == 2

        history = engine.get_violation_history("s1")
        assert history[1].appeal_status == AppealStatus.rejected
        assert history[0].appeal_status is None


def test_unreadable_state_fails_appeal_paths():
    with tempfile.TemporaryDirectory() as tmpdir:
        clock, engine, workflow = _setup(tmpdir)
        violation = _violate(engine)[0]
        clock.advance(hours=24)
        submitted = workflow.submit_appeal("s1", violation.id, "Lab report attached")

        path = engine.store.path
        path.write_text("{\"sellers\": ", encoding="utf-8")

        submit = workflow.submit_appeal("s1", violation.id, "again")
        assert submit.success is False
        assert submit.code == "PERSISTENCE_ERROR"

        review = workflow.review_appeal(submitted.appeal_id, "admin1", "approved")
        assert review.success is False
        assert review.code == "PERSISTENCE_ERROR"
        assert path.read_text(encoding="utf-8") == "{\"sellers\": "
