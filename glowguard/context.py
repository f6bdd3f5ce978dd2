"""Wires the GlowGuard services together from one :class:`Settings`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from glowguard.config import Settings
from glowguard.enforcement.appeals import AppealWorkflow
from glowguard.enforcement.archive import RejectedProductArchive
from glowguard.enforcement.penalty import Clock, PenaltyEngine, utcnow
from glowguard.enforcement.store import EnforcementStore
from glowguard.llm.advisory import LLMAdvisoryChecker
from glowguard.llm.client import LLMClient
from glowguard.notifications.center import NotificationCenter
from glowguard.registry.local_registry import ToxicityRegistry
from glowguard.scanner.scanner import AdvisoryChecker, IngredientScanner
from glowguard.security.audit_log import AuditLogger


@dataclass
class GlowGuardContext:
    settings: Settings
    registry: ToxicityRegistry
    scanner: IngredientScanner
    store: EnforcementStore
    archive: RejectedProductArchive
    notifications: NotificationCenter
    audit: AuditLogger
    penalties: PenaltyEngine
    appeals: AppealWorkflow

    def close(self) -> None:
        self.scanner.close()


def create_context(
    settings: Optional[Settings] = None,
    advisory: Optional[AdvisoryChecker] = None,
    use_advisory: bool = True,
    clock: Clock = utcnow,
) -> GlowGuardContext:
    """Build every service from *settings* (environment when omitted).

    Without an explicit *advisory* checker an Anthropic-backed one is
    created, unless *use_advisory* is False.
    """
    settings = settings or Settings.from_env()

    if advisory is None and use_advisory:
        client = LLMClient(
            model=settings.advisory_model,
            api_key=settings.anthropic_api_key or None,
            timeout=settings.advisory_timeout,
        )
        advisory = LLMAdvisoryChecker(client)

    registry = ToxicityRegistry(settings.registry_dir)
    scanner = IngredientScanner(registry, advisory, advisory_timeout=settings.advisory_timeout)
    store = EnforcementStore(settings.enforcement_dir)
    archive = RejectedProductArchive(settings.enforcement_dir)
    notifications = NotificationCenter(
        settings.notifications_dir,
        webhook_url=settings.webhook_url,
        webhook_secret=settings.webhook_secret,
    )
    audit = AuditLogger(settings.audit_dir)
    penalties = PenaltyEngine(
        store,
        archive=archive,
        notifications=notifications,
        audit=audit,
        strike_limit=settings.strike_limit,
        blacklist_salt=settings.blacklist_salt,
        clock=clock,
    )
    appeals = AppealWorkflow(
        store,
        penalties,
        notifications=notifications,
        audit=audit,
        cooldown_hours=settings.appeal_cooldown_hours,
    )
    return GlowGuardContext(
        settings=settings,
        registry=registry,
        scanner=scanner,
        store=store,
        archive=archive,
        notifications=notifications,
        audit=audit,
        penalties=penalties,
        appeals=appeals,
    )
