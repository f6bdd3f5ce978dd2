"""Runtime settings resolved from environment variables.

Every store in GlowGuard is file-based and lives below a single home
directory (``~/.glowguard`` unless ``GLOWGUARD_HOME`` says otherwise).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_HOME = Path.home() / ".glowguard"
DEFAULT_ADVISORY_MODEL = "claude-3-5-haiku-20241022"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@dataclass
class Settings:
    """Enforcement policy knobs and storage locations."""

    home: Path = field(default_factory=lambda: DEFAULT_HOME)
    strike_limit: int = 3
    appeal_cooldown_hours: int = 24
    advisory_timeout: float = 5.0
    advisory_model: str = DEFAULT_ADVISORY_MODEL
    blacklist_salt: str = ""
    webhook_url: str = ""
    webhook_secret: str = ""
    anthropic_api_key: str = ""

    def __post_init__(self) -> None:
        self.home = Path(self.home)

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``GLOWGUARD_*`` environment variables."""
        home = os.environ.get("GLOWGUARD_HOME", "")
        return cls(
            home=Path(home).expanduser() if home else DEFAULT_HOME,
            strike_limit=_env_int("GLOWGUARD_STRIKE_LIMIT", 3),
            appeal_cooldown_hours=_env_int("GLOWGUARD_APPEAL_COOLDOWN_HOURS", 24),
            advisory_timeout=_env_float("GLOWGUARD_ADVISORY_TIMEOUT", 5.0),
            advisory_model=os.environ.get("GLOWGUARD_ADVISORY_MODEL", DEFAULT_ADVISORY_MODEL),
            blacklist_salt=os.environ.get("GLOWGUARD_BLACKLIST_SALT", ""),
            webhook_url=os.environ.get("GLOWGUARD_WEBHOOK_URL", ""),
            webhook_secret=os.environ.get("GLOWGUARD_WEBHOOK_SECRET", ""),
            anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        )

    # -- storage locations ---------------------------------------------------

    @property
    def registry_dir(self) -> Path:
        return self.home / "registry"

    @property
    def enforcement_dir(self) -> Path:
        return self.home / "enforcement"

    @property
    def notifications_dir(self) -> Path:
        return self.home / "notifications"

    @property
    def audit_dir(self) -> Path:
        return self.home / "audit_logs"
