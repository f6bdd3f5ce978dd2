"""Seller notifications with optional signed webhook relay.

Notifications are stored per user in ``notifications.json``. When a relay
URL is configured every notification is also POSTed there, signed with
HMAC-SHA256, and the delivery attempt is recorded in ``deliveries.json``.
Delivery uses ``urllib.request`` (no extra dependencies).

``notify`` is fire-and-forget: failures are logged, never raised.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import threading
import time
import urllib.request
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A message addressed to one user."""

    id: str
    user_id: str
    title: str
    body: str
    created_at: str = ""
    read: bool = False


@dataclass
class WebhookDelivery:
    """Record of a single relay attempt."""

    id: str
    notification_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    response_status: int = 0
    response_body: str = ""
    success: bool = False
    delivered_at: str = ""
    duration_ms: int = 0


class NotificationCenter:
    """File-backed notification sink."""

    EVENT = "seller.notification"

    def __init__(
        self,
        base_dir: Optional[Path] = None,
        webhook_url: str = "",
        webhook_secret: str = "",
    ) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.home() / ".glowguard" / "notifications"
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._notifications_file = self._base_dir / "notifications.json"
        self._deliveries_file = self._base_dir / "deliveries.json"
        self.webhook_url = webhook_url
        self.webhook_secret = webhook_secret
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _load(path: Path) -> list[dict[str, Any]]:
        if path.exists():
            try:
                return json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError):
                return []
        return []

    @staticmethod
    def _save(path: Path, data: list[dict[str, Any]]) -> None:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    @staticmethod
    def _notification_from_dict(d: dict[str, Any]) -> Notification:
        return Notification(**{k: v for k, v in d.items() if k in Notification.__dataclass_fields__})

    # ------------------------------------------------------------------
    # Sink
    # ------------------------------------------------------------------

    def notify(self, user_id: str, title: str, body: str) -> Optional[Notification]:
        """Store a notification for *user_id* and relay it if configured."""
        try:
            notification = Notification(
                id=uuid.uuid4().hex[:16],
                user_id=user_id,
                title=title,
                body=body,
                created_at=datetime.now(timezone.utc).isoformat(),
            )
            with self._lock:
                data = self._load(self._notifications_file)
                data.append(asdict(notification))
                self._save(self._notifications_file, data)
        except Exception:
            logger.warning("Could not store notification for %s", user_id, exc_info=True)
            return None

        if self.webhook_url:
            delivery = self._deliver(notification)
            if not delivery.success:
                logger.warning(
                    "Notification relay failed (%s): %s",
                    delivery.response_status,
                    delivery.response_body[:200],
                )
        return notification

    def list_for_user(self, user_id: str, unread_only: bool = False) -> list[Notification]:
        """Notifications for *user_id*, newest first."""
        items = [
            self._notification_from_dict(d)
            for d in self._load(self._notifications_file)
            if d.get("user_id") == user_id
        ]
        if unread_only:
            items = [n for n in items if not n.read]
        items.sort(key=lambda n: n.created_at, reverse=True)
        return items

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            data = self._load(self._notifications_file)
            for d in data:
                if d.get("id") == notification_id:
                    d["read"] = True
                    self._save(self._notifications_file, data)
                    return True
        return False

    # ------------------------------------------------------------------
    # Relay
    # ------------------------------------------------------------------

    @staticmethod
    def _compute_signature(payload_bytes: bytes, secret: str) -> str:
        """Compute HMAC-SHA256 signature for a payload."""
        mac = hmac.new(secret.encode("utf-8"), payload_bytes, hashlib.sha256)
        return f"sha256={mac.hexdigest()}"

    def _deliver(self, notification: Notification) -> WebhookDelivery:
        """Attempt a single delivery and record the result."""
        payload = {"event": self.EVENT, "notification": asdict(notification)}
        body = json.dumps(payload).encode("utf-8")
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "X-GlowGuard-Event": self.EVENT,
        }
        if self.webhook_secret:
            headers["X-GlowGuard-Signature"] = self._compute_signature(body, self.webhook_secret)

        start = time.monotonic()
        status = 0
        resp_body = ""
        success = False

        try:
            req = urllib.request.Request(self.webhook_url, data=body, headers=headers, method="POST")
            with urllib.request.urlopen(req, timeout=10) as resp:
                status = resp.status
                resp_body = resp.read().decode("utf-8", errors="replace")[:2000]
                success = 200 <= status < 300
        except Exception as exc:
            resp_body = str(exc)[:2000]

        delivery = WebhookDelivery(
            id=uuid.uuid4().hex[:16],
            notification_id=notification.id,
            payload=payload,
            response_status=status,
            response_body=resp_body,
            success=success,
            delivered_at=datetime.now(timezone.utc).isoformat(),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        with self._lock:
            deliveries = self._load(self._deliveries_file)
            deliveries.append(asdict(delivery))
            self._save(self._deliveries_file, deliveries)
        return delivery

    def get_deliveries(self, limit: int = 100) -> list[WebhookDelivery]:
        """Relay attempts, newest first."""
        deliveries = [
            WebhookDelivery(**{k: v for k, v in d.items() if k in WebhookDelivery.__dataclass_fields__})
            for d in self._load(self._deliveries_file)
        ]
        deliveries.sort(key=lambda d: d.delivered_at, reverse=True)
        return deliveries[:limit]
