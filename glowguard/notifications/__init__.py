"""Seller notifications."""

from glowguard.notifications.center import Notification, NotificationCenter

__all__ = ["Notification", "NotificationCenter"]
