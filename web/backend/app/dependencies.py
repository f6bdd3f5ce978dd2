"""Shared FastAPI dependencies: the service context and error mapping."""

from __future__ import annotations

from typing import Any, NoReturn, Optional

from fastapi import HTTPException, status

from glowguard.context import GlowGuardContext, create_context

_context: Optional[GlowGuardContext] = None

_CODE_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "SELLER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ACCOUNT_BANNED": status.HTTP_403_FORBIDDEN,
    "EMAIL_BLACKLISTED": status.HTTP_403_FORBIDDEN,
    "ALREADY_APPEALED": status.HTTP_409_CONFLICT,
    "ALREADY_REVIEWED": status.HTTP_409_CONFLICT,
    "DUPLICATE_SUBSTANCE": status.HTTP_409_CONFLICT,
    "SELLER_EXISTS": status.HTTP_409_CONFLICT,
    "COOLDOWN_ACTIVE": status.HTTP_429_TOO_MANY_REQUESTS,
    "INVALID_DECISION": status.HTTP_400_BAD_REQUEST,
    "INVALID_REASON": status.HTTP_400_BAD_REQUEST,
    "INVALID_SUBSTANCE": status.HTTP_400_BAD_REQUEST,
    "PERSISTENCE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_context() -> GlowGuardContext:
    """Return the process-wide service context, creating it on first use."""
    global _context
    if _context is None:
        _context = create_context()
    return _context


def raise_for_code(code: str, message: str, **extra: Any) -> NoReturn:
    """Translate a service result code into an ``HTTPException``."""
    raise HTTPException(
        status_code=_CODE_STATUS.get(code, status.HTTP_400_BAD_REQUEST),
        detail={"code": code, "message": message, **extra},
    )
