"""Caller identity dependencies.

Authentication happens upstream; the gateway forwards the verified caller
as ``X-Seller-Id`` or ``X-Admin-Id``. Requests without the expected header
are rejected with ``401 Unauthorized``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status


async def get_seller_id(x_seller_id: Optional[str] = Header(None, alias="X-Seller-Id")) -> str:
    """FastAPI dependency returning the calling seller's id."""
    if not x_seller_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Seller identity required",
        )
    return x_seller_id


async def get_admin_id(x_admin_id: Optional[str] = Header(None, alias="X-Admin-Id")) -> str:
    """FastAPI dependency returning the calling admin's id."""
    if not x_admin_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin identity required",
        )
    return x_admin_id
