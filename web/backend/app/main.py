"""FastAPI application for the GlowGuard enforcement API.

Provides REST API endpoints wrapping the GlowGuard package for:
- Product submission screening (scan + penalty)
- Seller account status, violation history and appeals
- Admin review of violations, appeals, unlocks and the blacklist
- Toxicity registry management and deep scans
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from glowguard import __version__
from web.backend.app.routers import admin, products, seller

app = FastAPI(
    title="GlowGuard API",
    description=(
        "REST API for the GlowGuard product-safety engine. "
        "Screens seller submissions for toxic ingredients and manages "
        "the warning, lock and ban ladder with its appeals process."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(products.router)
app.include_router(seller.router)
app.include_router(admin.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "GlowGuard API",
        "version": __version__,
        "description": "Product-safety enforcement REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
