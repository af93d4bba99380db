# src/credential_ledger/main.py
"""Main entry point for the Credential Ledger application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from credential_ledger.api.v1 import credentials_router, temporal_router
from credential_ledger.core.settings import settings
from credential_ledger.services.expiry_worker import ExpirySweepWorker

logger = logging.getLogger(__name__)

DESCRIPTION = "Degree credentials with temporal hash-chain liveness commitments"

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description=DESCRIPTION,
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(credentials_router, prefix="/api/v1")
app.include_router(temporal_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    if settings.temporal_sweep_enabled:
        worker = ExpirySweepWorker()
        await worker.start()
        app.state.expiry_worker = worker
        logger.info(
            "Expiry sweep worker started (every %.0fs)", settings.temporal_sweep_interval_seconds
        )
    else:
        app.state.expiry_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: ExpirySweepWorker | None = getattr(app.state, "expiry_worker", None)
    if worker:
        await worker.stop()

@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}

@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": DESCRIPTION,
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("credential_ledger.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
