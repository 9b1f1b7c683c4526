"""Health & Readiness Probes - liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 when the configured history store is unreachable

Design Decisions:
    - The memory store is always ready; the SQL store is probed with SELECT 1
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from palette import __version__
from palette.api import dependencies
from palette.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "palette-api",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check():
    """Readiness probe: history store and search client configured and reachable."""
    if dependencies.kv_store is None or dependencies.search_backend is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "not_configured"},
        )
    db_ok = True
    if database.db_manager is not None:
        db_ok = await database.db_manager.health_check()
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    storage = "sql" if database.db_manager is not None else "memory"
    return {"status": "ready", "checks": {"storage": storage}}
