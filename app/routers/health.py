# app/routers/health.py

from fastapi import APIRouter, Depends

from app.database import get_client
from app.dependencies import get_local_store
from app.storage import LocalStore

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "attendance-recon-api",
    }


@router.get("/ready")
async def readiness_check(local_store: LocalStore = Depends(get_local_store)):
    """Readiness check. The remote store is optional, so it never fails readiness."""
    return {
        "status": "ready",
        "checks": {
            "local_store": str(local_store.base_dir),
            "record_store": "configured" if get_client() is not None else "local-only",
        }
    }
