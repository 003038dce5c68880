"""
Health check endpoints
"""

from fastapi import APIRouter
from datetime import datetime, timezone

from core.config import settings

router = APIRouter()


@router.get("/status")
async def health_status():
    """Get detailed health status"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "dispatch_mode": settings.DISPATCH_MODE,
        "kv_backend": settings.KV_BACKEND,
        "version": "0.1.0"
    }


@router.get("/ready")
async def readiness_check():
    """Ready once the upstream credentials are present"""
    return {"ready": settings.upstream_configured}
