"""
Health check API router for load balancer and readiness probes.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..dependencies import get_repository_factory

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def health_check(repository_factory=Depends(get_repository_factory)):
    """Basic health check covering the database and Redis"""
    status = await repository_factory.health_check()
    body = {
        "status": "healthy" if status.get("overall") else "unhealthy",
        "timestamp": datetime.now().isoformat(),
        "components": {
            "database": status.get("database", False),
            "redis": status.get("redis", False)
        }
    }
    if not status.get("overall"):
        logger.warning(f"Health check degraded: {status}")
        return JSONResponse(status_code=503, content=body)
    return body
