"""Health check endpoints.

- /health: Basic health check
- /health/live: Liveness check (is the app running?)
- /health/ready: Readiness check (database and Redis reachable?)
"""

import logging
from datetime import datetime
from typing import Any, Dict

import redis
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agencyflow import __version__
from agencyflow.api.deps import get_db
from agencyflow.core.config import get_settings

router = APIRouter(tags=["health"])
settings = get_settings()
logger = logging.getLogger(__name__)


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity."""
    try:
        db.execute(text("SELECT 1")).fetchone()
        return {"status": "healthy"}
    except SQLAlchemyError as e:
        logger.warning("database health check failed: %s", e)
        return {"status": "unhealthy", "error": str(e)}


def check_redis() -> Dict[str, Any]:
    """Check Redis (Celery broker) connectivity."""
    try:
        r = redis.from_url(
            settings.redis_url,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        r.ping()
        info = r.info("server")
        r.close()
        return {"status": "healthy", "version": info.get("redis_version", "unknown")}
    except redis.RedisError as e:
        logger.warning("redis health check failed: %s", e)
        return {"status": "unhealthy", "error": str(e)}


@router.get("/health")
async def health_check():
    """Returns 200 if the application is running."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/health/live")
async def liveness_check():
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "alive", "timestamp": datetime.utcnow().isoformat()},
    )


@router.get("/health/ready")
async def readiness_check(db: Session = Depends(get_db)):
    """
    Readiness check.

    Failure means traffic should not be routed to this instance.
    """
    checks = {
        "database": check_database(db),
        "redis": check_redis(),
    }
    unhealthy = [name for name, check in checks.items() if check["status"] == "unhealthy"]

    if unhealthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "checks": checks,
                "failed": unhealthy,
                "timestamp": datetime.utcnow().isoformat(),
            },
        )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "ready", "checks": checks, "timestamp": datetime.utcnow().isoformat()},
    )
