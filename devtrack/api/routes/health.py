"""Health check endpoints."""

import asyncio
import logging
import time
from typing import Any

import psutil
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from devtrack.db.session import engine

logger = logging.getLogger(__name__)

router = APIRouter()

MEMORY_DEGRADED_PERCENT = 90
DISK_DEGRADED_PERCENT = 90


async def check_database() -> dict[str, Any]:
    """Check database connectivity and response time.

    Returns:
        dict with status, latency_ms, and optional error
    """
    start = time.time()
    try:
        async with engine.connect() as conn:
            await asyncio.wait_for(
                conn.execute(text("SELECT 1")),
                timeout=5.0,
            )
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
        }
    except asyncio.TimeoutError:
        return {
            "status": "unhealthy",
            "error": "Database connection timeout (>5s)",
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": "Database connection failed",
        }


def check_memory() -> dict[str, Any]:
    memory = psutil.virtual_memory()
    return {
        "status": "degraded" if memory.percent >= MEMORY_DEGRADED_PERCENT else "healthy",
        "percent_used": memory.percent,
    }


def check_disk() -> dict[str, Any]:
    disk = psutil.disk_usage("/")
    return {
        "status": "degraded" if disk.percent >= DISK_DEGRADED_PERCENT else "healthy",
        "percent_used": disk.percent,
    }


@router.get("/health")
async def health_check() -> JSONResponse:
    """Report database, memory and disk health.

    Returns 503 when the database is unreachable; memory or disk pressure
    only degrades the overall status.
    """
    start = time.time()
    checks = {
        "database": await check_database(),
        "memory": check_memory(),
        "disk": check_disk(),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE if overall == "unhealthy" else status.HTTP_200_OK,
        content={
            "status": overall,
            "timestamp": time.time(),
            "response_time_ms": round((time.time() - start) * 1000, 2),
            "checks": checks,
        },
    )
