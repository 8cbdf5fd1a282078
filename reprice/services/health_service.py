import logging
import os
import time

import httpx
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from reprice.core.config import settings

logger = logging.getLogger(__name__)

APP_VERSION = os.environ.get("APP_VERSION", "dev")
AI_HEALTH_TIMEOUT = 4.0


async def check_database(db: AsyncSession) -> dict:
    """Check database connectivity and measure latency."""
    try:
        start = time.monotonic()
        await db.execute(text("SELECT 1"))
        latency_ms = round((time.monotonic() - start) * 1000)
        return {"status": "up", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        return {"status": "down", "error": type(e).__name__}


async def check_pricing_service() -> dict:
    """Probe the AI pricing service. A cold instance reports 503 while it boots."""
    try:
        start = time.monotonic()
        async with httpx.AsyncClient(timeout=AI_HEALTH_TIMEOUT) as client:
            resp = await client.get(f"{settings.ai_api_url.rstrip('/')}/health")
        latency_ms = round((time.monotonic() - start) * 1000)
    except httpx.HTTPError as e:
        return {"status": "down", "error": type(e).__name__}

    if resp.status_code == 503:
        return {"status": "initializing", "latency_ms": latency_ms}
    if resp.is_success:
        return {"status": "up", "latency_ms": latency_ms}
    return {"status": "unknown", "latency_ms": latency_ms}


async def get_health(db: AsyncSession) -> dict:
    checks = {
        "database": await check_database(db),
        "pricing": await check_pricing_service(),
    }
    overall = "healthy" if checks["database"]["status"] == "up" else "unhealthy"
    return {"status": overall, "version": APP_VERSION, "checks": checks}
