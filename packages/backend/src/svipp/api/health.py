"""Health check endpoint.

Learn: Only the database decides whether the service is healthy — every
account and ownership lookup goes through it. Redis backs nothing but
the rate limiter, so it is reported without affecting the status:
"disabled" when it wasn't reachable at startup, "error" when a
connected client stops answering.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from svipp import __version__
from svipp.cache import get_redis
from svipp.db.engine import engine

router = APIRouter()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:
        return f"error: {type(e).__name__}"


async def _rate_limit_status() -> str:
    try:
        redis = get_redis()
    except RuntimeError:
        return "disabled"
    try:
        await redis.ping()
        return "ok"
    except Exception as e:
        return f"error: {type(e).__name__}"


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    database = await _database_status()
    return {
        "status": "healthy" if database == "ok" else "unhealthy",
        "server": "ok",
        "version": __version__,
        "environment": request.app.state.settings.environment,
        "database": database,
        "rate_limiting": await _rate_limit_status(),
    }
