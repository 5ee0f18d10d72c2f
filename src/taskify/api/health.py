"""Liveness and health endpoints.

Learn: GET / is the plain-text liveness probe browsers hit to check the
backend is up. GET /health additionally verifies the store is reachable
and reports "degraded" instead of failing when it isn't.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from taskify import __version__
from taskify.db.engine import get_db
from taskify.realtime.hub import BroadcastHub, get_hub

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root():
    return "Backend connected"


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    hub: BroadcastHub = Depends(get_hub),
):
    """Check server health and store connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["store"] = "ok"
    except Exception as e:
        checks["store"] = f"error: {e}"

    status = "healthy" if checks["store"] == "ok" else "degraded"
    return {"status": status, "connections": hub.connection_count, **checks}
