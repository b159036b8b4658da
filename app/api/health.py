"""Liveness and readiness endpoints."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(request: Request):
    """Liveness: the process is up and serving requests."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check(request: Request, db: AsyncSession = Depends(get_db)):
    """Readiness: the call store answers and the analysis mode is known."""
    analysis_mode = "model" if getattr(request.app.state, "openai_client", None) else "keywords"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"[HEALTH] Database unavailable - Error: {type(e).__name__}: {str(e)}")
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "database": "down", "analysis": analysis_mode},
        )
    return {
        "status": "ready",
        "database": "up",
        "analysis": analysis_mode,
        "dashboard_subscribers": request.app.state.broadcaster.subscriber_count,
    }
