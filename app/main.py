"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from openai import AsyncOpenAI

from app.api import calls, health
from app.api.webhooks import voice
from app.core.config import settings
from app.core.logging import setup_logging
from app.db.database import init_db
from app.services.broadcast.broadcaster import EventBroadcaster

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    if settings.openai_api_key:
        app.state.openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
    else:
        app.state.openai_client = None
        logger.warning("[STARTUP] OPENAI_API_KEY not set, analysis will use keyword fallbacks only")
    yield
    # Shutdown
    if app.state.openai_client is not None:
        await app.state.openai_client.close()


app = FastAPI(
    title="Clinic Voice Triage",
    description="Inbound voice assistant for a medical clinic",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.broadcaster = EventBroadcaster()

app.include_router(health.router, tags=["health"])
app.include_router(voice.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(calls.router, tags=["calls"])


@app.get("/")
async def root():
    return {"message": "Clinic Voice Triage API", "version": "0.1.0"}
