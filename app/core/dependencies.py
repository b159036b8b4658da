"""FastAPI dependencies."""
from typing import Optional

from fastapi import Depends, Request
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.db.database import AsyncSessionLocal, get_db
from app.services.analysis.location import LocationService
from app.services.analysis.pipeline import AnalysisPipeline
from app.services.broadcast.broadcaster import EventBroadcaster
from app.services.call_session.orchestrator import CallSessionOrchestrator, OrchestratorConfig
from app.services.directory.gazetteer import Gazetteer
from app.services.directory.providers import ProviderDirectory
from app.services.persistence.calls import CallRecordStore
from app.services.twiml.builder import ResponseDocumentBuilder

_gazetteer: Optional[Gazetteer] = None


def get_gazetteer() -> Gazetteer:
    """Known-locations table, loaded once."""
    global _gazetteer
    if _gazetteer is None:
        _gazetteer = Gazetteer()
    return _gazetteer


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def get_openai_client(request: Request) -> Optional[AsyncOpenAI]:
    """Shared client created at startup; None when no API key is configured."""
    return getattr(request.app.state, "openai_client", None)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory for sessions opened outside the request session."""
    return AsyncSessionLocal


def get_call_store(db: AsyncSession = Depends(get_db)) -> CallRecordStore:
    return CallRecordStore(db)


def get_analysis_pipeline(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    client: Optional[AsyncOpenAI] = Depends(get_openai_client),
    gazetteer: Gazetteer = Depends(get_gazetteer),
) -> AnalysisPipeline:
    location_service = LocationService(
        ProviderDirectory(session_factory),
        gazetteer=gazetteer,
        radius_meters=settings.nearby_radius_meters,
        limit=settings.nearby_provider_limit,
    )
    return AnalysisPipeline(
        client,
        location_service=location_service,
        model=settings.openai_model,
        timeout_seconds=settings.analysis_timeout_seconds,
    )


def get_response_builder() -> ResponseDocumentBuilder:
    return ResponseDocumentBuilder(
        clinic_name=settings.clinic_name,
        barge_in=settings.barge_in_enabled,
        gather_timeout_seconds=settings.gather_timeout_seconds,
    )


def get_orchestrator(
    store: CallRecordStore = Depends(get_call_store),
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
    builder: ResponseDocumentBuilder = Depends(get_response_builder),
) -> CallSessionOrchestrator:
    """Get call session orchestrator."""
    config = OrchestratorConfig(
        default_locale=settings.default_locale,
        language_menu_enabled=settings.language_menu_enabled,
        max_empty_turns=settings.max_empty_turns,
        min_speech_confidence=settings.min_speech_confidence,
        default_emergency_number=settings.default_emergency_number,
    )
    return CallSessionOrchestrator(store, pipeline, broadcaster, builder, config)
