"""Twilio voice webhook endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import Response

from app.core.config import settings
from app.core.dependencies import get_orchestrator
from app.core.security import verify_twilio_signature
from app.services.call_session.events import (
    CallStartedEvent,
    LanguageSelectionEvent,
    RecordingEvent,
    StatusEvent,
    TranscriptionEvent,
    TurnEvent,
)
from app.services.call_session.orchestrator import CallSessionOrchestrator

router = APIRouter(dependencies=[Depends(verify_twilio_signature)])
logger = logging.getLogger(__name__)


def get_base_url(request: Request) -> str:
    """
    Get the base URL for constructing absolute callback URLs.

    Uses BASE_URL if set (the public URL Twilio calls), otherwise the
    request's own base URL.
    """
    if settings.base_url:
        return settings.base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def _client(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _twiml(document: str) -> Response:
    return Response(content=document, media_type="application/xml")


def _ok() -> Response:
    return Response(content="OK", media_type="text/plain")


@router.post("/voice/incoming")
async def handle_incoming_call(
    request: Request,
    CallSid: str = Form(...),
    From: Optional[str] = Form(None),
    To: Optional[str] = Form(None),
    Direction: Optional[str] = Form("inbound"),
    FromCountry: Optional[str] = Form(None),
    CallerCountry: Optional[str] = Form(None),
    orchestrator: CallSessionOrchestrator = Depends(get_orchestrator),
):
    """
    Handle a new call from Twilio.

    Creates the call record (once, however often Twilio retries) and answers
    with the greeting or the language menu.
    """
    logger.info(
        f"[INCOMING CALL] Received incoming call webhook - CallSid: {CallSid}, "
        f"Direction: {Direction}, Country: {FromCountry or CallerCountry}, Client: {_client(request)}"
    )
    event = CallStartedEvent(
        call_sid=CallSid,
        from_number=From,
        to_number=To,
        direction=Direction or "inbound",
        caller_country=FromCountry or CallerCountry,
    )
    twiml = await orchestrator.handle_call_started(event, base_url=get_base_url(request))
    logger.info(f"[INCOMING CALL] Responding - CallSid: {CallSid}, TwiML length: {len(twiml)} bytes")
    return _twiml(twiml)


@router.post("/voice/language")
async def handle_language_selection(
    request: Request,
    CallSid: str = Form(...),
    Digits: Optional[str] = Form(None),
    orchestrator: CallSessionOrchestrator = Depends(get_orchestrator),
):
    """Handle the caller's keypad choice from the language menu."""
    logger.info(f"[LANGUAGE] Selection received - CallSid: {CallSid}, Digits: {Digits}")
    event = LanguageSelectionEvent(call_sid=CallSid, digits=Digits)
    twiml = await orchestrator.handle_language_selection(event, base_url=get_base_url(request))
    return _twiml(twiml)


@router.post("/voice/gather")
async def handle_gather(
    request: Request,
    CallSid: str = Form(...),
    SpeechResult: Optional[str] = Form(None),
    Confidence: Optional[float] = Form(None),
    Digits: Optional[str] = Form(None),
    FromCountry: Optional[str] = Form(None),
    CallerCountry: Optional[str] = Form(None),
    orchestrator: CallSessionOrchestrator = Depends(get_orchestrator),
):
    """
    Handle gathered speech from Twilio.

    Also called with an empty result when the caller says nothing.
    """
    logger.info(
        f"[GATHER] Received speech input - CallSid: {CallSid}, "
        f"SpeechResult length: {len(SpeechResult) if SpeechResult else 0}, "
        f"Confidence: {Confidence}, Client: {_client(request)}"
    )
    if SpeechResult:
        logger.debug(
            f"[GATHER] Speech text: '{SpeechResult[:200]}{'...' if len(SpeechResult) > 200 else ''}' - CallSid: {CallSid}"
        )
    else:
        logger.warning(f"[GATHER] No speech result provided (empty or None) - CallSid: {CallSid}")

    event = TurnEvent(
        call_sid=CallSid,
        speech_result=SpeechResult,
        confidence=Confidence,
        caller_country=FromCountry or CallerCountry,
        digits=Digits,
    )
    twiml = await orchestrator.handle_turn(event, base_url=get_base_url(request))
    logger.info(f"[GATHER] Responding - CallSid: {CallSid}, TwiML length: {len(twiml)} bytes")
    return _twiml(twiml)


@router.post("/voice/status")
async def handle_call_status(
    request: Request,
    CallSid: str = Form(...),
    CallStatus: str = Form(...),
    CallDuration: Optional[int] = Form(None),
    RecordingSid: Optional[str] = Form(None),
    RecordingUrl: Optional[str] = Form(None),
    orchestrator: CallSessionOrchestrator = Depends(get_orchestrator),
):
    """
    Handle call status updates from Twilio.

    Always answers OK so Twilio does not retry.
    """
    logger.info(
        f"[CALL STATUS] Received status update - CallSid: {CallSid}, "
        f"CallStatus: {CallStatus}, Client: {_client(request)}"
    )
    try:
        event = StatusEvent(
            call_sid=CallSid,
            call_status=CallStatus,
            call_duration=CallDuration,
            recording_sid=RecordingSid,
            recording_url=RecordingUrl,
        )
        record = await orchestrator.handle_status(event)
        if record is None:
            logger.warning(f"[CALL STATUS] Status update for unknown call - CallSid: {CallSid}")
    except Exception as e:
        logger.error(
            f"[CALL STATUS] Error handling call status update - CallSid: {CallSid}, "
            f"CallStatus: {CallStatus}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
    return _ok()


@router.post("/voice/recording")
async def handle_recording(
    request: Request,
    CallSid: str = Form(...),
    RecordingSid: Optional[str] = Form(None),
    RecordingUrl: Optional[str] = Form(None),
    RecordingDuration: Optional[int] = Form(None),
    orchestrator: CallSessionOrchestrator = Depends(get_orchestrator),
):
    """Handle recording-ready callbacks."""
    logger.info(f"[RECORDING] Recording available - CallSid: {CallSid}, RecordingSid: {RecordingSid}")
    try:
        event = RecordingEvent(
            call_sid=CallSid,
            recording_sid=RecordingSid,
            recording_url=RecordingUrl,
            recording_duration=RecordingDuration,
        )
        await orchestrator.handle_recording(event)
    except Exception as e:
        logger.error(
            f"[RECORDING] Error storing recording - CallSid: {CallSid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
    return _ok()


@router.post("/voice/transcription")
async def handle_transcription(
    request: Request,
    CallSid: str = Form(...),
    TranscriptionText: Optional[str] = Form(None),
    TranscriptionStatus: Optional[str] = Form(None),
    orchestrator: CallSessionOrchestrator = Depends(get_orchestrator),
):
    """Handle full-call transcription callbacks."""
    logger.info(f"[TRANSCRIPTION] Status: {TranscriptionStatus} - CallSid: {CallSid}")
    try:
        event = TranscriptionEvent(
            call_sid=CallSid,
            transcription_text=TranscriptionText,
            transcription_status=TranscriptionStatus,
        )
        await orchestrator.handle_transcription(event)
    except Exception as e:
        logger.error(
            f"[TRANSCRIPTION] Error storing transcription - CallSid: {CallSid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
    return _ok()
