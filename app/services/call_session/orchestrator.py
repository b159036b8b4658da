"""Call session orchestrator.

Drives one call through STARTED -> LISTENING -> ANALYZING -> RESPONDING /
TRANSFERRING / ENDING, one webhook at a time. Nothing is kept in process
memory between webhooks; consecutive turns of a call may be served by
different instances, so all session state is read from and written to the
call record store.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from app.db.models import Call
from app.services.analysis.models import PriorCallContext, TurnAnalysis
from app.services.analysis.pipeline import AnalysisPipeline
from app.services.broadcast.broadcaster import CALL_CREATED, CALL_UPDATED, EventBroadcaster
from app.services.call_session.constants import EMERGENCY_NUMBERS
from app.services.call_session.events import (
    CallStartedEvent,
    LanguageSelectionEvent,
    RecordingEvent,
    StatusEvent,
    TranscriptionEvent,
    TurnEvent,
)
from app.services.call_session.snapshots import snapshot
from app.services.call_session.states import FINAL_STATES, SessionState
from app.services.persistence.calls import CallRecordStore, CallStatus, is_terminal
from app.services.triage.engine import check_zero_latency_override, override_analysis
from app.services.twiml.builder import ResponseDocumentBuilder
from app.services.twiml.phrases import LANGUAGE_MENU_OPTIONS, get_phrasebook

logger = logging.getLogger(__name__)

INCOMING_PATH = "/webhooks/voice/incoming"
GATHER_PATH = "/webhooks/voice/gather"
LANGUAGE_PATH = "/webhooks/voice/language"


class OrchestratorConfig(BaseModel):
    """Behaviour switches for the call state machine."""

    default_locale: str = "en-US"
    language_menu_enabled: bool = False
    max_empty_turns: int = 2
    min_speech_confidence: float = 0.0
    default_emergency_number: str = "+15555550100"


class CallSessionOrchestrator:
    """Turns provider webhooks into IVR response documents."""

    def __init__(
        self,
        store: CallRecordStore,
        pipeline: AnalysisPipeline,
        broadcaster: EventBroadcaster,
        builder: ResponseDocumentBuilder,
        config: Optional[OrchestratorConfig] = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.broadcaster = broadcaster
        self.builder = builder
        self.config = config or OrchestratorConfig()

    def resolve_emergency_number(self, country: Optional[str]) -> str:
        """Local emergency number for the caller's country, else the default."""
        if country:
            number = EMERGENCY_NUMBERS.get(country.strip().upper())
            if number:
                return number
        logger.warning(
            f"[ORCHESTRATOR] No emergency number mapped for country '{country}', "
            f"dialing default {self.config.default_emergency_number}"
        )
        return self.config.default_emergency_number

    async def handle_call_started(self, event: CallStartedEvent, base_url: str = "") -> str:
        """STARTED: create the record once and greet the caller."""
        locale = self.config.default_locale
        try:
            record = await self._create_record(event)
            if record is not None and record.language:
                locale = record.language

            if self.config.language_menu_enabled and not (record and record.language):
                return self.builder.language_menu(f"{base_url}{LANGUAGE_PATH}")
            return self.builder.greeting(f"{base_url}{GATHER_PATH}", locale)
        except Exception as e:
            logger.error(
                f"[ORCHESTRATOR] Error starting call - CallSid: {event.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return self.builder.apology(locale)

    async def handle_language_selection(self, event: LanguageSelectionEvent, base_url: str = "") -> str:
        """Store the caller's language choice and greet them in it."""
        locale = LANGUAGE_MENU_OPTIONS.get((event.digits or "").strip())
        if locale is None:
            logger.info(f"[ORCHESTRATOR] Invalid language selection '{event.digits}' - CallSid: {event.call_sid}")
            return self.builder.invalid_selection(f"{base_url}{INCOMING_PATH}")

        try:
            await self._safe_turn_update(
                event.call_sid,
                {"language": locale, "session_state": SessionState.LISTENING.value},
                count_turn=False,
            )
            return self.builder.greeting(f"{base_url}{GATHER_PATH}", locale)
        except Exception as e:
            logger.error(
                f"[ORCHESTRATOR] Error selecting language - CallSid: {event.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return self.builder.apology(locale)

    async def handle_turn(self, event: TurnEvent, base_url: str = "") -> str:
        """One LISTENING -> ANALYZING -> RESPONDING/TRANSFERRING/ENDING step.

        Always returns a valid document; unexpected errors become an apology
        followed by a hangup.
        """
        locale = self.config.default_locale
        gather_url = f"{base_url}{GATHER_PATH}"
        try:
            record = await self._load_record(event)
            if record is not None:
                locale = record.language or locale
                if is_terminal(record.status) or record.session_state in FINAL_STATES:
                    logger.info(
                        f"[ORCHESTRATOR] Turn for finished call ignored - CallSid: {event.call_sid}, "
                        f"status: {record.status}, state: {record.session_state}"
                    )
                    return self.builder.goodbye(locale)

            if event.digits:
                logger.info(f"[ORCHESTRATOR] DTMF digits received: {event.digits} - CallSid: {event.call_sid}")

            transcript = (event.speech_result or "").strip()
            # The override ignores the confidence threshold
            override_keywords = check_zero_latency_override(transcript) if transcript else []
            if not transcript or (not override_keywords and self._below_confidence(event)):
                return await self._handle_empty_turn(event, record, locale, gather_url)

            logger.info(
                f"[ORCHESTRATOR] Analysing speech - CallSid: {event.call_sid}, "
                f"confidence: {event.confidence}, text: '{transcript[:200]}'"
            )
            country = event.caller_country or (record.caller_country if record else None)

            if override_keywords:
                logger.warning(
                    f"[ORCHESTRATOR] Zero-latency override {override_keywords} - CallSid: {event.call_sid}"
                )
                analysis = override_analysis(override_keywords, get_phrasebook(locale).transfer_notice)
            else:
                analysis = await self.pipeline.analyze(transcript, self._prior_context(event.call_sid, record, locale))

            if analysis.requires_transfer:
                number = self.resolve_emergency_number(country)
                document = self.builder.transfer(number, locale)
                logger.warning(
                    f"[ORCHESTRATOR] Transferring to emergency number {number} - CallSid: {event.call_sid}"
                )
                await self._persist_turn(
                    event, transcript, analysis, SessionState.TRANSFERRING, get_phrasebook(locale).transfer_notice
                )
                return document

            document = self.builder.reply(analysis.reply_text, gather_url, locale)
            await self._persist_turn(event, transcript, analysis, SessionState.LISTENING, analysis.reply_text)
            return document

        except Exception as e:
            logger.error(
                f"[ORCHESTRATOR] Error processing turn - CallSid: {event.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return self.builder.apology(locale)

    async def handle_status(self, event: StatusEvent) -> Optional[Call]:
        """Merge a status callback; terminal records ignore further changes."""
        terminal_fields: Dict[str, Any] = {}
        if is_terminal(event.call_status):
            terminal_fields = {"ended_at": datetime.utcnow(), "duration": event.call_duration or 0}

        record = await self.store.apply_status_update(event.call_sid, event.call_status, terminal_fields)
        if event.recording_url:
            record = await self.store.apply_recording_update(
                event.call_sid, event.recording_sid, event.recording_url
            )
        if record is not None:
            self._publish(CALL_UPDATED, record)
        return record

    async def handle_recording(self, event: RecordingEvent) -> Optional[Call]:
        record = await self.store.apply_recording_update(
            event.call_sid, event.recording_sid, event.recording_url, event.recording_duration
        )
        if record is not None:
            self._publish(CALL_UPDATED, record)
        return record

    async def handle_transcription(self, event: TranscriptionEvent) -> Optional[Call]:
        """Only completed transcriptions are stored."""
        if event.transcription_status != CallStatus.COMPLETED.value or not event.transcription_text:
            logger.info(
                f"[ORCHESTRATOR] Ignoring transcription with status '{event.transcription_status}' - "
                f"CallSid: {event.call_sid}"
            )
            return None
        record = await self.store.apply_transcription_update(
            event.call_sid, event.transcription_text, event.transcription_status
        )
        if record is not None:
            self._publish(CALL_UPDATED, record)
        return record

    async def _create_record(self, event: CallStartedEvent) -> Optional[Call]:
        """Idempotently create the call record. Storage errors are logged only."""
        fields = {
            "direction": event.normalized_direction,
            "caller_number": event.from_number,
            "callee_number": event.to_number,
            "caller_country": event.caller_country,
            "status": CallStatus.IN_PROGRESS.value,
            "session_state": SessionState.STARTED.value,
            "initiated_by": "system",
        }
        try:
            created = await self.store.upsert_on_start(event.call_sid, fields)
            record = await self.store.find_by_provider_call_id(event.call_sid)
        except Exception as e:
            logger.error(
                f"[ORCHESTRATOR] Could not create call record - CallSid: {event.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            await self.store.rollback()
            return None

        if created and record is not None:
            self._publish(CALL_CREATED, record)
        return record

    async def _load_record(self, event: TurnEvent) -> Optional[Call]:
        """Read the call record, creating it if the start event never arrived."""
        try:
            record = await self.store.find_by_provider_call_id(event.call_sid)
        except Exception as e:
            logger.error(
                f"[ORCHESTRATOR] Could not load call record - CallSid: {event.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            await self.store.rollback()
            return None

        if record is None:
            logger.warning(f"[ORCHESTRATOR] Turn for unknown call, creating record - CallSid: {event.call_sid}")
            record = await self._create_record(
                CallStartedEvent(call_sid=event.call_sid, caller_country=event.caller_country)
            )
        return record

    async def _handle_empty_turn(
        self, event: TurnEvent, record: Optional[Call], locale: str, gather_url: str
    ) -> str:
        """Bounded reprompt; the counter lives on the record."""
        if record is None:
            # Without the record the retry count cannot be bounded
            logger.warning(f"[ORCHESTRATOR] Empty turn without a call record, ending - CallSid: {event.call_sid}")
            return self.builder.goodbye(locale)

        attempt = (record.empty_turn_count or 0) + 1
        if attempt > self.config.max_empty_turns:
            logger.info(
                f"[ORCHESTRATOR] {record.empty_turn_count} empty turns in a row, ending call - "
                f"CallSid: {event.call_sid}"
            )
            document = self.builder.goodbye(locale)
            await self._safe_turn_update(
                event.call_sid,
                {"empty_turn_count": attempt, "session_state": SessionState.ENDING.value},
                count_turn=False,
            )
            return document

        logger.info(f"[ORCHESTRATOR] Empty turn, reprompt {attempt} - CallSid: {event.call_sid}")
        document = self.builder.reprompt(attempt, gather_url, locale)
        await self._safe_turn_update(
            event.call_sid,
            {"empty_turn_count": attempt, "session_state": SessionState.LISTENING.value},
            count_turn=False,
        )
        return document

    def _below_confidence(self, event: TurnEvent) -> bool:
        threshold = self.config.min_speech_confidence
        return threshold > 0 and event.confidence is not None and event.confidence < threshold

    @staticmethod
    def _prior_context(call_sid: str, record: Optional[Call], locale: str) -> PriorCallContext:
        if record is None:
            return PriorCallContext(call_sid=call_sid, locale=locale)
        return PriorCallContext(
            call_sid=call_sid,
            locale=locale,
            turn_count=record.turn_count or 0,
            previous_intent=record.intent,
            conversation=record.conversation or "",
        )

    async def _persist_turn(
        self,
        event: TurnEvent,
        transcript: str,
        analysis: TurnAnalysis,
        state: SessionState,
        spoken_text: str,
    ) -> None:
        fields: Dict[str, Any] = {
            "transcript": transcript,
            "transcript_confidence": event.confidence,
            "session_state": state.value,
            "empty_turn_count": 0,
            "intent": analysis.intent.value,
            "priority": analysis.priority.value,
            "emergency_detected": analysis.is_emergency,
            "emergency_severity": analysis.severity.value,
            "emergency_keywords": analysis.keywords,
            "ai_response": analysis.reply_text,
            "system_context": analysis.auxiliary_context,
        }
        if event.caller_country:
            fields["caller_country"] = event.caller_country.upper()

        await self._safe_turn_update(
            event.call_sid,
            fields,
            count_turn=True,
            conversation_entry=f"Caller: {transcript}\nAssistant: {spoken_text}\n",
        )

    async def _safe_turn_update(
        self,
        call_sid: str,
        fields: Dict[str, Any],
        count_turn: bool,
        conversation_entry: Optional[str] = None,
    ) -> None:
        """Write turn state; failures are logged and never block the reply."""
        try:
            record = await self.store.apply_turn_update(
                call_sid, fields, count_turn=count_turn, conversation_entry=conversation_entry
            )
        except Exception as e:
            logger.error(
                f"[ORCHESTRATOR] Failed to persist turn - CallSid: {call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            await self.store.rollback()
            return

        if record is not None:
            self._publish(CALL_UPDATED, record)

    def _publish(self, event_name: str, record: Call) -> None:
        try:
            self.broadcaster.publish(event_name, snapshot(record))
        except Exception as e:
            logger.warning(
                f"[ORCHESTRATOR] Could not publish '{event_name}' - CallSid: {record.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
