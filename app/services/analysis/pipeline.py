"""Turn analysis pipeline.

Each language-model call is a single attempt bounded by the turn budget. Any
failure (timeout, API error, malformed JSON) is logged and replaced by the
matching keyword triage function, so analyze() always returns a result.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from openai import AsyncOpenAI

from app.services.analysis.location import LocationService
from app.services.analysis.models import (
    EmergencyAssessment,
    Intent,
    IntentClassification,
    PriorCallContext,
    Severity,
    TurnAnalysis,
)
from app.services.analysis.prompt import (
    EMERGENCY_SYSTEM_PROMPT,
    INTENT_SYSTEM_PROMPT,
    REPLY_SYSTEM_PROMPT,
    get_emergency_prompt,
    get_intent_prompt,
    get_reply_prompt,
)
from app.services.triage.engine import (
    calculate_priority,
    classify_intent,
    detect_emergency_keywords,
)
from app.services.triage.replies import fallback_reply

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_HISTORY_CHARS = 2000


class AnalysisPipeline:
    """Intent classification, emergency detection and reply generation for one turn."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI],
        location_service: Optional[LocationService] = None,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 6.0,
    ):
        self.client = client
        self.location_service = location_service
        self.model = model
        self.timeout_seconds = timeout_seconds

    async def analyze(self, transcript: str, context: PriorCallContext) -> TurnAnalysis:
        """Analyse a caller utterance. Never raises for dependency failures."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_seconds
        locale = context.locale

        logger.info(f"[ANALYSIS] Analysing turn {context.turn_count + 1} - CallSid: {context.call_sid}")

        # No data dependency between these two, so they run concurrently
        intent, emergency = await asyncio.gather(
            self._guarded(
                "intent",
                context.call_sid,
                lambda: self._request_intent(transcript),
                lambda: classify_intent(transcript, locale),
                deadline,
            ),
            self._guarded(
                "emergency",
                context.call_sid,
                lambda: self._request_emergency(transcript),
                lambda: self._keyword_emergency(transcript, locale),
                deadline,
            ),
        )

        priority = calculate_priority(transcript, emergency.is_emergency, locale)

        if emergency.severity == Severity.CRITICAL:
            # The caller is about to be transferred; skip the generator
            return TurnAnalysis(
                intent=intent,
                priority=priority,
                is_emergency=True,
                severity=emergency.severity,
                keywords=emergency.keywords,
                reply_text=fallback_reply(intent, True, locale),
            )

        auxiliary_context = None
        if self.location_service and self.location_service.wants_provider(transcript, intent):
            auxiliary_context = await self._location_context(transcript, context.call_sid, deadline)

        reply_text = await self._guarded(
            "reply",
            context.call_sid,
            lambda: self._request_reply(transcript, intent, emergency.is_emergency, context, auxiliary_context),
            lambda: fallback_reply(intent, emergency.is_emergency, locale),
            deadline,
        )

        analysis = TurnAnalysis(
            intent=intent,
            priority=priority,
            is_emergency=emergency.is_emergency,
            severity=emergency.severity,
            keywords=emergency.keywords,
            reply_text=reply_text,
            auxiliary_context=auxiliary_context,
        )
        logger.info(
            f"[ANALYSIS] Complete - CallSid: {context.call_sid}, intent: {analysis.intent}, "
            f"priority: {analysis.priority}, severity: {analysis.severity}"
        )
        return analysis

    async def _guarded(
        self,
        label: str,
        call_sid: str,
        request: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
        deadline: float,
    ) -> T:
        """Run one external call within the remaining budget, else fall back."""
        if self.client is None:
            return fallback()

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            logger.warning(f"[ANALYSIS] Turn budget exhausted before {label} call - CallSid: {call_sid}")
            return fallback()

        try:
            return await asyncio.wait_for(request(), timeout=remaining)
        except asyncio.TimeoutError:
            logger.warning(
                f"[ANALYSIS] {label} call timed out after {remaining:.2f}s, using keyword fallback - "
                f"CallSid: {call_sid}"
            )
        except Exception as e:
            logger.warning(
                f"[ANALYSIS] {label} call failed, using keyword fallback - CallSid: {call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
        return fallback()

    async def _complete(
        self, system_prompt: str, user_prompt: str, temperature: float, json_mode: bool, max_tokens: int
    ) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise ValueError("Empty completion")
        return content

    async def _request_intent(self, transcript: str) -> Intent:
        content = await self._complete(
            INTENT_SYSTEM_PROMPT, get_intent_prompt(transcript), 0.3, json_mode=True, max_tokens=200
        )
        return IntentClassification.model_validate_json(content).intent

    async def _request_emergency(self, transcript: str) -> EmergencyAssessment:
        content = await self._complete(
            EMERGENCY_SYSTEM_PROMPT, get_emergency_prompt(transcript), 0.2, json_mode=True, max_tokens=250
        )
        return EmergencyAssessment.model_validate_json(content)

    async def _request_reply(
        self,
        transcript: str,
        intent: Intent,
        is_emergency: bool,
        context: PriorCallContext,
        auxiliary_context: Optional[str],
    ) -> str:
        prompt = get_reply_prompt(
            transcript,
            intent.value,
            is_emergency,
            context.locale,
            conversation=context.conversation[-MAX_HISTORY_CHARS:],
            auxiliary_context=auxiliary_context,
        )
        content = await self._complete(REPLY_SYSTEM_PROMPT, prompt, 0.7, json_mode=False, max_tokens=150)
        return content.strip()

    @staticmethod
    def _keyword_emergency(transcript: str, locale: str) -> EmergencyAssessment:
        match = detect_emergency_keywords(transcript, locale)
        return EmergencyAssessment(
            is_emergency=match.is_emergency,
            severity=Severity.HIGH if match.is_emergency else Severity.NONE,
            keywords=match.keywords,
        )

    async def _location_context(self, transcript: str, call_sid: str, deadline: float) -> Optional[str]:
        """Best-effort provider lookup; failures leave the context empty."""
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            return None
        try:
            return await asyncio.wait_for(self.location_service.build_context(transcript), timeout=remaining)
        except asyncio.TimeoutError:
            logger.warning(f"[ANALYSIS] Provider lookup timed out - CallSid: {call_sid}")
        except Exception as e:
            logger.warning(
                f"[ANALYSIS] Provider lookup failed - CallSid: {call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
        return None
