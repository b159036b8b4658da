"""Unit tests for the turn analysis pipeline."""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from app.services.analysis.location import LocationService
from app.services.analysis.models import Intent, PriorCallContext, Priority, Severity
from app.services.analysis.pipeline import AnalysisPipeline
from app.services.analysis.prompt import EMERGENCY_SYSTEM_PROMPT, REPLY_SYSTEM_PROMPT
from app.services.directory.providers import ProviderDirectory
from app.services.triage.engine import keyword_analysis
from app.services.triage.replies import EMERGENCY_ALERT


def _context(**kwargs):
    return PriorCallContext(call_sid="CA_pipeline", **kwargs)


class TestAnalysisPipeline:
    """Test language-model analysis with keyword fallbacks."""

    @pytest.mark.asyncio
    async def test_uses_model_results(self, mock_openai):
        client = mock_openai(
            intent={"intent": "prescription", "confidence": 90, "reasoning": "refill"},
            emergency={"isEmergency": False, "severity": "none", "keywords": []},
            reply="Which medication do you need refilled?",
        )
        pipeline = AnalysisPipeline(client)

        analysis = await pipeline.analyze("I need my pills refilled", _context())

        assert analysis.intent == Intent.PRESCRIPTION
        assert analysis.severity == Severity.NONE
        assert analysis.reply_text == "Which medication do you need refilled?"
        assert client.chat.completions.create.await_count == 3

    @pytest.mark.asyncio
    async def test_without_client_matches_keyword_analysis(self):
        """No client means the result is exactly the keyword analysis."""
        transcript = "I'd like to book an appointment with Dr. Khan next Tuesday"
        analysis = await AnalysisPipeline(None).analyze(transcript, _context())

        assert analysis == keyword_analysis(transcript, "en-US")

    @pytest.mark.asyncio
    async def test_all_calls_failing_matches_keyword_analysis(self, mock_openai):
        error = RuntimeError("service unavailable")
        client = mock_openai(intent=error, emergency=error, reply=error)
        transcript = "there was an accident and my leg is bleeding"

        analysis = await AnalysisPipeline(client).analyze(transcript, _context())

        assert analysis == keyword_analysis(transcript, "en-US")

    @pytest.mark.asyncio
    async def test_malformed_json_falls_back(self, mock_openai):
        client = mock_openai(intent="not json", emergency="{}", reply="Happy to help.")

        analysis = await AnalysisPipeline(client).analyze("I want to book an appointment", _context())

        assert analysis.intent == Intent.APPOINTMENT
        assert analysis.is_emergency is False
        assert analysis.reply_text == "Happy to help."

    @pytest.mark.asyncio
    async def test_critical_severity_skips_reply_generation(self, mock_openai):
        client = mock_openai(
            intent={"intent": "emergency"},
            emergency={"isEmergency": True, "severity": "critical", "keywords": ["chest pain"]},
        )

        analysis = await AnalysisPipeline(client).analyze("my father has crushing chest pain", _context())

        assert analysis.requires_transfer is True
        assert analysis.priority == Priority.CRITICAL
        assert analysis.reply_text == EMERGENCY_ALERT["en-US"]
        prompts = [call.kwargs["messages"][0]["content"] for call in client.chat.completions.create.await_args_list]
        assert REPLY_SYSTEM_PROMPT not in prompts

    @pytest.mark.asyncio
    async def test_slow_model_respects_turn_budget(self):
        async def _slow(**kwargs):
            await asyncio.sleep(5)

        client = Mock()
        client.chat.completions.create = AsyncMock(side_effect=_slow)
        pipeline = AnalysisPipeline(client, timeout_seconds=0.1)
        transcript = "I need a prescription refill"

        loop = asyncio.get_running_loop()
        started = loop.time()
        analysis = await pipeline.analyze(transcript, _context())

        assert loop.time() - started < 1.0
        assert analysis == keyword_analysis(transcript, "en-US")

    @pytest.mark.asyncio
    async def test_emergency_detector_failure_uses_keywords(self, mock_openai):
        client = mock_openai(
            intent={"intent": "emergency"},
            emergency=RuntimeError("boom"),
            reply="Please stay calm.",
        )

        analysis = await AnalysisPipeline(client).analyze("it's an emergency", _context())

        # Keyword fallback never reaches critical
        assert analysis.is_emergency is True
        assert analysis.severity == Severity.HIGH
        assert analysis.requires_transfer is False
        assert analysis.keywords == ["emergency"]

    @pytest.mark.asyncio
    async def test_reply_prompt_includes_history_and_locale(self, mock_openai):
        client = mock_openai(
            intent={"intent": "appointment"},
            emergency={"isEmergency": False, "severity": "none"},
            reply="Theek hai.",
        )
        context = _context(locale="ur-PK", conversation="Caller: salam\nAssistant: ji farmaiye\n", turn_count=1)

        await AnalysisPipeline(client).analyze("appointment chahiye", context)

        reply_call = next(
            call for call in client.chat.completions.create.await_args_list
            if call.kwargs["messages"][0]["content"] == REPLY_SYSTEM_PROMPT
        )
        user_prompt = reply_call.kwargs["messages"][1]["content"]
        assert "Roman Urdu" in user_prompt
        assert "ji farmaiye" in user_prompt

    @pytest.mark.asyncio
    async def test_json_mode_only_for_classifiers(self, mock_openai):
        client = mock_openai(
            intent={"intent": "general_inquiry"},
            emergency={"isEmergency": False, "severity": "none"},
        )

        await AnalysisPipeline(client).analyze("what are your hours", _context())

        for call in client.chat.completions.create.await_args_list:
            system_prompt = call.kwargs["messages"][0]["content"]
            if system_prompt == REPLY_SYSTEM_PROMPT:
                assert "response_format" not in call.kwargs
            else:
                assert call.kwargs["response_format"] == {"type": "json_object"}
        assert any(
            call.kwargs["messages"][0]["content"] == EMERGENCY_SYSTEM_PROMPT
            for call in client.chat.completions.create.await_args_list
        )


def _reply_prompt(client):
    call = next(
        call for call in client.chat.completions.create.await_args_list
        if call.kwargs["messages"][0]["content"] == REPLY_SYSTEM_PROMPT
    )
    return call.kwargs["messages"][1]["content"]


def _failing_directory(side_effect):
    directory = Mock()
    directory.find_nearby = AsyncMock(side_effect=side_effect)
    return directory


class TestProviderGrounding:
    """Test nearby-provider context in the analysis."""

    @pytest.mark.asyncio
    async def test_provider_context_reaches_reply(self, mock_openai, session_factory, seeded_providers):
        client = mock_openai(
            intent={"intent": "find_provider"},
            emergency={"isEmergency": False, "severity": "none"},
            reply="Dr. Ayesha Siddiqui in Clifton is closest.",
        )
        pipeline = AnalysisPipeline(client, location_service=LocationService(ProviderDirectory(session_factory)))

        analysis = await pipeline.analyze("I need a doctor near Clifton", _context())

        assert "Dr. Ayesha Siddiqui" in analysis.auxiliary_context
        assert "Dr. Ayesha Siddiqui" in _reply_prompt(client)
        assert analysis.reply_text == "Dr. Ayesha Siddiqui in Clifton is closest."

    @pytest.mark.asyncio
    async def test_directory_error_is_absorbed(self, mock_openai):
        client = mock_openai(
            intent={"intent": "find_provider"},
            emergency={"isEmergency": False, "severity": "none"},
            reply="Which area are you in?",
        )
        directory = _failing_directory(RuntimeError("connection refused"))
        pipeline = AnalysisPipeline(client, location_service=LocationService(directory))

        analysis = await pipeline.analyze("any hospital in Clifton?", _context())

        directory.find_nearby.assert_awaited_once()
        assert analysis.auxiliary_context is None
        assert analysis.reply_text == "Which area are you in?"

    @pytest.mark.asyncio
    async def test_slow_directory_respects_turn_budget(self):
        async def _slow(*args, **kwargs):
            await asyncio.sleep(5)

        pipeline = AnalysisPipeline(
            None, location_service=LocationService(_failing_directory(_slow)), timeout_seconds=0.1
        )
        transcript = "I need a doctor near Clifton"

        loop = asyncio.get_running_loop()
        started = loop.time()
        analysis = await pipeline.analyze(transcript, _context())

        assert loop.time() - started < 1.0
        assert analysis.auxiliary_context is None
        assert analysis.reply_text == keyword_analysis(transcript, "en-US").reply_text
