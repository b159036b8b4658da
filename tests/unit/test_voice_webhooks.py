"""Tests for the Twilio voice webhook endpoints."""
import xml.etree.ElementTree as ET

import pytest

from app.core.config import Settings
from app.services.persistence.calls import CallRecordStore

START_PARAMS = {
    "CallSid": "CA_webhook",
    "From": "+923001234567",
    "To": "+14155550199",
    "Direction": "inbound",
    "FromCountry": "PK",
}


class TestSignatureValidation:
    """Test that unsigned requests are rejected."""

    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, test_client):
        response = await test_client.post("/webhooks/voice/incoming", data=START_PARAMS)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_signature_rejected(self, test_client, test_db):
        response = await test_client.post(
            "/webhooks/voice/incoming", data=START_PARAMS, headers={"X-Twilio-Signature": "bogus"}
        )

        assert response.status_code == 401
        assert await CallRecordStore(test_db).find_by_provider_call_id("CA_webhook") is None

    @pytest.mark.asyncio
    async def test_signature_with_wrong_token_rejected(self, post_signed):
        response = await post_signed("/webhooks/voice/incoming", START_PARAMS, token="someone-else")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_status_callback_also_requires_signature(self, test_client):
        response = await test_client.post(
            "/webhooks/voice/status", data={"CallSid": "CA_webhook", "CallStatus": "completed"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_bypass_outside_production(self, test_client, monkeypatch):
        dev_settings = Settings(environment="development", skip_webhook_signature_validation=True)
        monkeypatch.setattr("app.core.security.settings", dev_settings)

        response = await test_client.post("/webhooks/voice/incoming", data=START_PARAMS)

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_bypass_ignored_in_production(self, test_client, monkeypatch):
        prod_settings = Settings(environment="production", skip_webhook_signature_validation=True)
        monkeypatch.setattr("app.core.security.settings", prod_settings)

        response = await test_client.post("/webhooks/voice/incoming", data=START_PARAMS)

        assert response.status_code == 401


class TestVoiceWebhooks:
    """Test a call end to end through the webhooks."""

    @pytest.mark.asyncio
    async def test_incoming_call_returns_greeting(self, post_signed):
        response = await post_signed("/webhooks/voice/incoming", START_PARAMS)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        gather = ET.fromstring(response.text).find("Gather")
        assert gather.get("action") == "http://testserver/webhooks/voice/gather"

    @pytest.mark.asyncio
    async def test_duplicate_incoming_creates_one_record(self, post_signed, test_db, broadcaster):
        queue = broadcaster.subscribe()

        first = await post_signed("/webhooks/voice/incoming", START_PARAMS)
        second = await post_signed("/webhooks/voice/incoming", START_PARAMS)

        assert first.status_code == second.status_code == 200
        calls = await CallRecordStore(test_db).list_recent()
        assert len(calls) == 1
        assert calls[0].caller_country == "PK"
        assert queue.qsize() == 1

    @pytest.mark.asyncio
    async def test_emergency_turn_dials_local_number(self, post_signed):
        await post_signed("/webhooks/voice/incoming", START_PARAMS)

        response = await post_signed(
            "/webhooks/voice/gather",
            {"CallSid": "CA_webhook", "SpeechResult": "I can't breathe, please help", "Confidence": "0.88"},
        )

        root = ET.fromstring(response.text)
        assert [child.tag for child in root] == ["Say", "Dial"]
        assert root.find("Dial").text == "1122"

    @pytest.mark.asyncio
    async def test_regular_turn_and_completion(self, post_signed, test_db):
        await post_signed("/webhooks/voice/incoming", START_PARAMS)

        turn = await post_signed(
            "/webhooks/voice/gather",
            {"CallSid": "CA_webhook", "SpeechResult": "I want to book an appointment", "Confidence": "0.91"},
        )
        status = await post_signed(
            "/webhooks/voice/status", {"CallSid": "CA_webhook", "CallStatus": "completed", "CallDuration": "95"}
        )

        assert [child.tag for child in ET.fromstring(turn.text)] == ["Gather", "Say", "Hangup"]
        assert status.status_code == 200
        assert status.text == "OK"
        call = await CallRecordStore(test_db).find_by_provider_call_id("CA_webhook")
        assert call.intent == "appointment"
        assert call.status == "completed"
        assert call.duration == 95

    @pytest.mark.asyncio
    async def test_empty_gather_reprompts(self, post_signed):
        await post_signed("/webhooks/voice/incoming", START_PARAMS)

        response = await post_signed("/webhooks/voice/gather", {"CallSid": "CA_webhook"})

        assert ET.fromstring(response.text).find("Gather") is not None

    @pytest.mark.asyncio
    async def test_status_for_unknown_call_is_ok(self, post_signed):
        response = await post_signed("/webhooks/voice/status", {"CallSid": "CA_ghost", "CallStatus": "ringing"})

        assert response.status_code == 200
        assert response.text == "OK"

    @pytest.mark.asyncio
    async def test_recording_and_transcription_callbacks(self, post_signed, test_db):
        await post_signed("/webhooks/voice/incoming", START_PARAMS)

        recording = await post_signed(
            "/webhooks/voice/recording",
            {"CallSid": "CA_webhook", "RecordingSid": "RE9", "RecordingUrl": "https://example.com/RE9",
             "RecordingDuration": "30"},
        )
        transcription = await post_signed(
            "/webhooks/voice/transcription",
            {"CallSid": "CA_webhook", "TranscriptionText": "hello doctor", "TranscriptionStatus": "completed"},
        )

        assert recording.text == "OK"
        assert transcription.text == "OK"
        call = await CallRecordStore(test_db).find_by_provider_call_id("CA_webhook")
        assert call.recording_sid == "RE9"
        assert call.full_transcript == "hello doctor"

    @pytest.mark.asyncio
    async def test_language_selection(self, post_signed):
        await post_signed("/webhooks/voice/incoming", START_PARAMS)

        response = await post_signed("/webhooks/voice/language", {"CallSid": "CA_webhook", "Digits": "2"})

        assert ET.fromstring(response.text).find("Gather").get("language") == "ur-PK"
