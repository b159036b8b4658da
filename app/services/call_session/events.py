"""Inbound provider events."""
from typing import Optional

from pydantic import BaseModel


class CallStartedEvent(BaseModel):
    call_sid: str
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    direction: str = "inbound"
    caller_country: Optional[str] = None

    @property
    def normalized_direction(self) -> str:
        # Twilio reports outbound-api / outbound-dial for outbound legs
        return "outbound" if self.direction and self.direction.startswith("outbound") else "inbound"


class TurnEvent(BaseModel):
    call_sid: str
    speech_result: Optional[str] = None
    confidence: Optional[float] = None
    caller_country: Optional[str] = None
    digits: Optional[str] = None


class StatusEvent(BaseModel):
    call_sid: str
    call_status: str
    call_duration: Optional[int] = None
    recording_sid: Optional[str] = None
    recording_url: Optional[str] = None


class RecordingEvent(BaseModel):
    call_sid: str
    recording_sid: Optional[str] = None
    recording_url: Optional[str] = None
    recording_duration: Optional[int] = None


class TranscriptionEvent(BaseModel):
    call_sid: str
    transcription_text: Optional[str] = None
    transcription_status: Optional[str] = None


class LanguageSelectionEvent(BaseModel):
    call_sid: str
    digits: Optional[str] = None
