"""Serialisable views of call records."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CallSnapshot(BaseModel):
    """Full call state as sent to dashboards and read endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    call_sid: str
    direction: str
    caller_number: Optional[str] = None
    callee_number: Optional[str] = None
    caller_country: Optional[str] = None
    language: Optional[str] = None
    status: str
    session_state: str
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration: int = 0
    transcript: Optional[str] = None
    transcript_confidence: Optional[float] = None
    full_transcript: Optional[str] = None
    turn_count: int = 0
    intent: str
    priority: str
    emergency_detected: bool
    emergency_severity: str
    emergency_keywords: Optional[List[str]] = None
    ai_response: Optional[str] = None
    system_context: Optional[str] = None
    recording_sid: Optional[str] = None
    recording_url: Optional[str] = None
    recording_duration: Optional[int] = None
    initiated_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def snapshot(call) -> dict:
    """JSON-ready dict for a Call row."""
    return CallSnapshot.model_validate(call).model_dump(mode="json")
