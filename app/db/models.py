"""Database models."""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Call(Base):
    """One record per phone call, keyed by the Twilio CallSid."""

    __tablename__ = "calls"

    id = Column(Integer, primary_key=True, index=True)
    call_sid = Column(String, unique=True, index=True, nullable=False)
    direction = Column(String, default="inbound", nullable=False)  # inbound, outbound

    # Parties
    caller_number = Column(String, nullable=True)
    callee_number = Column(String, nullable=True)
    caller_country = Column(String(2), nullable=True)
    language = Column(String, nullable=True)

    # Lifecycle
    status = Column(String, default="in-progress", index=True, nullable=False)
    session_state = Column(String, default="started", nullable=False)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)
    duration = Column(Integer, default=0, nullable=False)

    # Conversation
    transcript = Column(Text, nullable=True)  # latest caller utterance
    transcript_confidence = Column(Float, nullable=True)
    conversation = Column(Text, nullable=True)  # caller/assistant turn log
    full_transcript = Column(Text, nullable=True)  # from the transcription callback
    transcription_status = Column(String, nullable=True)
    turn_count = Column(Integer, default=0, nullable=False)
    empty_turn_count = Column(Integer, default=0, nullable=False)

    # Analysis of the latest turn
    intent = Column(String, default="unknown", index=True, nullable=False)
    priority = Column(String, default="low", index=True, nullable=False)
    emergency_detected = Column(Boolean, default=False, index=True, nullable=False)
    emergency_severity = Column(String, default="none", nullable=False)
    emergency_keywords = Column(JSON, nullable=True)
    ai_response = Column(Text, nullable=True)
    system_context = Column(Text, nullable=True)

    # Recording
    recording_sid = Column(String, nullable=True)
    recording_url = Column(String, nullable=True)
    recording_duration = Column(Integer, nullable=True)

    # Provenance
    initiated_by = Column(String, default="system", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Provider(Base):
    """Directory entry for a doctor or facility that callers can be pointed to."""

    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    specialization = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, index=True, nullable=False)
    rating = Column(Float, nullable=True)
