"""Turn analysis models."""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class Intent(str, Enum):
    """What the caller wants from this turn."""

    APPOINTMENT = "appointment"
    PRESCRIPTION = "prescription"
    GENERAL_INQUIRY = "general_inquiry"
    EMERGENCY = "emergency"
    FIND_PROVIDER = "find_provider"  # only produced by the language model
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


class Priority(str, Enum):
    """Handling priority, factoring non-emergency signals too."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value


class Severity(str, Enum):
    """Emergency detection tier. Only CRITICAL triggers a transfer."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value


class IntentClassification(BaseModel):
    """Structured output expected from the intent classifier."""

    intent: Intent
    confidence: float = 0.0
    reasoning: str = ""


class EmergencyAssessment(BaseModel):
    """Structured output expected from the emergency detector."""

    is_emergency: bool = Field(alias="isEmergency")
    severity: Severity = Severity.NONE
    keywords: List[str] = []
    reasoning: str = ""

    model_config = {"populate_by_name": True}


class PriorCallContext(BaseModel):
    """What the pipeline knows about the call before this turn."""

    call_sid: str
    locale: str = "en-US"
    turn_count: int = 0
    previous_intent: Optional[str] = None
    conversation: str = ""


class TurnAnalysis(BaseModel):
    """Result of analysing one caller utterance."""

    intent: Intent
    priority: Priority
    is_emergency: bool
    severity: Severity
    keywords: List[str] = []
    reply_text: str
    auxiliary_context: Optional[str] = None

    @model_validator(mode="after")
    def _critical_severity_is_critical_priority(self) -> "TurnAnalysis":
        if self.severity == Severity.CRITICAL:
            self.priority = Priority.CRITICAL
            self.is_emergency = True
        return self

    @property
    def requires_transfer(self) -> bool:
        return self.severity == Severity.CRITICAL
