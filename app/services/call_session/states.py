"""Call session states."""
from enum import Enum


class SessionState(str, Enum):
    """Where the orchestrator left the call after the last webhook."""

    STARTED = "started"  # record created, greeting sent
    LISTENING = "listening"  # waiting for the caller's next utterance
    ANALYZING = "analyzing"
    RESPONDING = "responding"
    TRANSFERRING = "transferring"  # bridged to an emergency number
    ENDING = "ending"  # goodbye sent, hanging up

    def __str__(self) -> str:
        return self.value


# The orchestrator stops driving the call once it reaches one of these
FINAL_STATES = (SessionState.TRANSFERRING.value, SessionState.ENDING.value)
