"""Call record store.

The only code that mutates call records. Every write is a single statement
touching just the named columns, so callbacks arriving on independent channels
(status, recording, turns) never overwrite each other's fields.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Call

logger = logging.getLogger(__name__)


class CallStatus(str, Enum):
    """Provider call statuses."""

    INITIATED = "initiated"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    NO_ANSWER = "no-answer"
    BUSY = "busy"
    CANCELED = "canceled"

    def __str__(self) -> str:
        return self.value


TERMINAL_STATUSES = (
    CallStatus.COMPLETED.value,
    CallStatus.FAILED.value,
    CallStatus.NO_ANSWER.value,
    CallStatus.BUSY.value,
    CallStatus.CANCELED.value,
)

# Columns a turn update may set directly
TURN_FIELDS = frozenset(
    {
        "transcript",
        "transcript_confidence",
        "caller_country",
        "language",
        "session_state",
        "empty_turn_count",
        "intent",
        "priority",
        "emergency_detected",
        "emergency_severity",
        "emergency_keywords",
        "ai_response",
        "system_context",
    }
)

STATUS_FIELDS = frozenset({"ended_at", "duration"})


def is_terminal(status: Optional[str]) -> bool:
    return status in TERMINAL_STATUSES


class CallRecordStore:
    """Idempotent upserts and partial merges against the calls table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert_if_absent(self, values: Dict[str, Any]):
        dialect = self.db.bind.dialect.name
        if dialect == "postgresql":
            return postgresql_insert(Call).values(**values).on_conflict_do_nothing(index_elements=["call_sid"])
        if dialect == "sqlite":
            return sqlite_insert(Call).values(**values).on_conflict_do_nothing(index_elements=["call_sid"])
        return insert(Call).values(**values).prefix_with("IGNORE")

    async def upsert_on_start(self, call_sid: str, initial_fields: Dict[str, Any]) -> bool:
        """Insert the call record unless one already exists.

        Returns True when this delivery created the record. Duplicate or
        concurrent deliveries of the same start event are no-ops.
        """
        values = {**initial_fields, "call_sid": call_sid}
        result = await self.db.execute(self._insert_if_absent(values))
        await self.db.commit()
        created = result.rowcount == 1
        logger.info(f"[CALL STORE] upsert_on_start - CallSid: {call_sid}, created: {created}")
        return created

    async def find_by_provider_call_id(self, call_sid: str) -> Optional[Call]:
        """Get call by Twilio call SID."""
        result = await self.db.execute(
            select(Call).where(Call.call_sid == call_sid).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def apply_turn_update(
        self,
        call_sid: str,
        fields: Dict[str, Any],
        count_turn: bool = True,
        conversation_entry: Optional[str] = None,
    ) -> Optional[Call]:
        """Merge one turn's results into a live call.

        The turn counter is incremented in the same statement when count_turn
        is set. Records in a terminal status are left untouched. Returns the
        current record, or None when the call is unknown.
        """
        unknown = set(fields) - TURN_FIELDS
        if unknown:
            raise ValueError(f"Fields not allowed in a turn update: {sorted(unknown)}")

        values: Dict[str, Any] = {**fields, "updated_at": datetime.utcnow()}
        if count_turn:
            values["turn_count"] = Call.turn_count + 1
        if conversation_entry:
            values["conversation"] = func.coalesce(Call.conversation, "") + conversation_entry

        result = await self.db.execute(
            update(Call)
            .where(Call.call_sid == call_sid, Call.status.not_in(TERMINAL_STATUSES))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            logger.info(f"[CALL STORE] Turn update skipped (unknown or terminal) - CallSid: {call_sid}")
        return await self.find_by_provider_call_id(call_sid)

    async def apply_status_update(
        self, call_sid: str, status: str, terminal_fields: Optional[Dict[str, Any]] = None
    ) -> Optional[Call]:
        """Move a live call to a new status.

        Once a call is terminal every later status update is ignored, which
        also makes redelivered terminal callbacks harmless.
        """
        terminal_fields = terminal_fields or {}
        unknown = set(terminal_fields) - STATUS_FIELDS
        if unknown:
            raise ValueError(f"Fields not allowed in a status update: {sorted(unknown)}")

        values: Dict[str, Any] = {"status": status, "updated_at": datetime.utcnow()}
        if is_terminal(status):
            values.update(terminal_fields)

        result = await self.db.execute(
            update(Call)
            .where(Call.call_sid == call_sid, Call.status.not_in(TERMINAL_STATUSES))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            logger.info(
                f"[CALL STORE] Status update to '{status}' skipped (unknown or terminal) - CallSid: {call_sid}"
            )
        return await self.find_by_provider_call_id(call_sid)

    async def apply_recording_update(
        self,
        call_sid: str,
        recording_sid: Optional[str],
        recording_url: Optional[str],
        recording_duration: Optional[int] = None,
    ) -> Optional[Call]:
        """Merge recording metadata. Independent of the call status."""
        values: Dict[str, Any] = {"updated_at": datetime.utcnow()}
        if recording_sid:
            values["recording_sid"] = recording_sid
        if recording_url:
            values["recording_url"] = recording_url
        if recording_duration is not None:
            values["recording_duration"] = recording_duration

        await self.db.execute(
            update(Call)
            .where(Call.call_sid == call_sid)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return await self.find_by_provider_call_id(call_sid)

    async def apply_transcription_update(
        self, call_sid: str, transcription_text: str, transcription_status: str
    ) -> Optional[Call]:
        """Merge the provider's full-call transcription."""
        await self.db.execute(
            update(Call)
            .where(Call.call_sid == call_sid)
            .values(
                full_transcript=transcription_text,
                transcription_status=transcription_status,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return await self.find_by_provider_call_id(call_sid)

    async def list_recent(self, limit: int = 100) -> List[Call]:
        """Most recent calls first."""
        result = await self.db.execute(select(Call).order_by(Call.started_at.desc()).limit(limit))
        return list(result.scalars().all())

    async def rollback(self) -> None:
        """Reset the session after a failed statement so it can be reused."""
        try:
            await self.db.rollback()
        except Exception as e:
            logger.error(f"[CALL STORE] Rollback failed - Error: {type(e).__name__}: {str(e)}")
