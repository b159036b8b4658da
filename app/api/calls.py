"""Call monitoring API: history, detail and live updates."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect

from app.core.dependencies import get_call_store
from app.services.broadcast.broadcaster import EventBroadcaster
from app.services.call_session.snapshots import CallSnapshot
from app.services.persistence.calls import CallRecordStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/calls", response_model=List[CallSnapshot])
async def list_calls(
    request: Request,
    limit: int = Query(100, ge=1, le=500),
    store: CallRecordStore = Depends(get_call_store),
):
    """Most recent calls first."""
    logger.info(
        f"[CALLS] Fetching call history - Limit: {limit}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    calls = await store.list_recent(limit=limit)
    logger.info(f"[CALLS] Returning {len(calls)} calls")
    return [CallSnapshot.model_validate(call) for call in calls]


@router.get("/api/calls/{call_sid}", response_model=CallSnapshot)
async def get_call(call_sid: str, store: CallRecordStore = Depends(get_call_store)):
    call = await store.find_by_provider_call_id(call_sid)
    if call is None:
        raise HTTPException(status_code=404, detail=f"Call {call_sid} not found")
    return CallSnapshot.model_validate(call)


@router.websocket("/ws/calls")
async def stream_calls(websocket: WebSocket):
    """Push call_created / call_updated events to a dashboard."""
    broadcaster: EventBroadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    logger.info(f"[CALLS WS] Dashboard connected ({broadcaster.subscriber_count + 1} subscribers)")
    async with broadcaster.subscription() as queue:
        try:
            while True:
                event = await queue.get()
                await websocket.send_json(event.model_dump())
        except WebSocketDisconnect:
            logger.info("[CALLS WS] Dashboard disconnected")
