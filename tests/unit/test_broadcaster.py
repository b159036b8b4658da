"""Unit tests for the call event broadcaster."""
import pytest

from app.services.broadcast.broadcaster import CALL_CREATED, CALL_UPDATED, EventBroadcaster


class TestEventBroadcaster:
    """Test fan-out to dashboard subscribers."""

    def test_publish_without_subscribers_is_noop(self):
        broadcaster = EventBroadcaster()
        broadcaster.publish(CALL_CREATED, {"call_sid": "CA1"})
        assert broadcaster.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_every_subscriber_receives_event(self):
        broadcaster = EventBroadcaster()
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        broadcaster.publish(CALL_UPDATED, {"call_sid": "CA1", "status": "completed"})

        for queue in (first, second):
            event = queue.get_nowait()
            assert event.event == CALL_UPDATED
            assert event.data["status"] == "completed"

    @pytest.mark.asyncio
    async def test_full_queue_drops_event(self):
        broadcaster = EventBroadcaster(queue_size=1)
        queue = broadcaster.subscribe()

        broadcaster.publish(CALL_CREATED, {"call_sid": "CA1"})
        broadcaster.publish(CALL_UPDATED, {"call_sid": "CA1"})

        assert queue.qsize() == 1
        assert queue.get_nowait().event == CALL_CREATED

    @pytest.mark.asyncio
    async def test_subscription_context_unsubscribes(self):
        broadcaster = EventBroadcaster()
        async with broadcaster.subscription():
            assert broadcaster.subscriber_count == 1
        assert broadcaster.subscriber_count == 0
