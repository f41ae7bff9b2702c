"""EventBus 测试

发布顺序、过滤器、慢订阅者摘除、保留上限与断线补发。
"""

import asyncio
from datetime import UTC, datetime

import pytest
from missionctl.core.exceptions import TaskValidationError
from missionctl.core.models import Event, EventType
from missionctl.server.services.event_bus import EventBus
from ulid import ULID


@pytest.fixture
def make_event():
    def _make(event_type: EventType = EventType.SYSTEM, message: str = "m") -> Event:
        return Event(
            event_id=str(ULID()),
            type=event_type,
            message=message,
            created_at=datetime(2026, 1, 1, tzinfo=UTC),
        )

    return _make


class TestPublish:
    async def test_publish_assigns_seq(self, event_bus, make_event):
        first = await event_bus.publish(make_event())
        second = await event_bus.publish(make_event())
        assert second.seq > first.seq

    async def test_subscriber_sees_events_in_order(self, event_bus, make_event):
        sub = event_bus.subscribe()
        published = [await event_bus.publish(make_event(message=str(i))) for i in range(3)]
        received = [await sub.get() for _ in range(3)]
        assert [e.event_id for e in received] == [e.event_id for e in published]
        sub.close()
        assert event_bus.subscriber_count == 0

    async def test_subscription_starts_at_subscribe_time(self, event_bus, make_event):
        await event_bus.publish(make_event(message="before"))
        sub = event_bus.subscribe()
        after = await event_bus.publish(make_event(message="after"))
        assert (await sub.get()).event_id == after.event_id

    async def test_filter(self, event_bus, make_event):
        sub = event_bus.subscribe("agents")
        await event_bus.publish(make_event(EventType.TASK_CREATED))
        joined = await event_bus.publish(make_event(EventType.AGENT_JOINED))
        assert (await sub.get()).event_id == joined.event_id

    async def test_unknown_filter_rejected(self, event_bus):
        with pytest.raises(TaskValidationError) as exc_info:
            event_bus.subscribe("everything")
        assert exc_info.value.code == "INVALID_FILTER"


class TestSlowSubscriber:
    async def test_overflow_drops_only_slow_subscriber(self, store_group, make_event):
        bus = EventBus(store_group, queue_maxsize=2)
        slow = bus.subscribe()
        fast = bus.subscribe()

        for i in range(3):
            event = await bus.publish(make_event(message=str(i)))
            if i < 2:
                assert (await fast.get()).event_id == event.event_id
        assert (await fast.get()).message == "2"

        assert slow.dropped is True
        assert await slow.get() is None
        assert bus.subscriber_count == 1

    async def test_dropped_subscription_ends_iteration(self, store_group, make_event):
        bus = EventBus(store_group, queue_maxsize=1)
        async with bus.subscribe() as sub:
            await bus.publish(make_event())
            await bus.publish(make_event())
            received = [event async for event in sub]
        assert received == []

    async def test_publish_never_blocks_on_slow_subscriber(self, store_group, make_event):
        bus = EventBus(store_group, queue_maxsize=1)
        bus.subscribe()
        await asyncio.wait_for(
            asyncio.gather(*(bus.publish(make_event()) for _ in range(10))),
            timeout=5,
        )


class TestHistory:
    async def test_retention_evicts_oldest(self, store_group, make_event):
        bus = EventBus(store_group, retention=3)
        events = [await bus.publish(make_event(message=str(i))) for i in range(5)]
        recent = await bus.recent(limit=10)
        assert [e.event_id for e in recent] == [e.event_id for e in reversed(events[2:])]

    async def test_replay_after(self, event_bus, make_event):
        events = [await event_bus.publish(make_event(message=str(i))) for i in range(3)]
        replay = await event_bus.replay_after(events[0].event_id)
        assert [e.event_id for e in replay] == [e.event_id for e in events[1:]]

    async def test_recent_filter(self, event_bus, make_event):
        await event_bus.publish(make_event(EventType.TASK_CREATED))
        await event_bus.publish(make_event(EventType.AGENT_JOINED))
        tasks_only = await event_bus.recent("tasks")
        assert [e.type for e in tasks_only] == [EventType.TASK_CREATED]
