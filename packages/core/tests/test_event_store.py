"""EventStore 测试：插入顺序、保留上限、按类型过滤、断线补发"""

from datetime import UTC, datetime, timedelta

from missionctl.core.models import Event, EventType
from missionctl.core.store import append_event_only

T0 = datetime(2026, 1, 1, tzinfo=UTC)


def _event(n: int, event_type: EventType = EventType.TASK_STATUS_CHANGED) -> Event:
    return Event(
        event_id=f"evt-{n:04d}",
        type=event_type,
        message=f"event {n}",
        task_id="task-1",
        payload={"n": n},
        created_at=T0 + timedelta(seconds=n),
    )


class TestAppendOrder:
    """事件按插入顺序分配 seq"""

    async def test_seq_monotonic(self, store_group):
        seqs = []
        for n in range(5):
            stored = await append_event_only(
                store_group.conn, store_group.event_store, _event(n), retention=100
            )
            seqs.append(stored.seq)
        assert seqs == sorted(seqs)
        assert len(set(seqs)) == 5

    async def test_list_recent_newest_first(self, store_group):
        for n in range(3):
            await append_event_only(
                store_group.conn, store_group.event_store, _event(n), retention=100
            )
        recent = await store_group.event_store.list_recent(limit=10)
        assert [e.event_id for e in recent] == ["evt-0002", "evt-0001", "evt-0000"]
        assert recent[0].payload == {"n": 2}

    async def test_list_recent_limit(self, store_group):
        for n in range(6):
            await append_event_only(
                store_group.conn, store_group.event_store, _event(n), retention=100
            )
        recent = await store_group.event_store.list_recent(limit=2)
        assert [e.event_id for e in recent] == ["evt-0005", "evt-0004"]


class TestRetention:
    """超过保留上限后淘汰最旧的事件"""

    async def test_oldest_evicted(self, store_group):
        for n in range(8):
            await append_event_only(
                store_group.conn, store_group.event_store, _event(n), retention=5
            )
        assert await store_group.event_store.count_events() == 5
        remaining = await store_group.event_store.get_all_events()
        assert [e.event_id for e in remaining] == [f"evt-{n:04d}" for n in range(3, 8)]

    async def test_prune_below_cap_is_noop(self, store_group):
        for n in range(3):
            await append_event_only(
                store_group.conn, store_group.event_store, _event(n), retention=5
            )
        removed = await store_group.event_store.prune(5)
        assert removed == 0
        assert await store_group.event_store.count_events() == 3


class TestTypeFilter:
    async def test_filter_by_types(self, store_group):
        await append_event_only(
            store_group.conn,
            store_group.event_store,
            _event(1, EventType.AGENT_JOINED),
            retention=100,
        )
        await append_event_only(
            store_group.conn,
            store_group.event_store,
            _event(2, EventType.TASK_CREATED),
            retention=100,
        )
        agents = await store_group.event_store.list_recent(
            limit=10, types={EventType.AGENT_JOINED}
        )
        assert [e.type for e in agents] == [EventType.AGENT_JOINED]


class TestListAfter:
    async def test_events_after_id_in_order(self, store_group):
        for n in range(4):
            await append_event_only(
                store_group.conn, store_group.event_store, _event(n), retention=100
            )
        after = await store_group.event_store.list_after("evt-0001")
        assert [e.event_id for e in after] == ["evt-0002", "evt-0003"]

    async def test_pruned_id_returns_empty(self, store_group):
        for n in range(4):
            await append_event_only(
                store_group.conn, store_group.event_store, _event(n), retention=2
            )
        assert await store_group.event_store.list_after("evt-0000") == []
