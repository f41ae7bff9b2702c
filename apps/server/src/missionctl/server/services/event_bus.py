"""EventBus -- 持久化事件日志 + 内存实时广播

每个订阅者持有一个有界 asyncio.Queue。
队列写满的订阅者被摘除：清空队列并放入结束标记，订阅流随即结束，
订阅者需通过 Last-Event-ID 或快照接口补齐缺口。
"""

import asyncio

import structlog
from missionctl.core.config import EVENT_RETENTION, SSE_QUEUE_MAXSIZE
from missionctl.core.feed import FEED_FILTERS, validate_feed_filter
from missionctl.core.models import Event
from missionctl.core.store import StoreGroup, append_event_only

log = structlog.get_logger()

# 订阅被摘除的结束标记
_DROPPED = object()


class Subscription:
    """单个订阅者的事件流，按发布顺序产出匹配过滤器的事件"""

    def __init__(self, bus: "EventBus", feed_filter: str, maxsize: int) -> None:
        self._bus = bus
        self.feed_filter = feed_filter
        self._allowed = FEED_FILTERS[feed_filter]
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = False

    def accepts(self, event: Event) -> bool:
        return self._allowed is None or event.type in self._allowed

    def offer(self, event: Event) -> bool:
        """非阻塞投递，队列已满时返回 False"""
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            return False

    def drop(self) -> None:
        self.dropped = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_DROPPED)

    async def get(self) -> Event | None:
        """等待下一条事件；订阅被摘除时返回 None"""
        item = await self._queue.get()
        if item is _DROPPED:
            return None
        return item

    def close(self) -> None:
        self._bus._unregister(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Event:
        event = await self.get()
        if event is None:
            self.close()
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()


class EventBus:
    """Live Feed 事件总线"""

    def __init__(
        self,
        store_group: StoreGroup,
        retention: int = EVENT_RETENTION,
        queue_maxsize: int = SSE_QUEUE_MAXSIZE,
    ) -> None:
        self._stores = store_group
        self._retention = retention
        self._queue_maxsize = queue_maxsize
        self._subscribers: set[Subscription] = set()

    @property
    def retention(self) -> int:
        return self._retention

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: Event) -> Event:
        """写入事件日志（含保留上限淘汰）后广播

        Returns:
            带有 seq 的已落盘事件
        """
        stored = await append_event_only(
            self._stores.conn,
            self._stores.event_store,
            event,
            self._retention,
        )
        await self.broadcast(stored)
        return stored

    async def broadcast(self, event: Event) -> None:
        """向所有匹配的订阅者广播已落盘的事件"""
        overflowed = []
        for sub in self._subscribers:
            if not sub.accepts(event):
                continue
            if not sub.offer(event):
                overflowed.append(sub)

        for sub in overflowed:
            self._subscribers.discard(sub)
            sub.drop()
            log.warning(
                "feed_subscriber_dropped",
                feed_filter=sub.feed_filter,
                event_id=event.event_id,
            )

    def subscribe(self, feed_filter: str = "all") -> Subscription:
        """注册订阅者，立即开始接收后续发布的事件

        Raises:
            TaskValidationError: 未知过滤器
        """
        validate_feed_filter(feed_filter)
        sub = Subscription(self, feed_filter, self._queue_maxsize)
        self._subscribers.add(sub)
        return sub

    def _unregister(self, sub: Subscription) -> None:
        self._subscribers.discard(sub)

    async def recent(self, feed_filter: str = "all", limit: int = 50) -> list[Event]:
        """最近事件快照，最新在前"""
        allowed = FEED_FILTERS[validate_feed_filter(feed_filter)]
        return await self._stores.event_store.list_recent(limit=limit, types=allowed)

    async def replay_after(self, event_id: str, feed_filter: str = "all") -> list[Event]:
        """断线重连：返回指定事件之后的事件，按插入顺序"""
        allowed = FEED_FILTERS[validate_feed_filter(feed_filter)]
        return await self._stores.event_store.list_after(event_id, types=allowed)
