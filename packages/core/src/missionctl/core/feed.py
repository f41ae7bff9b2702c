"""Live Feed 过滤表

过滤在读取时按 type 字段进行，不改变底层日志。
tasks ∪ agents ∪ {system} 恰好覆盖全部事件类型。
"""

from collections.abc import Iterable
from typing import Literal

from .exceptions import TaskValidationError
from .models.enums import EventType
from .models.event import Event

FeedFilter = Literal["all", "tasks", "agents"]

TASK_EVENT_TYPES: frozenset[EventType] = frozenset(
    {
        EventType.TASK_CREATED,
        EventType.TASK_ASSIGNED,
        EventType.TASK_STATUS_CHANGED,
        EventType.TASK_COMPLETED,
    }
)

AGENT_EVENT_TYPES: frozenset[EventType] = frozenset(
    {
        EventType.AGENT_JOINED,
        EventType.AGENT_STATUS_CHANGED,
        EventType.MESSAGE_SENT,
    }
)

# None 表示不过滤
FEED_FILTERS: dict[str, frozenset[EventType] | None] = {
    "all": None,
    "tasks": TASK_EVENT_TYPES,
    "agents": AGENT_EVENT_TYPES,
}


def validate_feed_filter(feed_filter: str) -> str:
    """校验过滤器名称，未知名称抛出 TaskValidationError"""
    if feed_filter not in FEED_FILTERS:
        raise TaskValidationError(
            f"Unknown feed filter: {feed_filter}",
            code="INVALID_FILTER",
        )
    return feed_filter


def matches(event: Event, feed_filter: str = "all") -> bool:
    """判断事件是否属于指定过滤器"""
    allowed = FEED_FILTERS[validate_feed_filter(feed_filter)]
    return allowed is None or event.type in allowed


def filter_events(events: Iterable[Event], feed_filter: str = "all") -> list[Event]:
    """按过滤器筛选事件，保持原有顺序"""
    allowed = FEED_FILTERS[validate_feed_filter(feed_filter)]
    if allowed is None:
        return list(events)
    return [e for e in events if e.type in allowed]
