"""SSE 事件流路由

GET /api/stream/events?filter=all|tasks|agents: 实时推送 Live Feed 事件。
支持 Last-Event-ID 断线重连补发、心跳保活。
订阅因队列溢出被摘除时流结束，客户端重连后从 Last-Event-ID 补齐。
"""

import asyncio
import json

from fastapi import APIRouter, Depends, Request
from missionctl.core.config import SSE_HEARTBEAT_INTERVAL
from missionctl.core.feed import validate_feed_filter
from missionctl.core.models import Event
from sse_starlette.sse import EventSourceResponse

from ..deps import get_event_bus
from ..services.event_bus import EventBus

router = APIRouter()


def _event_to_sse(event: Event) -> dict:
    """将 Event 模型转换为 SSE 消息"""
    return {
        "id": event.event_id,
        "event": event.type.value,
        "data": json.dumps(event.model_dump(mode="json"), ensure_ascii=False),
    }


@router.get("/api/stream/events")
async def stream_events(
    request: Request,
    filter: str = "all",
    event_bus: EventBus = Depends(get_event_bus),
):
    """SSE 事件流端点

    1. 先注册订阅，避免补发与实时推送之间漏事件
    2. 携带 Last-Event-ID 时补发之后的历史事件
    3. 实时推送新事件，按 event_id 去重
    4. 心跳保活
    """
    feed_filter = validate_feed_filter(filter)
    last_event_id = request.headers.get("last-event-id")

    subscription = event_bus.subscribe(feed_filter)

    async def event_generator():
        sent: set[str] = set()
        try:
            if last_event_id:
                for event in await event_bus.replay_after(last_event_id, feed_filter):
                    sent.add(event.event_id)
                    yield _event_to_sse(event)

            while True:
                try:
                    event = await asyncio.wait_for(
                        subscription.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                except TimeoutError:
                    yield {"comment": "heartbeat"}
                    continue
                if event is None:
                    return
                if event.event_id in sent:
                    continue
                yield _event_to_sse(event)
        finally:
            subscription.close()

    return EventSourceResponse(event_generator())
