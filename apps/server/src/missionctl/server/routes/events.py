"""Live Feed 快照路由

GET /api/events?filter=all|tasks|agents&limit=N: 最近事件，最新在前
"""

from fastapi import APIRouter, Depends, Query
from missionctl.core.models import Event
from pydantic import BaseModel

from ..deps import get_event_bus
from ..services.event_bus import EventBus

router = APIRouter()


class EventListResponse(BaseModel):
    events: list[Event]


@router.get("/api/events", response_model=EventListResponse)
async def list_events(
    filter: str = Query(default="all", description="all / tasks / agents"),
    limit: int = Query(default=50, ge=1, le=500, description="返回条数上限"),
    event_bus: EventBus = Depends(get_event_bus),
):
    events = await event_bus.recent(feed_filter=filter, limit=limit)
    return EventListResponse(events=events)
