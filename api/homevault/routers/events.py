import json

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from homevault.core.deps import AuthContext, get_auth_context
from homevault.core.events import EventBus, get_event_bus

router = APIRouter(tags=["events"])


async def _sse(bus: EventBus, user_id: str):
    async for event in bus.stream(user_id):
        yield f"event: {event.kind.value}\ndata: {json.dumps(event.data)}\n\n"


@router.get("/events")
async def stream_events(
    ctx: AuthContext = Depends(get_auth_context),
    bus: EventBus = Depends(get_event_bus),
):
    """Server-sent events for the signed-in owner; ends at sign-out."""
    return StreamingResponse(
        _sse(bus, ctx.user_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
