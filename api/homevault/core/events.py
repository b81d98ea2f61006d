"""
In-process publish/subscribe for session and data-change notifications.

Mutations publish an Event after they succeed; readers (dashboard state,
server-sent event streams) subscribe instead of polling.  Delivery is
synchronous and in publish order on the event loop that published.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable

logger = logging.getLogger(__name__)


class EventKind(str, enum.Enum):
    SESSION_STARTED = "session.started"
    SESSION_ENDED = "session.ended"
    PROPERTY_CREATED = "property.created"
    DOCUMENT_UPLOADED = "document.uploaded"
    DOCUMENT_DELETED = "document.deleted"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    user_id: str
    data: dict = field(default_factory=dict)


Handler = Callable[[Event], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register ``handler``; returns a function that unregisters it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: Event) -> None:
        logger.debug("event %s user=%s", event.kind.value, event.user_id)
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                # One broken subscriber must not block the others
                logger.exception("Event handler %r failed for %s", handler, event.kind.value)

    async def stream(self, user_id: str) -> AsyncIterator[Event]:
        """Yield this user's events until their session ends."""
        queue: asyncio.Queue[Event] = asyncio.Queue()

        def _enqueue(event: Event) -> None:
            if event.user_id == user_id:
                queue.put_nowait(event)

        unsubscribe = self.subscribe(_enqueue)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.kind is EventKind.SESSION_ENDED:
                    return
        finally:
            unsubscribe()


_bus = EventBus()


def get_event_bus() -> EventBus:
    return _bus
