"""
Per-owner dashboard state.

Holds what the dashboard page needs between requests: the selected
property, whether the add-property panel is open, and two version numbers
the client compares to know when a list must be fetched again.  The
versions move only in response to bus events, so the code that mutates
data never touches this module directly.

State lives in process memory and starts fresh at every sign-in.
"""
import logging
import uuid
from dataclasses import dataclass

from homevault.core.events import Event, EventBus, EventKind, get_event_bus

logger = logging.getLogger(__name__)


@dataclass
class DashboardState:
    selected_property_id: uuid.UUID | None = None
    show_property_form: bool = False
    property_version: int = 0
    document_version: int = 0

    @property
    def documents_heading(self) -> str:
        return "Property Documents" if self.selected_property_id else "All Documents"


class DashboardStore:
    def __init__(self, bus: EventBus):
        self._states: dict[str, DashboardState] = {}
        self._unsubscribe = bus.subscribe(self._on_event)

    def get(self, user_id: str) -> DashboardState:
        return self._states.setdefault(user_id, DashboardState())

    def has(self, user_id: str) -> bool:
        return user_id in self._states

    def select_property(self, user_id: str, property_id: uuid.UUID) -> DashboardState:
        state = self.get(user_id)
        state.selected_property_id = property_id
        return state

    def set_property_form(self, user_id: str, visible: bool) -> DashboardState:
        state = self.get(user_id)
        state.show_property_form = visible
        return state

    def close(self) -> None:
        self._unsubscribe()
        self._states.clear()

    def _on_event(self, event: Event) -> None:
        if event.kind is EventKind.SESSION_STARTED:
            self._states[event.user_id] = DashboardState()
        elif event.kind is EventKind.SESSION_ENDED:
            self._states.pop(event.user_id, None)
            logger.debug("Dropped dashboard state for %s", event.user_id)
        elif event.kind is EventKind.PROPERTY_CREATED:
            state = self.get(event.user_id)
            state.property_version += 1
            state.show_property_form = False
        elif event.kind is EventKind.DOCUMENT_UPLOADED:
            self.get(event.user_id).document_version += 1
        # DOCUMENT_DELETED: the client drops the row itself, no re-fetch


_store: DashboardStore | None = None


def get_dashboard_store() -> DashboardStore:
    global _store
    if _store is None:
        _store = DashboardStore(get_event_bus())
    return _store
