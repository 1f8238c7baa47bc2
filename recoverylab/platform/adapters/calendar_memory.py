import logging
import uuid
from recoverylab.platform.ports.calendar import CalendarProvider, EventDraft, CreatedEvent

log = logging.getLogger("calendar.memory")

class InMemoryCalendarProvider(CalendarProvider):
    """Local stand-in for a real calendar: keeps events in a dict."""

    def __init__(self):
        self.events: dict[str, EventDraft] = {}

    async def create_event(self, access_token: str, event: EventDraft) -> CreatedEvent:
        event_id = uuid.uuid4().hex
        self.events[event_id] = event
        log.info(f"[MEMORY CALENDAR] created {event_id} {event.summary!r} at {event.start.isoformat()}")
        return CreatedEvent(event_id=event_id, html_link=f"memory://calendar/{event_id}")

    async def delete_event(self, access_token: str, event_id: str) -> None:
        self.events.pop(event_id, None)
