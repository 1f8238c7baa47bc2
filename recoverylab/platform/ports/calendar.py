from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

@dataclass(frozen=True)
class EventDraft:
    summary: str
    description: str
    start: datetime
    end: datetime
    timezone: str

@dataclass(frozen=True)
class CreatedEvent:
    event_id: str
    html_link: str

@runtime_checkable
class CalendarProvider(Protocol):
    async def create_event(self, access_token: str, event: EventDraft) -> CreatedEvent: ...
    async def delete_event(self, access_token: str, event_id: str) -> None: ...
