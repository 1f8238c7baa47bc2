import logging
import httpx
from recoverylab.platform.ports.calendar import CalendarProvider, EventDraft, CreatedEvent

log = logging.getLogger(__name__)

class GoogleCalendarProvider(CalendarProvider):
    """Google Calendar v3 over REST, writing to the user's primary calendar."""

    def __init__(self, api_base: str = "https://www.googleapis.com/calendar/v3", client: httpx.AsyncClient | None = None):
        self.api_base = api_base.rstrip("/")
        self.client = client or httpx.AsyncClient()

    def _headers(self, access_token: str) -> dict:
        return {"Authorization": f"Bearer {access_token}"}

    async def create_event(self, access_token: str, event: EventDraft) -> CreatedEvent:
        body = {
            "summary": event.summary,
            "description": event.description,
            "start": {"dateTime": event.start.isoformat(), "timeZone": event.timezone},
            "end": {"dateTime": event.end.isoformat(), "timeZone": event.timezone},
            "reminders": {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": 10}],
            },
        }
        resp = await self.client.post(
            f"{self.api_base}/calendars/primary/events",
            headers=self._headers(access_token),
            json=body,
        )
        resp.raise_for_status()
        data = resp.json()
        return CreatedEvent(event_id=data["id"], html_link=data.get("htmlLink", ""))

    async def delete_event(self, access_token: str, event_id: str) -> None:
        resp = await self.client.delete(
            f"{self.api_base}/calendars/primary/events/{event_id}",
            headers=self._headers(access_token),
        )
        if resp.status_code in (404, 410):
            log.info(f"Calendar event {event_id} already gone ({resp.status_code})")
            return
        resp.raise_for_status()

    async def close(self) -> None:
        await self.client.aclose()
