from typing import Protocol, runtime_checkable

# Domain events published after the operation they describe has committed
NOTIFICATIONS_BROADCAST = "notifications.broadcast"
SESSION_SCHEDULED = "calendar.session_scheduled"
SESSION_UNSCHEDULED = "calendar.session_unscheduled"

@runtime_checkable
class EventBusPort(Protocol):
    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None: ...
