import json
import logging
from recoverylab.platform.ports.event_bus import EventBusPort

log = logging.getLogger("bus.noop")

class NoopEventBus(EventBusPort):
    """Drops events after logging them; the default when no Redis is configured."""

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None:
        log.info(f"[NOOP BUS] {topic} key={key} {json.dumps(value, default=str, sort_keys=True)}")
