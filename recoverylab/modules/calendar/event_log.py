import asyncio
import json
import logging
from pathlib import Path
from recoverylab.core.base import utcnow

log = logging.getLogger("calendar.event_log")

# TODO: move to a table in the primary database once unschedule needs to
# work across more than one API process.
class CalendarEventLog:
    """
    Append-only JSONL record of calendar events created per (user, session).

    One line per ``created`` or ``deleted`` entry. The in-memory index holds the
    events still live for each session and is rebuilt from the file by ``load``.
    A single process owns the file; appends are serialized by one lock.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._index: dict[tuple[str, str], dict[str, dict]] = {}
        self._lock = asyncio.Lock()

    def load(self) -> int:
        self._index.clear()
        if not self.path.exists():
            return 0
        count = 0
        with self.path.open("r", encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                    self._apply(entry)
                except (ValueError, KeyError, TypeError):
                    log.warning(f"Skipping malformed line {lineno} in {self.path}")
                    continue
                count += 1
        log.info(f"Loaded {count} calendar log entries from {self.path}")
        return count

    def _apply(self, entry: dict) -> None:
        key = (entry["user_id"], entry["session_id"])
        if entry["op"] == "created":
            self._index.setdefault(key, {})[entry["event_id"]] = entry
        elif entry["op"] == "deleted":
            live = self._index.get(key, {})
            live.pop(entry["event_id"], None)
            if not live:
                self._index.pop(key, None)
        else:
            raise ValueError(f"unknown op {entry['op']!r}")

    async def record_created(self, user_id: str, session_id: str, events: list[dict]) -> None:
        """``events`` items carry event_id, html_link, summary, start, end."""
        logged_at = utcnow().isoformat()
        entries = [
            {
                "user_id": user_id,
                "session_id": session_id,
                "event_id": e["event_id"],
                "html_link": e.get("html_link", ""),
                "summary": e.get("summary", ""),
                "start": _iso(e.get("start")),
                "end": _iso(e.get("end")),
                "logged_at": logged_at,
                "op": "created",
            }
            for e in events
        ]
        await self._append(entries)

    async def record_deleted(self, user_id: str, session_id: str, event_ids: list[str]) -> None:
        logged_at = utcnow().isoformat()
        entries = [
            {"user_id": user_id, "session_id": session_id, "event_id": eid, "logged_at": logged_at, "op": "deleted"}
            for eid in event_ids
        ]
        await self._append(entries)

    def events_for(self, user_id: str, session_id: str) -> list[dict]:
        return list(self._index.get((user_id, session_id), {}).values())

    def sessions_for(self, user_id: str) -> list[str]:
        return sorted(sid for uid, sid in self._index if uid == user_id)

    async def _append(self, entries: list[dict]) -> None:
        if not entries:
            return
        async with self._lock:
            await asyncio.to_thread(self._write, entries)
            for entry in entries:
                self._apply(entry)

    def _write(self, entries: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            for entry in entries:
                fh.write(json.dumps(entry, separators=(",", ":")) + "\n")


def _iso(value) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else value.isoformat()
