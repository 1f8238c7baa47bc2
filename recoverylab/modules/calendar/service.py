import asyncio
import logging
from datetime import date, datetime
from typing import Callable
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.core.base import utcnow
from recoverylab.core.config import settings
from recoverylab.core.db import store_errors
from recoverylab.core.errors import ValidationError, DuplicateError, CalendarSubmissionError, StoreError
from recoverylab.modules.calendar.event_log import CalendarEventLog
from recoverylab.modules.calendar.recurrence import (
    EventInstance,
    parse_frequency,
    parse_start_time,
    default_start_time,
    resolve_timezone,
    local_date,
    describe,
    expand_exercise,
)
from recoverylab.modules.calendar.repository import ScheduleGuardRepository
from recoverylab.modules.calendar.schemas import ExerciseSchedule, CalendarEventOut
from recoverylab.modules.calendar.tokens import CalendarTokenManager
from recoverylab.modules.notifications.dispatch import BroadcastDispatcher
from recoverylab.platform.ports.event_bus import SESSION_SCHEDULED, SESSION_UNSCHEDULED
from recoverylab.platform.provider_registry import Providers

logger = logging.getLogger(__name__)

MAX_WEEKS = 52

def plan_label_for(plan_label: str | None, gait_type: str | None) -> str:
    if plan_label:
        return plan_label
    if gait_type:
        return f"{settings.PLAN_LABEL} - {gait_type.replace('_', ' ')}"
    return settings.PLAN_LABEL


class ScheduleService:
    def __init__(
        self,
        session: AsyncSession,
        providers: Providers,
        event_log: CalendarEventLog,
        dispatcher: BroadcastDispatcher | None = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.providers = providers
        self.event_log = event_log
        self.dispatcher = dispatcher
        self.tokens = CalendarTokenManager(session, providers.token_cipher, now=now)
        self.guards = ScheduleGuardRepository(session)

    async def expand(
        self,
        user_id: str,
        session_id: str,
        exercises: list[ExerciseSchedule],
        analysis_date: date | datetime,
        timezone: str,
        weeks: int,
        plan_label: str | None = None,
        gait_type: str | None = None,
    ) -> list[CalendarEventOut]:
        """
        Turn a session's exercise prescriptions into dated calendar events.

        Submits one event per session instance, in start order, and stops at the
        first failure. A session can only be expanded once until it is unscheduled.
        """
        if not 1 <= weeks <= MAX_WEEKS:
            raise ValidationError(f"weeks must be between 1 and {MAX_WEEKS}", field="weeks")
        if not exercises:
            raise ValidationError("At least one exercise is required", field="exercises")
        tz = resolve_timezone(timezone)

        with store_errors("calendar.guard.get"):
            guard = await self.guards.get(user_id, session_id)
        if guard is not None:
            raise DuplicateError(user_id, session_id)

        token = await self.tokens.get_valid(user_id)

        # parse everything before the first calendar call
        start_day = local_date(analysis_date, tz)
        label = plan_label_for(plan_label, gait_type)
        instances: list[EventInstance] = []
        for i, ex in enumerate(exercises):
            per_week = parse_frequency(ex.name, ex.frequency)
            at = parse_start_time(ex.start_time or default_start_time(i), ex.name)
            instances += expand_exercise(
                name=ex.name,
                per_week=per_week,
                start_time=at,
                duration_minutes=ex.duration_minutes,
                analysis_date=start_day,
                tz_name=timezone,
                weeks=weeks,
                summary=f"Exercise: {ex.name}",
                description=describe(
                    plan_label=label,
                    session_id=session_id,
                    instructions=ex.instructions,
                    sets_reps=ex.sets_reps,
                    frequency=ex.frequency,
                    weeks=weeks,
                ),
            )
        instances.sort(key=lambda inst: inst.start)

        created = await self._submit(user_id, session_id, token.access_token, instances)

        try:
            await self.guards.create(user_id, session_id, event_count=len(created))
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Session {session_id} for user {user_id} was scheduled concurrently")
            raise DuplicateError(user_id, session_id) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError("calendar.guard.create", str(e)) from e
        logger.info(f"Scheduled {len(created)} calendar events for session {session_id} (user {user_id})")

        await self._publish(
            SESSION_SCHEDULED,
            user_id,
            {"user_id": user_id, "session_id": session_id, "events": len(created), "weeks": weeks},
        )
        if self.dispatcher is not None:
            first = created[0].start if created else None
            self.dispatcher.submit(
                user_id,
                "appointment_reminder",
                "Your exercise plan is on the calendar",
                f"{len(created)} exercise sessions were added to the calendar over the next {weeks} "
                f"week{'s' if weeks != 1 else ''}"
                + (f", starting {first.strftime('%A, %B')} {first.day}." if first else "."),
            )
        return created

    async def _submit(self, user_id: str, session_id: str, access_token: str, instances: list[EventInstance]) -> list[CalendarEventOut]:
        created: list[CalendarEventOut] = []
        timeout = self.providers.timeout_seconds
        for inst in instances:
            try:
                ev = await asyncio.wait_for(
                    self.providers.calendar.create_event(access_token, inst.draft()),
                    timeout=timeout,
                )
            except Exception as e:
                reason = f"timed out after {timeout:g}s" if isinstance(e, asyncio.TimeoutError) else (str(e) or e.__class__.__name__)
                logger.error(
                    f"Calendar submission for session {session_id} failed after "
                    f"{len(created)} of {len(instances)} events: {reason}"
                )
                # created events stay on the calendar; log them so they can be unscheduled
                await self._log_created(user_id, session_id, created)
                raise CalendarSubmissionError(len(created), len(instances), reason, [c.event_id for c in created]) from e
            created.append(
                CalendarEventOut(
                    exercise=inst.exercise,
                    summary=inst.summary,
                    description=inst.description,
                    start=inst.start,
                    end=inst.end,
                    timezone=inst.timezone,
                    event_id=ev.event_id,
                    html_link=ev.html_link,
                )
            )
        await self._log_created(user_id, session_id, created)
        return created

    async def _log_created(self, user_id: str, session_id: str, created: list[CalendarEventOut]) -> None:
        try:
            await self.event_log.record_created(user_id, session_id, [c.model_dump() for c in created])
        except OSError:
            logger.exception(f"Could not write calendar event log for session {session_id}")

    def list_events(self, user_id: str, session_id: str | None = None) -> list[dict]:
        """Logged events still live on the calendar, for one session or all of the user's."""
        sessions = [session_id] if session_id is not None else self.event_log.sessions_for(user_id)
        events = [e for sid in sessions for e in self.event_log.events_for(user_id, sid)]
        return sorted(events, key=lambda e: (e.get("start") or "", e["event_id"]))

    async def unschedule(self, user_id: str, session_id: str | None = None) -> dict:
        """
        Delete the logged events of a session and release its guard.

        Without ``session_id`` every session the user has logged events or a
        guard for is unscheduled; the counts are summed across sessions.
        """
        token = await self.tokens.get_valid(user_id)
        if session_id is not None:
            sessions = [session_id]
        else:
            with store_errors("calendar.guard.list"):
                guarded = {g.session_id for g in await self.guards.list_for_user(user_id)}
            sessions = sorted(guarded | set(self.event_log.sessions_for(user_id)))

        deleted = failed = 0
        for sid in sessions:
            d, f = await self._unschedule_session(user_id, sid, token.access_token)
            deleted += d
            failed += f
        return {"deleted": deleted, "failed": failed}

    async def _unschedule_session(self, user_id: str, session_id: str, access_token: str) -> tuple[int, int]:
        events = self.event_log.events_for(user_id, session_id)
        timeout = self.providers.timeout_seconds

        deleted: list[str] = []
        failed = 0
        for entry in events:
            event_id = entry["event_id"]
            try:
                await asyncio.wait_for(self.providers.calendar.delete_event(access_token, event_id), timeout=timeout)
            except Exception as e:
                failed += 1
                logger.error(f"Failed to delete calendar event {event_id} for session {session_id}: {str(e) or e.__class__.__name__}")
                continue
            deleted.append(event_id)

        await self.event_log.record_deleted(user_id, session_id, deleted)

        # a partial cleanup keeps the guard so the session cannot be scheduled twice
        if failed == 0:
            with store_errors("calendar.guard.delete"):
                guard = await self.guards.get(user_id, session_id)
                if guard is not None:
                    await self.guards.delete(guard)
                    await self.session.commit()

        logger.info(f"Unscheduled session {session_id} for user {user_id}: {len(deleted)} deleted, {failed} failed")
        await self._publish(
            SESSION_UNSCHEDULED,
            user_id,
            {"user_id": user_id, "session_id": session_id, "deleted": len(deleted), "failed": failed},
        )
        return len(deleted), failed

    async def _publish(self, topic: str, key: str, value: dict) -> None:
        try:
            await asyncio.wait_for(
                self.providers.event_bus.publish(topic=topic, key=key, value=value),
                timeout=self.providers.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Publishing {topic} timed out after {self.providers.timeout_seconds:g}s")
        except Exception:
            logger.exception(f"Publishing {topic} failed")
