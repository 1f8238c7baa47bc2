import logging
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.core.base import utcnow
from recoverylab.core.db import store_errors
from recoverylab.core.errors import ValidationError
from recoverylab.modules.completions.models import ExerciseCompletion
from recoverylab.modules.completions.repository import CompletionRepository
from recoverylab.modules.notifications.dispatch import BroadcastDispatcher
from recoverylab.modules.notifications.schemas import NotificationOut

logger = logging.getLogger(__name__)

COMPLETION_SUBJECT = "Exercise Completed!"

def completion_message(title: str, on: date) -> str:
    when = f"{on.strftime('%A, %B')} {on.day}"
    return f'Great job! "{title}" was completed on {when}. Keep up the excellent work on your recovery journey!'


class CompletionService:
    def __init__(self, session: AsyncSession, dispatcher: BroadcastDispatcher | None = None):
        self.session = session
        self.dispatcher = dispatcher
        self.repo = CompletionRepository(session)

    async def mark(self, user_id: str, event_id: str, event_title: str | None, on: date, completed: bool) -> ExerciseCompletion | None:
        """
        Record or clear a completion for one calendar event.

        Completing tells the care team through a background broadcast; the row's
        ``notification_sent`` flips once that broadcast has run.
        """
        if not user_id or not event_id:
            raise ValidationError("user_id and event_id are required", field="event_id" if user_id else "user_id")

        if not completed:
            with store_errors("completions.delete"):
                obj = await self.repo.get(user_id, event_id)
                if obj is not None:
                    await self.repo.delete(obj)
                    await self.session.commit()
            logger.info(f"Cleared completion of event {event_id} for user {user_id}")
            return None

        title = event_title or "Exercise"
        with store_errors("completions.upsert"):
            obj = await self.repo.upsert(
                user_id,
                event_id,
                event_title=title,
                date=on.isoformat(),
                completed_at=utcnow(),
                notification_sent=False,
            )
            await self.session.commit()
        logger.info(f"Event {event_id} completed by user {user_id}")

        if self.dispatcher is not None:
            self.dispatcher.submit(
                user_id,
                "exercise_completion",
                COMPLETION_SUBJECT,
                completion_message(title, on),
                then=self._flag_sent(user_id, event_id),
            )
        return obj

    @staticmethod
    def _flag_sent(user_id: str, event_id: str):
        async def then(session: AsyncSession, results: list[NotificationOut]) -> None:
            repo = CompletionRepository(session)
            with store_errors("completions.flag_sent"):
                obj = await repo.get(user_id, event_id)
                if obj is None:
                    # un-completed while the broadcast was running
                    return
                obj.notification_sent = True
                await session.commit()
            logger.debug(f"Completion notice for event {event_id} went to {len(results)} channel(s)")
        return then

    async def list(self, user_id: str, on: date | None = None) -> dict[str, ExerciseCompletion]:
        with store_errors("completions.list"):
            rows = await self.repo.list_for_user(user_id, on.isoformat() if on else None)
        return {r.event_id: r for r in rows}
