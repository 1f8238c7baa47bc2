import asyncio
import logging
from typing import Awaitable, Callable
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from recoverylab.modules.contacts.models import Contact
from recoverylab.modules.contacts.schemas import ContactOut
from recoverylab.modules.notifications.schemas import NotificationOut
from recoverylab.modules.notifications.service import NotificationsService
from recoverylab.modules.notifications.welcome import send_welcome
from recoverylab.platform.provider_registry import Providers

log = logging.getLogger("notifications.dispatch")

AfterBroadcast = Callable[[AsyncSession, list[NotificationOut]], Awaitable[None]]

class BroadcastDispatcher:
    """
    Runs broadcasts that the triggering request does not wait for.

    Each job is a tracked asyncio task with its own session; failures are
    logged by the done-callback and never reach the caller.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], providers: Providers):
        self.sessionmaker = sessionmaker
        self.providers = providers
        self._tasks: set[asyncio.Task] = set()

    def submit(self, user_id: str, type_: str, subject: str, message: str, then: AfterBroadcast | None = None) -> asyncio.Task:
        return self._spawn(self._broadcast(user_id, type_, subject, message, then), name=f"broadcast:{type_}:{user_id}")

    def submit_welcome(self, contact: Contact) -> asyncio.Task | None:
        snapshot = ContactOut.model_validate(contact)
        if not (snapshot.email and snapshot.channels.get("email")):
            return None
        return self._spawn(send_welcome(self.providers, snapshot), name=f"welcome:{snapshot.id}")

    async def _broadcast(self, user_id: str, type_: str, subject: str, message: str, then: AfterBroadcast | None):
        async with self.sessionmaker() as session:
            results = await NotificationsService(session, self.providers).broadcast(user_id, type_, subject, message)
            if then is not None:
                await then(session, results)
            return results

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            log.warning(f"Background job {task.get_name()} cancelled")
            return
        exc = task.exception()
        if exc is not None:
            log.error(f"Background job {task.get_name()} failed", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every job submitted so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        for t in list(self._tasks):
            t.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
