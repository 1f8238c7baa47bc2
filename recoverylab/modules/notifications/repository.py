from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.modules.notifications.models import NotificationRecord

class NotificationLedger:
    """Append-only: rows are added, and only their status fields ever change."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, records: list[NotificationRecord]) -> None:
        self.session.add_all(records)
        await self.session.flush()

    async def list_for_user(self, user_id: str) -> Sequence[NotificationRecord]:
        res = await self.session.execute(select(NotificationRecord).where(NotificationRecord.user_id == user_id))
        return res.scalars().all()
