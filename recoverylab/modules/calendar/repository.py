from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.modules.calendar.models import CalendarToken, ScheduleGuard

class CalendarTokenRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> CalendarToken | None:
        return await self.session.get(CalendarToken, user_id)

    async def put(self, user_id: str, **data) -> CalendarToken:
        obj = await self.get(user_id)
        if obj is None:
            obj = CalendarToken(user_id=user_id, **data)
            self.session.add(obj)
        else:
            for k, v in data.items():
                setattr(obj, k, v)
        await self.session.flush()
        return obj

    async def delete(self, obj: CalendarToken) -> None:
        await self.session.delete(obj)
        await self.session.flush()

class ScheduleGuardRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str, session_id: str) -> ScheduleGuard | None:
        return await self.session.get(ScheduleGuard, (user_id, session_id))

    async def list_for_user(self, user_id: str) -> list[ScheduleGuard]:
        res = await self.session.execute(select(ScheduleGuard).where(ScheduleGuard.user_id == user_id))
        return list(res.scalars().all())

    async def create(self, user_id: str, session_id: str, event_count: int) -> ScheduleGuard:
        obj = ScheduleGuard(user_id=user_id, session_id=session_id, event_count=event_count)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def delete(self, obj: ScheduleGuard) -> None:
        await self.session.delete(obj)
        await self.session.flush()
