import uuid
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.modules.completions.models import ExerciseCompletion

class CompletionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str, event_id: str) -> ExerciseCompletion | None:
        res = await self.session.execute(
            select(ExerciseCompletion).where(
                ExerciseCompletion.user_id == user_id,
                ExerciseCompletion.event_id == event_id,
            )
        )
        return res.scalar_one_or_none()

    async def upsert(self, user_id: str, event_id: str, **data) -> ExerciseCompletion:
        obj = await self.get(user_id, event_id)
        if obj is None:
            obj = ExerciseCompletion(id=uuid.uuid4(), user_id=user_id, event_id=event_id, **data)
            self.session.add(obj)
        else:
            for k, v in data.items():
                setattr(obj, k, v)
        await self.session.flush()
        return obj

    async def list_for_user(self, user_id: str, date: str | None = None) -> Sequence[ExerciseCompletion]:
        stmt = select(ExerciseCompletion).where(ExerciseCompletion.user_id == user_id)
        if date:
            stmt = stmt.where(ExerciseCompletion.date == date)
        res = await self.session.execute(stmt)
        return res.scalars().all()

    async def delete(self, obj: ExerciseCompletion) -> None:
        await self.session.delete(obj)
        await self.session.flush()
