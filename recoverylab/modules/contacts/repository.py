import uuid
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.modules.contacts.models import Contact

class ContactRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Contact:
        obj = Contact(id=uuid.uuid4(), **data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, contact_id: uuid.UUID) -> Contact | None:
        return await self.session.get(Contact, contact_id)

    async def list_for_user(self, user_id: str) -> Sequence[Contact]:
        # ordering is the service's job
        res = await self.session.execute(select(Contact).where(Contact.user_id == user_id))
        return res.scalars().all()

    async def update(self, obj: Contact, **data) -> Contact:
        for k, v in data.items():
            setattr(obj, k, v)
        await self.session.flush()
        return obj

    async def delete(self, obj: Contact) -> None:
        await self.session.delete(obj)
        await self.session.flush()
