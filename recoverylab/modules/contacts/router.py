import uuid
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.api.deps import get_dispatcher
from recoverylab.core.db import get_session
from recoverylab.core.security import require_scopes
from recoverylab.modules.contacts.schemas import ContactRegister, ContactUpdate, ContactOut
from recoverylab.modules.contacts.service import ContactService
from recoverylab.modules.notifications.dispatch import BroadcastDispatcher

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), dispatcher: BroadcastDispatcher = Depends(get_dispatcher)) -> ContactService:
    return ContactService(session, on_registered=dispatcher.submit_welcome)

@router.post("", response_model=ContactOut, status_code=201, dependencies=[Depends(require_scopes("contacts:write"))])
async def register_contact(payload: ContactRegister, service: ContactService = Depends(svc)):
    return await service.register(payload.user_id, payload)

@router.get("", response_model=list[ContactOut], dependencies=[Depends(require_scopes("contacts:read"))])
async def list_contacts(user_id: str, service: ContactService = Depends(svc)):
    return await service.list(user_id)

@router.get("/{contact_id}", response_model=ContactOut, dependencies=[Depends(require_scopes("contacts:read"))])
async def get_contact(contact_id: uuid.UUID, service: ContactService = Depends(svc)):
    return await service.get(contact_id)

@router.patch("/{contact_id}", response_model=ContactOut, dependencies=[Depends(require_scopes("contacts:write"))])
async def update_contact(contact_id: uuid.UUID, payload: ContactUpdate, service: ContactService = Depends(svc)):
    return await service.update(contact_id, payload)

@router.delete("/{contact_id}", status_code=204, dependencies=[Depends(require_scopes("contacts:write"))])
async def delete_contact(contact_id: uuid.UUID, service: ContactService = Depends(svc)):
    await service.delete(contact_id)
    return Response(status_code=204)
