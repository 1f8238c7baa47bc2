from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.api.deps import get_providers
from recoverylab.core.db import get_session
from recoverylab.core.security import require_scopes
from recoverylab.modules.notifications.schemas import BroadcastRequest, BroadcastOut, NotificationOut
from recoverylab.modules.notifications.service import NotificationsService, default_subject
from recoverylab.platform.provider_registry import Providers

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), providers: Providers = Depends(get_providers)) -> NotificationsService:
    return NotificationsService(session, providers)

@router.post("/send", response_model=BroadcastOut, dependencies=[Depends(require_scopes("notify:write"))])
async def send_notification(payload: BroadcastRequest, service: NotificationsService = Depends(svc)):
    results = await service.broadcast(payload.user_id, payload.type, payload.subject or default_subject(payload.type), payload.message)
    sent = sum(1 for r in results if r.status == "sent")
    return {"sent": sent, "failed": len(results) - sent, "results": results}

@router.get("/history", response_model=list[NotificationOut], dependencies=[Depends(require_scopes("notify:read"))])
async def notification_history(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    service: NotificationsService = Depends(svc),
):
    return await service.history(user_id, limit)
