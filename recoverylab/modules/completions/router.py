import datetime as dt
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.api.deps import get_dispatcher
from recoverylab.core.db import get_session
from recoverylab.core.security import require_scopes
from recoverylab.modules.completions.schemas import CompletionMark, CompletionOut, CompletionResult
from recoverylab.modules.completions.service import CompletionService
from recoverylab.modules.notifications.dispatch import BroadcastDispatcher

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), dispatcher: BroadcastDispatcher = Depends(get_dispatcher)) -> CompletionService:
    return CompletionService(session, dispatcher)

@router.post("", response_model=CompletionResult, dependencies=[Depends(require_scopes("calendar:write"))])
async def mark_completion(payload: CompletionMark, service: CompletionService = Depends(svc)):
    await service.mark(payload.user_id, payload.event_id, payload.event_title, payload.date, payload.completed)
    if payload.completed:
        return {"completed": True, "message": "Exercise marked as completed. Your care team will be notified."}
    return {"completed": False, "message": "Exercise marked as incomplete"}

@router.get("", response_model=dict[str, CompletionOut], dependencies=[Depends(require_scopes("calendar:read"))])
async def list_completions(user_id: str, date: dt.date | None = None, service: CompletionService = Depends(svc)):
    return await service.list(user_id, date)
