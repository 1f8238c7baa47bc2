from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.api.deps import get_providers, get_dispatcher, get_event_log
from recoverylab.core.db import get_session
from recoverylab.core.security import require_scopes
from recoverylab.modules.calendar.event_log import CalendarEventLog
from recoverylab.modules.calendar.schemas import ExpandRequest, ExpandOut, LoggedEventOut, TokenStore, TokenStatus, UnscheduleOut
from recoverylab.modules.calendar.service import ScheduleService
from recoverylab.modules.calendar.tokens import CalendarTokenManager
from recoverylab.modules.notifications.dispatch import BroadcastDispatcher
from recoverylab.platform.provider_registry import Providers

router = APIRouter()

def svc(
    session: AsyncSession = Depends(get_session),
    providers: Providers = Depends(get_providers),
    event_log: CalendarEventLog = Depends(get_event_log),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
) -> ScheduleService:
    return ScheduleService(session, providers, event_log, dispatcher=dispatcher)

def tokens(session: AsyncSession = Depends(get_session), providers: Providers = Depends(get_providers)) -> CalendarTokenManager:
    return CalendarTokenManager(session, providers.token_cipher)

@router.post("/token", response_model=TokenStatus, status_code=201, dependencies=[Depends(require_scopes("calendar:write"))])
async def store_token(payload: TokenStore, manager: CalendarTokenManager = Depends(tokens)):
    stored = await manager.store(payload.user_id, payload.access_token, payload.expires_in)
    return {"connected": True, "expired": manager.is_expired(stored), "expires_at": stored.expires_at, "scope": stored.scope}

@router.get("/token", response_model=TokenStatus, dependencies=[Depends(require_scopes("calendar:read"))])
async def token_status(user_id: str, manager: CalendarTokenManager = Depends(tokens)):
    return await manager.status(user_id)

@router.delete("/token", status_code=204, dependencies=[Depends(require_scopes("calendar:write"))])
async def revoke_token(user_id: str, manager: CalendarTokenManager = Depends(tokens)):
    await manager.revoke(user_id)
    return Response(status_code=204)

@router.post("/exercises", response_model=ExpandOut, status_code=201, dependencies=[Depends(require_scopes("calendar:write"))])
async def add_exercises(payload: ExpandRequest, service: ScheduleService = Depends(svc)):
    events = await service.expand(
        payload.user_id,
        payload.session_id,
        payload.exercises,
        payload.analysis_date,
        payload.timezone,
        payload.weeks,
        plan_label=payload.plan_label,
        gait_type=payload.gait_type,
    )
    return {"count": len(events), "events": events}

@router.get("/exercises", response_model=list[LoggedEventOut], dependencies=[Depends(require_scopes("calendar:read"))])
async def list_exercises(user_id: str, session_id: str | None = None, service: ScheduleService = Depends(svc)):
    return service.list_events(user_id, session_id)

@router.delete("/exercises", response_model=UnscheduleOut, dependencies=[Depends(require_scopes("calendar:write"))])
async def remove_exercises(user_id: str, session_id: str | None = None, service: ScheduleService = Depends(svc)):
    return await service.unschedule(user_id, session_id)
