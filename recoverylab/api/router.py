from fastapi import APIRouter
from recoverylab.modules.contacts.router import router as contacts_router
from recoverylab.modules.notifications.router import router as notifications_router
from recoverylab.modules.calendar.router import router as calendar_router
from recoverylab.modules.completions.router import router as completions_router

api_router = APIRouter()
api_router.include_router(contacts_router, prefix="/contacts", tags=["contacts"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["notifications"])
api_router.include_router(calendar_router, prefix="/calendar", tags=["calendar"])
api_router.include_router(completions_router, prefix="/calendar/completions", tags=["completions"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
