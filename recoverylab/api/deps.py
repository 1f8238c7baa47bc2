from fastapi import Request
from recoverylab.platform.provider_registry import Providers
from recoverylab.modules.notifications.dispatch import BroadcastDispatcher
from recoverylab.modules.calendar.event_log import CalendarEventLog

def get_providers(request: Request) -> Providers:
    return request.app.state.providers

def get_dispatcher(request: Request) -> BroadcastDispatcher:
    return request.app.state.dispatcher

def get_event_log(request: Request) -> CalendarEventLog:
    return request.app.state.event_log
