import time
import logging
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from recoverylab.core.config import settings as default_settings, Settings
from recoverylab.core.logging import setup_logging, request_id_ctx
from recoverylab.core.db import build_engine, build_sessionmaker, init_models
from recoverylab.core.errors import CareTeamError
from recoverylab.api.router import api_router
from recoverylab.modules.calendar.event_log import CalendarEventLog
from recoverylab.modules.notifications.dispatch import BroadcastDispatcher
from recoverylab.platform.provider_registry import Providers, build_providers

logger = logging.getLogger(__name__)


def create_app(settings: Settings = default_settings, providers: Providers | None = None) -> FastAPI:
    """Build the API. Tests pass their own settings and provider doubles."""
    setup_logging()
    app = FastAPI(title=settings.APP_NAME)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = request.headers.get("x-request-id", "-")
        request_id_ctx.set(rid)
        response = await call_next(request)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000
        logger.info(
            f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {process_time:.2f}ms"
        )
        return response

    @app.exception_handler(CareTeamError)
    async def care_team_error_handler(request: Request, exc: CareTeamError):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error_code, "message": exc.message, **exc.details()},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"message": "An internal server error occurred."},
        )

    @app.on_event("startup")
    async def on_startup():
        engine = build_engine(settings.DATABASE_URL)
        await init_models(engine, settings.DB_MANAGE)
        app.state.engine = engine
        app.state.sessionmaker = build_sessionmaker(engine)
        app.state.providers = providers or build_providers(settings)
        app.state.event_log = CalendarEventLog(settings.CALENDAR_EVENT_LOG_PATH)
        app.state.event_log.load()
        app.state.dispatcher = BroadcastDispatcher(app.state.sessionmaker, app.state.providers)

    @app.on_event("shutdown")
    async def on_shutdown():
        dispatcher = getattr(app.state, "dispatcher", None)
        if dispatcher:
            await dispatcher.shutdown()
        if providers is None and getattr(app.state, "providers", None):
            await app.state.providers.close()
        engine = getattr(app.state, "engine", None)
        if engine:
            await engine.dispose()

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


app = create_app()
