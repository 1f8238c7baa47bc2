from contextlib import contextmanager
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.pool import StaticPool
from .base import Base
from .errors import StoreError

def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite") and (":memory:" in url or url.endswith("://")):
        # one shared connection, otherwise every checkout sees an empty database
        return create_async_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    if url.startswith("sqlite"):
        return create_async_engine(url, connect_args={"check_same_thread": False})
    return create_async_engine(url, pool_pre_ping=True)

def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def init_models(engine: AsyncEngine, manage: str = "create_all"):
    ## In dev-only "create_all" mode create tables directly; otherwise, migrations own the schema.
    if manage.lower() != "create_all":
        return
    # make sure every model is registered on the metadata
    from recoverylab.modules.contacts import models as _contacts  # noqa: F401
    from recoverylab.modules.notifications import models as _notifications  # noqa: F401
    from recoverylab.modules.calendar import models as _calendar  # noqa: F401
    from recoverylab.modules.completions import models as _completions  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def get_session(request: Request):
    async with request.app.state.sessionmaker() as session:
        yield session

@contextmanager
def store_errors(operation: str):
    """Translate driver/ORM failures into StoreError; callers own any retry."""
    try:
        yield
    except SQLAlchemyError as e:
        raise StoreError(operation, str(e)) from e
