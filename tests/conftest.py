"""
Shared fixtures.

Every test gets a fresh in-memory sqlite database and provider doubles; nothing
talks to Twilio, SMTP, Google or Redis.
"""
from unittest.mock import AsyncMock

import pytest
from cryptography.fernet import Fernet

from recoverylab.core.crypto import TokenCipher
from recoverylab.core.db import build_engine, build_sessionmaker, init_models
from recoverylab.modules.calendar.event_log import CalendarEventLog
from recoverylab.modules.notifications.dispatch import BroadcastDispatcher
from recoverylab.platform.provider_registry import Providers
from tests.fakes import FakeCalendar


@pytest.fixture
async def engine():
    eng = build_engine("sqlite+aiosqlite://")
    await init_models(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessionmaker(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def session(sessionmaker):
    async with sessionmaker() as s:
        yield s


@pytest.fixture
def cipher():
    return TokenCipher(Fernet.generate_key())


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def providers(cipher, calendar):
    sms = AsyncMock()
    sms.send_sms = AsyncMock(return_value=None)
    email = AsyncMock()
    email.send_email = AsyncMock(return_value=None)
    bus = AsyncMock()
    bus.publish = AsyncMock(return_value=None)
    return Providers(
        sms=sms,
        email=email,
        calendar=calendar,
        event_bus=bus,
        token_cipher=cipher,
        timeout_seconds=0.5,
        broadcast_concurrency=4,
    )


@pytest.fixture
def event_log(tmp_path):
    log = CalendarEventLog(tmp_path / "calendar_events.jsonl")
    log.load()
    return log


@pytest.fixture
async def dispatcher(sessionmaker, providers):
    d = BroadcastDispatcher(sessionmaker, providers)
    yield d
    await d.shutdown()
