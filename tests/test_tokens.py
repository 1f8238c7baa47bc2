from datetime import timedelta

import pytest
from sqlalchemy import select

from recoverylab.core.errors import NotFoundError, TokenError
from recoverylab.modules.calendar.models import CalendarToken
from recoverylab.modules.calendar.tokens import CALENDAR_SCOPE, CalendarTokenManager
from tests.fakes import Clock


async def test_store_encrypts_at_rest(session, cipher):
    mgr = CalendarTokenManager(session, cipher)
    await mgr.store("patient-1", "ya29.secret", 3600)

    row = (await session.execute(select(CalendarToken))).scalar_one()
    assert row.access_token != "ya29.secret"
    assert cipher.decrypt(row.access_token) == "ya29.secret"
    assert row.scope == CALENDAR_SCOPE


async def test_store_is_last_write_wins(session, cipher):
    mgr = CalendarTokenManager(session, cipher)
    await mgr.store("patient-1", "first", 3600)
    await mgr.store("patient-1", "second", 3600)

    token = await mgr.get("patient-1")
    assert token.access_token == "second"
    assert len((await session.execute(select(CalendarToken))).scalars().all()) == 1


async def test_expiry_has_five_minute_buffer(session, cipher):
    clock = Clock(step=timedelta(0))
    mgr = CalendarTokenManager(session, cipher, now=clock)
    token = await mgr.store("patient-1", "tok", 3600)

    assert not mgr.is_expired(token, now=token.expires_at - timedelta(minutes=5, seconds=1))
    assert mgr.is_expired(token, now=token.expires_at - timedelta(minutes=5))
    assert mgr.is_expired(token, now=token.expires_at + timedelta(seconds=1))


async def test_get_valid_rejects_missing_and_expired(session, cipher):
    mgr = CalendarTokenManager(session, cipher)
    with pytest.raises(TokenError, match="No calendar token"):
        await mgr.get_valid("patient-1")

    await mgr.store("patient-1", "tok", 60)
    with pytest.raises(TokenError, match="expired") as exc:
        await mgr.get_valid("patient-1")
    assert exc.value.details() == {"needs_reauth": True}


async def test_revoke(session, cipher):
    mgr = CalendarTokenManager(session, cipher)
    await mgr.store("patient-1", "tok", 3600)

    await mgr.revoke("patient-1")
    assert await mgr.get("patient-1") is None
    with pytest.raises(NotFoundError):
        await mgr.revoke("patient-1")


async def test_status(session, cipher):
    mgr = CalendarTokenManager(session, cipher)
    assert (await mgr.status("patient-1"))["connected"] is False

    await mgr.store("patient-1", "tok", 3600)
    status = await mgr.status("patient-1")
    assert status["connected"] is True
    assert status["expired"] is False
    assert status["scope"] == CALENDAR_SCOPE


async def test_token_from_rotated_key_is_unusable(session, cipher):
    from cryptography.fernet import Fernet
    from recoverylab.core.crypto import TokenCipher

    await CalendarTokenManager(session, cipher).store("patient-1", "tok", 3600)
    rotated = CalendarTokenManager(session, TokenCipher(Fernet.generate_key()))
    assert await rotated.get("patient-1") is None
