import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.core.base import utcnow, as_utc
from recoverylab.core.crypto import TokenCipher
from recoverylab.core.db import store_errors
from recoverylab.core.errors import TokenError, NotFoundError
from recoverylab.modules.calendar.repository import CalendarTokenRepository

logger = logging.getLogger(__name__)

CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar.events"
EXPIRY_BUFFER = timedelta(minutes=5)

@dataclass(frozen=True)
class StoredToken:
    user_id: str
    access_token: str
    expires_at: datetime
    scope: str
    stored_at: datetime

class CalendarTokenManager:
    """
    Stores one calendar access token per patient and decides whether it is usable.

    The OAuth handshake happens elsewhere; this only keeps the result and
    compares it against the clock, with a 5 minute buffer so a token is never
    handed to a call that could finish after it expires.
    """

    def __init__(self, session: AsyncSession, cipher: TokenCipher, now: Callable[[], datetime] = utcnow):
        self.session = session
        self.cipher = cipher
        self.now = now
        self.repo = CalendarTokenRepository(session)

    async def store(self, user_id: str, access_token: str, expires_in: int) -> StoredToken:
        at = self.now()
        with store_errors("calendar.token.store"):
            obj = await self.repo.put(
                user_id,
                access_token=self.cipher.encrypt(access_token),
                expires_at=at + timedelta(seconds=expires_in),
                scope=CALENDAR_SCOPE,
                stored_at=at,
            )
            await self.session.commit()
        logger.info(f"Stored calendar token for user {user_id} (expires in {expires_in}s)")
        return StoredToken(user_id, access_token, as_utc(obj.expires_at), obj.scope, as_utc(obj.stored_at))

    async def get(self, user_id: str) -> StoredToken | None:
        with store_errors("calendar.token.get"):
            obj = await self.repo.get(user_id)
        if obj is None:
            return None
        plain = self.cipher.decrypt(obj.access_token)
        if plain is None:
            return None
        return StoredToken(obj.user_id, plain, as_utc(obj.expires_at), obj.scope, as_utc(obj.stored_at))

    def is_expired(self, token: StoredToken, now: datetime | None = None) -> bool:
        now = now or self.now()
        return now >= token.expires_at - EXPIRY_BUFFER

    async def get_valid(self, user_id: str) -> StoredToken:
        token = await self.get(user_id)
        if token is None:
            raise TokenError("No calendar token found")
        if self.is_expired(token):
            raise TokenError("Calendar token expired")
        return token

    async def revoke(self, user_id: str) -> None:
        with store_errors("calendar.token.revoke"):
            obj = await self.repo.get(user_id)
            if obj is None:
                raise NotFoundError("CalendarToken", user_id)
            await self.repo.delete(obj)
            await self.session.commit()
        logger.info(f"Revoked calendar token for user {user_id}")

    async def status(self, user_id: str) -> dict:
        token = await self.get(user_id)
        if token is None:
            return {"connected": False, "expired": None, "expires_at": None, "scope": None}
        return {
            "connected": True,
            "expired": self.is_expired(token),
            "expires_at": token.expires_at,
            "scope": token.scope,
        }
