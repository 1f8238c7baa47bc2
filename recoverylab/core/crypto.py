"""
Calendar access tokens are stored encrypted with Fernet.

The key comes from TOKEN_ENCRYPTION_KEY. Outside ENV=local a missing key is a
startup failure; locally a throwaway key is generated, which means stored
tokens do not survive a restart.
"""
import logging
from cryptography.fernet import Fernet, InvalidToken
from recoverylab.core.config import Settings

logger = logging.getLogger(__name__)


class TokenCipher:
    def __init__(self, key: str | bytes):
        if isinstance(key, str):
            key = key.encode()
        try:
            self._fernet = Fernet(key)
        except ValueError as e:
            raise RuntimeError(f"Invalid TOKEN_ENCRYPTION_KEY: {e}") from e

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCipher":
        if settings.TOKEN_ENCRYPTION_KEY:
            return cls(settings.TOKEN_ENCRYPTION_KEY)
        if settings.ENV != "local":
            raise RuntimeError(
                "TOKEN_ENCRYPTION_KEY must be set outside local. "
                "Generate with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
            )
        logger.warning("TOKEN_ENCRYPTION_KEY not set. Using a temporary key (NOT FOR PRODUCTION)")
        return cls(Fernet.generate_key())

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str | None:
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            logger.error("Stored calendar token could not be decrypted (key rotated?)")
            return None
