"""Symmetric encryption for secrets stored in the database."""

from cryptography.fernet import Fernet, InvalidToken

from darkhorse.core.exceptions import DatabaseError


class SecretCipher:
    """Fernet wrapper for OAuth client secrets and provider tokens."""

    def __init__(self, key: str | bytes) -> None:
        """Initialize with a Fernet key.

        Args:
            key: URL-safe base64 encoded 32 byte key.
        """
        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt(self, value: str) -> str:
        """Encrypt a string for storage."""
        return self._fernet.encrypt(value.encode()).decode()

    def decrypt(self, value: str) -> str:
        """Decrypt a stored string.

        Raises:
            DatabaseError: If the value was not produced with this key.
        """
        try:
            return self._fernet.decrypt(value.encode()).decode()
        except InvalidToken:
            raise DatabaseError("stored secret could not be decrypted") from None
