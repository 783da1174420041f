"""JWT token creation and validation."""

import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from darkhorse.core.auth.types import TokenPair, TokenPayload
from darkhorse.core.exceptions import InvalidTokenError, UnauthorizedError

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass
class JwtConfig:
    """Signing secrets and lifetimes for issued tokens."""

    secret_key: str
    refresh_secret_key: str
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 7
    expiry_warning_minutes: int = 10


def generate_session_id() -> str:
    """Generate a new session identifier.

    Returns:
        UUID4 string, also embedded in tokens as the ``sessionId`` claim.
    """
    return str(uuid.uuid4())


def extract_token_from_header(header: str | None) -> str:
    """Pull the bearer token out of an Authorization header.

    Args:
        header: Raw ``Authorization`` header value.

    Returns:
        The token string.

    Raises:
        UnauthorizedError: If the header is missing or not a Bearer scheme.
    """
    if not header:
        raise UnauthorizedError("Authorization header is required")

    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Authorization header must use the Bearer scheme")
    return token.strip()


class TokenIssuer:
    """Issues and verifies session-bound access/refresh token pairs."""

    def __init__(self, config: JwtConfig) -> None:
        """Initialize with signing configuration.

        Args:
            config: Secrets and lifetimes.
        """
        self._config = config

    @property
    def config(self) -> JwtConfig:
        """Signing configuration."""
        return self._config

    def issue_token_pair(self, user_id: str, email: str, session_id: str) -> TokenPair:
        """Create an access/refresh token pair bound to a session.

        Args:
            user_id: User identifier.
            email: User email, carried as a claim.
            session_id: Session the tokens belong to.

        Returns:
            TokenPair with both tokens and their expiry timestamps.
        """
        now = datetime.now(UTC)
        access_expires = now + timedelta(minutes=self._config.access_token_expire_minutes)
        refresh_expires = now + timedelta(days=self._config.refresh_token_expire_days)

        access_token = self._encode(
            user_id, email, session_id, ACCESS_TOKEN_TYPE, now, access_expires
        )
        refresh_token = self._encode(
            user_id, email, session_id, REFRESH_TOKEN_TYPE, now, refresh_expires
        )

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_token_expires_at=access_expires,
            refresh_token_expires_at=refresh_expires,
        )

    def verify_access_token(self, token: str) -> TokenPayload:
        """Decode and validate an access token.

        Raises:
            InvalidTokenError: If the token is malformed, expired, signed with
                another key, or is not an access token.
        """
        return self._decode(token, self._config.secret_key, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> TokenPayload:
        """Decode and validate a refresh token.

        Raises:
            InvalidTokenError: If the token is invalid or not a refresh token.
        """
        return self._decode(token, self._config.refresh_secret_key, REFRESH_TOKEN_TYPE)

    def is_token_near_expiry(self, expires_at: datetime, now: datetime | None = None) -> bool:
        """Check whether a token expires within the warning window.

        Args:
            expires_at: Token expiry.
            now: Reference time, defaults to the current UTC time.

        Returns:
            True if the token expires within ``expiry_warning_minutes``.
        """
        now = now or datetime.now(UTC)
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at - now <= timedelta(minutes=self._config.expiry_warning_minutes)

    def _encode(
        self,
        user_id: str,
        email: str,
        session_id: str,
        token_type: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> str:
        payload = {
            "userId": user_id,
            "email": email,
            "sessionId": session_id,
            "type": token_type,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": secrets.token_hex(8),
        }
        key = (
            self._config.secret_key
            if token_type == ACCESS_TOKEN_TYPE
            else self._config.refresh_secret_key
        )
        return jwt.encode(payload, key, algorithm=ALGORITHM)

    def _decode(self, token: str, key: str, expected_type: str) -> TokenPayload:
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired") from None
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from None

        if payload.get("type") != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token")

        try:
            return TokenPayload(
                user_id=payload["userId"],
                email=payload["email"],
                session_id=payload["sessionId"],
                type=payload["type"],
                exp=payload["exp"],
                iat=payload["iat"],
            )
        except KeyError as e:
            raise InvalidTokenError(f"Invalid token: missing claim {e}") from None
