"""Auth service for login, request authentication, and token management."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

import structlog

from darkhorse.core.auth.jwt import TokenIssuer, extract_token_from_header
from darkhorse.core.auth.password import verify_password
from darkhorse.core.auth.repository import AuthRepository
from darkhorse.core.auth.sessions import SessionManager
from darkhorse.core.auth.types import (
    AuthContext,
    Session,
    SessionMetadata,
    TokenPair,
    User,
    UserStatus,
)
from darkhorse.core.exceptions import (
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
)

logger = structlog.get_logger()

INVALID_LOGIN_MESSAGE = "Invalid email or password"


@dataclass
class LoginResult:
    """User, session and tokens produced by a successful login."""

    user: User
    session: Session
    tokens: TokenPair


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        repo: AuthRepository,
        sessions: SessionManager,
        issuer: TokenIssuer,
    ) -> None:
        """Initialize the auth service.

        Args:
            repo: Auth repository for database operations.
            sessions: Session manager.
            issuer: Verifies bearer and refresh tokens.
        """
        self._repo = repo
        self._sessions = sessions
        self._issuer = issuer

    async def login(
        self,
        email: str,
        password: str,
        metadata: SessionMetadata | None = None,
    ) -> LoginResult:
        """Authenticate user and start a session.

        The password is checked before account state, so status is only
        disclosed to callers who know the password.

        Args:
            email: User's email address.
            password: Plain text password.
            metadata: Device details for the session.

        Returns:
            LoginResult with the user, session and token pair.

        Raises:
            NotFoundError: If no account uses the email.
            InvalidCredentialsError: If the password does not match.
            UnauthorizedError: If the account is not active or not verified.
        """
        user = await self._repo.get_user_by_email(email.strip().lower())
        if user is None:
            raise NotFoundError(INVALID_LOGIN_MESSAGE)

        if not verify_password(password, user.password_hash):
            logger.info("login_failed", user_id=str(user.id), reason="password_mismatch")
            raise InvalidCredentialsError(INVALID_LOGIN_MESSAGE)

        if user.status != UserStatus.ACTIVE:
            raise UnauthorizedError("Account is not active")

        if not user.email_verified:
            raise UnauthorizedError("Email address has not been verified")

        session, tokens = await self._sessions.create_session(user.id, user.email, metadata)
        logger.info("login_succeeded", user_id=str(user.id), session_id=session.id)
        return LoginResult(user=user, session=session, tokens=tokens)

    async def authenticate(self, authorization: str | None) -> AuthContext:
        """Resolve an Authorization header into the caller's identity.

        The user is re-read on every call so suspensions take effect while
        old tokens are still within their lifetime.

        Args:
            authorization: Raw ``Authorization`` header.

        Returns:
            AuthContext for the caller.

        Raises:
            UnauthorizedError: Missing header, or the user no longer exists.
            InvalidTokenError: Bad token, or it no longer matches its session.
            NotFoundError: The session is gone or expired.
            ForbiddenError: The account is not active.
        """
        token = extract_token_from_header(authorization)
        payload = self._issuer.verify_access_token(token)

        session = await self._sessions.validate_session(payload.session_id)
        if session.access_token != token:
            raise InvalidTokenError("Token session mismatch")

        user = await self._repo.get_user_by_id(UUID(payload.user_id))
        if user is None:
            raise UnauthorizedError("User not found")

        if user.status != UserStatus.ACTIVE:
            raise ForbiddenError("Account is not active")

        expires_soon = self._issuer.is_token_near_expiry(datetime.fromtimestamp(payload.exp, UTC))

        return AuthContext(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            status=user.status,
            store_id=user.store_id,
            warehouse_id=user.warehouse_id,
            session_id=session.id,
            token_expires_soon=expires_soon,
        )

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new token pair on the same session.

        Raises:
            InvalidTokenError: If the refresh token is invalid, revoked or
                belongs to another session.
            UnauthorizedError: If the account is gone or not active.
        """
        payload = self._issuer.verify_refresh_token(refresh_token)

        session = await self._sessions.get_session_by_refresh_token(refresh_token)
        if session is None or session.id != payload.session_id:
            raise InvalidTokenError("Refresh token has been revoked")

        user = await self._repo.get_user_by_id(session.user_id)
        if user is None or user.status != UserStatus.ACTIVE:
            await self._sessions.invalidate_session(session.id)
            raise UnauthorizedError("User not found or disabled")

        return await self._sessions.rotate_tokens(session, user.email)

    async def logout(self, context: AuthContext) -> None:
        """End the caller's current session."""
        await self._sessions.invalidate_session(context.session_id)

    async def logout_all(self, context: AuthContext) -> int:
        """End every session the caller holds."""
        return await self._sessions.invalidate_all_user_sessions(context.user_id)

    async def list_sessions(
        self, context: AuthContext, limit: int = 10, offset: int = 0
    ) -> tuple[list[Session], int]:
        """Page through the caller's sessions."""
        return await self._sessions.get_user_sessions(context.user_id, limit, offset)

    async def get_profile(self, context: AuthContext) -> User:
        """Current user record for the caller.

        Raises:
            NotFoundError: If the user vanished since authentication.
        """
        user = await self._repo.get_user_by_id(context.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
