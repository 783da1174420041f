"""Session lifecycle: create, validate, rotate, terminate.

A session row is the authority on whether issued tokens are still usable.
Its ``expires_at`` equals the refresh token expiry. Expired rows are
deleted lazily the first time validation sees them, so they never come
back as valid.
"""

from datetime import UTC, datetime
from uuid import UUID

import structlog

from darkhorse.core.auth.jwt import TokenIssuer, generate_session_id
from darkhorse.core.auth.repository import AuthRepository
from darkhorse.core.auth.types import Session, SessionMetadata, TokenPair
from darkhorse.core.exceptions import NotFoundError

logger = structlog.get_logger()


class SessionManager:
    """Persists sessions and the token pairs bound to them."""

    def __init__(self, repo: AuthRepository, issuer: TokenIssuer) -> None:
        """Initialize with repository and token issuer.

        Args:
            repo: Auth repository for database operations.
            issuer: Signs token pairs for new and rotated sessions.
        """
        self._repo = repo
        self._issuer = issuer

    async def create_session(
        self,
        user_id: UUID,
        email: str,
        metadata: SessionMetadata | None = None,
    ) -> tuple[Session, TokenPair]:
        """Start a session and issue its first token pair.

        Args:
            user_id: Owner of the session.
            email: Carried in the token claims.
            metadata: Device details from the login request.

        Returns:
            The stored session and the issued tokens.
        """
        session_id = generate_session_id()
        tokens = self._issuer.issue_token_pair(str(user_id), email, session_id)

        session = await self._repo.create_session(
            session_id=session_id,
            user_id=user_id,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=tokens.refresh_token_expires_at,
            metadata=metadata or SessionMetadata(),
        )

        logger.info("session_created", user_id=str(user_id), session_id=session_id)
        return session, tokens

    async def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID without liveness checks."""
        return await self._repo.get_session_by_id(session_id)

    async def validate_session(self, session_id: str) -> Session:
        """Return the session if it exists and has not expired.

        An expired session is deleted before the error is raised.

        Raises:
            NotFoundError: If the session is absent or expired.
        """
        session = await self._repo.get_session_by_id(session_id)
        if session is None:
            raise NotFoundError("Session not found")

        expires_at = session.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)

        if expires_at <= datetime.now(UTC):
            # A concurrent request may already have removed it
            await self._repo.delete_session(session_id)
            logger.info("session_expired", session_id=session_id, user_id=str(session.user_id))
            raise NotFoundError("Session has expired")

        return session

    async def update_session_tokens(self, session_id: str, tokens: TokenPair) -> Session:
        """Write a new token pair into an existing session.

        Raises:
            NotFoundError: If the session no longer exists.
        """
        session = await self._repo.update_session_tokens(
            session_id=session_id,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=tokens.refresh_token_expires_at,
        )
        if session is None:
            raise NotFoundError("Session not found")
        return session

    async def rotate_tokens(self, session: Session, email: str) -> TokenPair:
        """Issue a fresh pair for the same session and store it in place."""
        tokens = self._issuer.issue_token_pair(str(session.user_id), email, session.id)
        await self.update_session_tokens(session.id, tokens)
        logger.info("session_rotated", session_id=session.id, user_id=str(session.user_id))
        return tokens

    async def invalidate_session(self, session_id: str) -> bool:
        """Delete one session. Deleting an absent session is not an error."""
        removed = await self._repo.delete_session(session_id)
        logger.info("session_invalidated", session_id=session_id, removed=removed)
        return removed

    async def invalidate_all_user_sessions(self, user_id: UUID) -> int:
        """Delete every session a user holds."""
        count = await self._repo.delete_user_sessions(user_id)
        logger.info("user_sessions_invalidated", user_id=str(user_id), count=count)
        return count

    async def get_session_by_refresh_token(self, refresh_token: str) -> Session | None:
        """Look up a live session by refresh token."""
        return await self._repo.get_session_by_refresh_token(refresh_token, datetime.now(UTC))

    async def get_active_session_by_user_id(self, user_id: UUID) -> Session | None:
        """Most recent live session of a user."""
        return await self._repo.get_latest_session_for_user(user_id, datetime.now(UTC))

    async def get_user_sessions(
        self, user_id: UUID, limit: int = 10, offset: int = 0
    ) -> tuple[list[Session], int]:
        """Page through a user's sessions, newest first."""
        return await self._repo.list_user_sessions(user_id, limit, offset)

    async def cleanup_expired_sessions(self) -> int:
        """Delete all sessions that have expired. Returns the number removed."""
        count = await self._repo.delete_expired_sessions(datetime.now(UTC))
        if count:
            logger.info("expired_sessions_cleaned", count=count)
        return count
