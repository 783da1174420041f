"""Auth repository protocol for database operations."""

from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from darkhorse.core.auth.types import (
    Invitation,
    InvitationStatus,
    Session,
    SessionMetadata,
    User,
    UserRole,
    UserStatus,
)


@runtime_checkable
class AuthRepository(Protocol):
    """Protocol for auth database operations.

    Implementations provide actual database access (PostgreSQL, etc).
    Uniqueness violations surface as ConflictError, other failures as
    DatabaseError.
    """

    # User operations
    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        """Get a non-deleted user by email address (case-insensitive)."""
        ...

    async def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        status: UserStatus,
        email_verified_at: datetime | None,
    ) -> User:
        """Insert a user outside the invitation flow.

        Raises:
            ConflictError: If a live account already uses the email.
        """
        ...

    # Session operations
    async def create_session(
        self,
        session_id: str,
        user_id: UUID,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        metadata: SessionMetadata,
    ) -> Session:
        """Persist a new session row."""
        ...

    async def get_session_by_id(self, session_id: str) -> Session | None:
        """Get session by ID, expired or not."""
        ...

    async def get_session_by_refresh_token(
        self, refresh_token: str, now: datetime
    ) -> Session | None:
        """Get a session expiring after ``now`` by its refresh token."""
        ...

    async def get_latest_session_for_user(self, user_id: UUID, now: datetime) -> Session | None:
        """Get the newest session of a user that expires after ``now``."""
        ...

    async def update_session_tokens(
        self,
        session_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> Session | None:
        """Overwrite the token pair and expiry of a session in place."""
        ...

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session if it exists. Returns True if a row was removed."""
        ...

    async def delete_user_sessions(self, user_id: UUID) -> int:
        """Delete every session of a user. Returns the number removed."""
        ...

    async def delete_expired_sessions(self, now: datetime) -> int:
        """Delete sessions that expired before ``now``."""
        ...

    async def list_user_sessions(
        self, user_id: UUID, limit: int, offset: int
    ) -> tuple[list[Session], int]:
        """Page through a user's sessions, newest first, with the total count."""
        ...

    # Invitation operations
    async def create_invitation(
        self,
        email: str,
        full_name: str | None,
        token: str,
        role: UserRole,
        store_id: UUID,
        warehouse_id: UUID | None,
        invited_by: UUID,
        expires_at: datetime,
    ) -> Invitation:
        """Insert a PENDING invitation."""
        ...

    async def get_invitation_by_id(self, invitation_id: UUID) -> Invitation | None:
        """Get invitation by ID."""
        ...

    async def get_invitation_by_token(self, token: str) -> Invitation | None:
        """Get invitation by its token, in any status."""
        ...

    async def get_pending_invitation_by_email(self, email: str) -> Invitation | None:
        """Get the PENDING invitation for an email, if any."""
        ...

    async def mark_invitation_expired(self, invitation_id: UUID) -> bool:
        """Move a PENDING invitation to EXPIRED. No-op for other statuses."""
        ...

    async def expire_stale_invitations(self, email: str, now: datetime) -> int:
        """Mark PENDING invitations for ``email`` whose window has passed as EXPIRED."""
        ...

    async def accept_invitation(
        self,
        invitation_id: UUID,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone: str | None,
        accepted_at: datetime,
    ) -> User:
        """Claim a PENDING invitation and create its user in one transaction.

        Raises:
            NotFoundError: If the invitation is no longer PENDING.
            ConflictError: If a user with the email already exists.
        """
        ...

    async def list_store_invitations(
        self, store_id: UUID, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        """List invitations for a store, newest first."""
        ...
