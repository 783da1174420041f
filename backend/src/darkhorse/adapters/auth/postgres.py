"""PostgreSQL implementation of AuthRepository."""

from datetime import datetime
from typing import Any
from uuid import UUID

from darkhorse.adapters.db.app_db import AppDatabase, affected_rows
from darkhorse.adapters.db.errors import translate_errors
from darkhorse.core.auth.types import (
    Invitation,
    InvitationStatus,
    Session,
    SessionMetadata,
    User,
    UserRole,
    UserStatus,
)
from darkhorse.core.exceptions import NotFoundError


class PostgresAuthRepository:
    """PostgreSQL implementation of auth repository."""

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_user(self, row: dict[str, Any]) -> User:
        """Convert database row to User model."""
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row.get("password_hash"),
            full_name=row.get("full_name"),
            first_name=row.get("first_name"),
            last_name=row.get("last_name"),
            phone=row.get("phone"),
            role=UserRole(row["role"]),
            status=UserStatus(row["status"]),
            store_id=row.get("store_id"),
            warehouse_id=row.get("warehouse_id"),
            invited_by=row.get("invited_by"),
            email_verified=row.get("email_verified", False),
            email_verified_at=row.get("email_verified_at"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )

    def _row_to_session(self, row: dict[str, Any]) -> Session:
        """Convert database row to Session model."""
        return Session(
            id=row["id"],
            user_id=row["user_id"],
            access_token=row["access_token"],
            refresh_token=row.get("refresh_token"),
            expires_at=row["expires_at"],
            created_at=row["created_at"],
            user_agent=row.get("user_agent"),
            ip_address=row.get("ip_address"),
            device_type=row.get("device_type"),
            device_info=row.get("device_info"),
            location=row.get("location"),
        )

    def _row_to_invitation(self, row: dict[str, Any]) -> Invitation:
        """Convert database row to Invitation model."""
        return Invitation(
            id=row["id"],
            email=row["email"],
            full_name=row.get("full_name"),
            token=row["token"],
            role=UserRole(row["role"]),
            store_id=row["store_id"],
            warehouse_id=row.get("warehouse_id"),
            invited_by=row["invited_by"],
            status=InvitationStatus(row["status"]),
            expires_at=row["expires_at"],
            accepted_at=row.get("accepted_at"),
            user_id=row.get("user_id"),
            created_at=row["created_at"],
        )

    # User operations
    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        async with translate_errors("loading user"):
            row = await self._db.fetch_one(
                "SELECT * FROM users WHERE id = $1",
                user_id,
            )
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        """Get a non-deleted user by email address."""
        async with translate_errors("loading user"):
            row = await self._db.fetch_one(
                """
                SELECT * FROM users
                WHERE lower(email) = lower($1) AND status <> 'DELETED'
                """,
                email,
            )
        return self._row_to_user(row) if row else None

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
        """Insert a user. The email counts as verified when a time is given."""
        async with translate_errors("creating user", "User with this email already exists"):
            row = await self._db.execute_returning(
                """
                INSERT INTO users (
                    email, password_hash, full_name, first_name, last_name,
                    role, status, email_verified, email_verified_at
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                RETURNING *
                """,
                email,
                password_hash,
                f"{first_name} {last_name}".strip(),
                first_name,
                last_name,
                role.value,
                status.value,
                email_verified_at is not None,
                email_verified_at,
            )
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_user(row)

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
        async with translate_errors("creating session"):
            row = await self._db.execute_returning(
                """
                INSERT INTO sessions (
                    id, user_id, access_token, refresh_token, expires_at,
                    user_agent, ip_address, device_type, device_info, location
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                RETURNING *
                """,
                session_id,
                user_id,
                access_token,
                refresh_token,
                expires_at,
                metadata.user_agent,
                metadata.ip_address,
                metadata.platform,
                metadata.device_info,
                metadata.location,
            )
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_session(row)

    async def get_session_by_id(self, session_id: str) -> Session | None:
        """Get session by ID."""
        async with translate_errors("loading session"):
            row = await self._db.fetch_one(
                "SELECT * FROM sessions WHERE id = $1",
                session_id,
            )
        return self._row_to_session(row) if row else None

    async def get_session_by_refresh_token(
        self, refresh_token: str, now: datetime
    ) -> Session | None:
        """Get a live session by its refresh token."""
        async with translate_errors("loading session"):
            row = await self._db.fetch_one(
                "SELECT * FROM sessions WHERE refresh_token = $1 AND expires_at > $2",
                refresh_token,
                now,
            )
        return self._row_to_session(row) if row else None

    async def get_latest_session_for_user(self, user_id: UUID, now: datetime) -> Session | None:
        """Get the newest live session of a user."""
        async with translate_errors("loading session"):
            row = await self._db.fetch_one(
                """
                SELECT * FROM sessions
                WHERE user_id = $1 AND expires_at > $2
                ORDER BY created_at DESC
                LIMIT 1
                """,
                user_id,
                now,
            )
        return self._row_to_session(row) if row else None

    async def update_session_tokens(
        self,
        session_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> Session | None:
        """Overwrite the token pair and expiry of a session."""
        async with translate_errors("updating session tokens"):
            row = await self._db.execute_returning(
                """
                UPDATE sessions
                SET access_token = $2, refresh_token = $3, expires_at = $4, updated_at = NOW()
                WHERE id = $1
                RETURNING *
                """,
                session_id,
                access_token,
                refresh_token,
                expires_at,
            )
        return self._row_to_session(row) if row else None

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session if it exists."""
        async with translate_errors("deleting session"):
            result = await self._db.execute(
                "DELETE FROM sessions WHERE id = $1",
                session_id,
            )
        return affected_rows(result) > 0

    async def delete_user_sessions(self, user_id: UUID) -> int:
        """Delete every session of a user."""
        async with translate_errors("deleting user sessions"):
            result = await self._db.execute(
                "DELETE FROM sessions WHERE user_id = $1",
                user_id,
            )
        return affected_rows(result)

    async def delete_expired_sessions(self, now: datetime) -> int:
        """Delete sessions that expired before ``now``."""
        async with translate_errors("deleting expired sessions"):
            result = await self._db.execute(
                "DELETE FROM sessions WHERE expires_at <= $1",
                now,
            )
        return affected_rows(result)

    async def list_user_sessions(
        self, user_id: UUID, limit: int, offset: int
    ) -> tuple[list[Session], int]:
        """Page through a user's sessions, newest first."""
        async with translate_errors("listing sessions"):
            rows = await self._db.fetch_all(
                """
                SELECT * FROM sessions
                WHERE user_id = $1
                ORDER BY created_at DESC
                LIMIT $2 OFFSET $3
                """,
                user_id,
                limit,
                offset,
            )
            total = await self._db.fetch_value(
                "SELECT COUNT(*) FROM sessions WHERE user_id = $1",
                user_id,
            )
        return [self._row_to_session(row) for row in rows], int(total or 0)

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
        """Insert a PENDING invitation.

        The partial unique index on pending emails turns a lost race into
        ConflictError.
        """
        async with translate_errors(
            "creating invitation", "A pending invitation already exists for this email"
        ):
            row = await self._db.execute_returning(
                """
                INSERT INTO invitations (
                    email, full_name, token, role, store_id, warehouse_id,
                    invited_by, status, expires_at
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, 'PENDING', $8)
                RETURNING *
                """,
                email,
                full_name,
                token,
                role.value,
                store_id,
                warehouse_id,
                invited_by,
                expires_at,
            )
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_invitation(row)

    async def get_invitation_by_id(self, invitation_id: UUID) -> Invitation | None:
        """Get invitation by ID."""
        async with translate_errors("loading invitation"):
            row = await self._db.fetch_one(
                "SELECT * FROM invitations WHERE id = $1",
                invitation_id,
            )
        return self._row_to_invitation(row) if row else None

    async def get_invitation_by_token(self, token: str) -> Invitation | None:
        """Get invitation by token."""
        async with translate_errors("loading invitation"):
            row = await self._db.fetch_one(
                "SELECT * FROM invitations WHERE token = $1",
                token,
            )
        return self._row_to_invitation(row) if row else None

    async def get_pending_invitation_by_email(self, email: str) -> Invitation | None:
        """Get the PENDING invitation for an email."""
        async with translate_errors("loading invitation"):
            row = await self._db.fetch_one(
                """
                SELECT * FROM invitations
                WHERE lower(email) = lower($1) AND status = 'PENDING'
                """,
                email,
            )
        return self._row_to_invitation(row) if row else None

    async def mark_invitation_expired(self, invitation_id: UUID) -> bool:
        """Move a PENDING invitation to EXPIRED."""
        async with translate_errors("expiring invitation"):
            result = await self._db.execute(
                """
                UPDATE invitations SET status = 'EXPIRED', updated_at = NOW()
                WHERE id = $1 AND status = 'PENDING'
                """,
                invitation_id,
            )
        return affected_rows(result) > 0

    async def expire_stale_invitations(self, email: str, now: datetime) -> int:
        """Expire PENDING invitations for ``email`` whose window has passed."""
        async with translate_errors("expiring invitations"):
            result = await self._db.execute(
                """
                UPDATE invitations SET status = 'EXPIRED', updated_at = NOW()
                WHERE lower(email) = lower($1) AND status = 'PENDING' AND expires_at <= $2
                """,
                email,
                now,
            )
        return affected_rows(result)

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

        The conditional UPDATE decides concurrent acceptances: exactly one
        caller sees the row; the rest get NotFoundError.
        """
        async with translate_errors("accepting invitation", "User with this email already exists"):
            async with self._db.transaction() as conn:
                invitation = await conn.fetchrow(
                    """
                    UPDATE invitations
                    SET status = 'ACCEPTED', accepted_at = $2, updated_at = $2
                    WHERE id = $1 AND status = 'PENDING' AND expires_at > $2
                    RETURNING *
                    """,
                    invitation_id,
                    accepted_at,
                )
                if invitation is None:
                    raise NotFoundError("Invalid or already used invitation token")

                user = await conn.fetchrow(
                    """
                    INSERT INTO users (
                        email, password_hash, full_name, first_name, last_name, phone,
                        role, status, store_id, warehouse_id, invited_by,
                        email_verified, email_verified_at
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, 'ACTIVE', $8, $9, $10, true, $11)
                    RETURNING *
                    """,
                    invitation["email"],
                    password_hash,
                    f"{first_name} {last_name}".strip(),
                    first_name,
                    last_name,
                    phone,
                    invitation["role"],
                    invitation["store_id"],
                    invitation["warehouse_id"],
                    invitation["invited_by"],
                    accepted_at,
                )
                assert user is not None, "INSERT RETURNING should always return a row"

                await conn.execute(
                    "UPDATE invitations SET user_id = $1 WHERE id = $2",
                    user["id"],
                    invitation_id,
                )

        return self._row_to_user(dict(user))

    async def list_store_invitations(
        self, store_id: UUID, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        """List invitations for a store, newest first."""
        async with translate_errors("listing invitations"):
            if status is None:
                rows = await self._db.fetch_all(
                    "SELECT * FROM invitations WHERE store_id = $1 ORDER BY created_at DESC",
                    store_id,
                )
            else:
                rows = await self._db.fetch_all(
                    """
                    SELECT * FROM invitations
                    WHERE store_id = $1 AND status = $2
                    ORDER BY created_at DESC
                    """,
                    store_id,
                    status.value,
                )
        return [self._row_to_invitation(row) for row in rows]
