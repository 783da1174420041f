"""Shared fixtures: in-memory repositories for multi-step scenarios."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import pytest
from darkhorse.core.auth.invitations import InvitationConfig, InvitationManager
from darkhorse.core.auth.jwt import JwtConfig, TokenIssuer
from darkhorse.core.auth.sessions import SessionManager
from darkhorse.core.auth.types import (
    AuthContext,
    Invitation,
    InvitationStatus,
    Session,
    SessionMetadata,
    User,
    UserRole,
    UserStatus,
)
from darkhorse.core.exceptions import ConflictError, NotFoundError
from darkhorse.core.stores.types import Store, StoreStats, Warehouse


class InMemoryAuthRepository:
    """AuthRepository backed by dicts. Enforces the same uniqueness rules as the schema."""

    def __init__(self) -> None:
        self.users: dict[UUID, User] = {}
        self.sessions: dict[str, Session] = {}
        self.invitations: dict[UUID, Invitation] = {}

    def add_user(self, **fields: Any) -> User:
        user = User(id=fields.pop("id", uuid4()), created_at=datetime.now(UTC), **fields)
        self.users[user.id] = user
        return user

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        for user in self.users.values():
            if user.email.lower() == email.lower() and user.status != UserStatus.DELETED:
                return user
        return None

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
        if await self.get_user_by_email(email):
            raise ConflictError("User with this email already exists")
        return self.add_user(
            email=email,
            password_hash=password_hash,
            full_name=f"{first_name} {last_name}".strip(),
            first_name=first_name,
            last_name=last_name,
            role=role,
            status=status,
            email_verified=email_verified_at is not None,
            email_verified_at=email_verified_at,
        )

    async def create_session(
        self,
        session_id: str,
        user_id: UUID,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        metadata: SessionMetadata,
    ) -> Session:
        session = Session(
            id=session_id,
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            created_at=datetime.now(UTC),
            user_agent=metadata.user_agent,
            ip_address=metadata.ip_address,
            device_type=metadata.platform,
            device_info=metadata.device_info,
            location=metadata.location,
        )
        self.sessions[session_id] = session
        return session

    async def get_session_by_id(self, session_id: str) -> Session | None:
        return self.sessions.get(session_id)

    async def get_session_by_refresh_token(
        self, refresh_token: str, now: datetime
    ) -> Session | None:
        for session in self.sessions.values():
            if session.refresh_token == refresh_token and session.expires_at > now:
                return session
        return None

    async def get_latest_session_for_user(self, user_id: UUID, now: datetime) -> Session | None:
        live = [s for s in self.sessions.values() if s.user_id == user_id and s.expires_at > now]
        return max(live, key=lambda s: s.created_at) if live else None

    async def update_session_tokens(
        self,
        session_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> Session | None:
        session = self.sessions.get(session_id)
        if session is None:
            return None
        updated = session.model_copy(
            update={
                "access_token": access_token,
                "refresh_token": refresh_token,
                "expires_at": expires_at,
            }
        )
        self.sessions[session_id] = updated
        return updated

    async def delete_session(self, session_id: str) -> bool:
        return self.sessions.pop(session_id, None) is not None

    async def delete_user_sessions(self, user_id: UUID) -> int:
        ids = [sid for sid, s in self.sessions.items() if s.user_id == user_id]
        for sid in ids:
            del self.sessions[sid]
        return len(ids)

    async def delete_expired_sessions(self, now: datetime) -> int:
        ids = [sid for sid, s in self.sessions.items() if s.expires_at <= now]
        for sid in ids:
            del self.sessions[sid]
        return len(ids)

    async def list_user_sessions(
        self, user_id: UUID, limit: int, offset: int
    ) -> tuple[list[Session], int]:
        owned = sorted(
            (s for s in self.sessions.values() if s.user_id == user_id),
            key=lambda s: s.created_at,
            reverse=True,
        )
        return owned[offset : offset + limit], len(owned)

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
        if await self.get_pending_invitation_by_email(email):
            raise ConflictError("A pending invitation already exists for this email")
        invitation = Invitation(
            id=uuid4(),
            email=email,
            full_name=full_name,
            token=token,
            role=role,
            store_id=store_id,
            warehouse_id=warehouse_id,
            invited_by=invited_by,
            expires_at=expires_at,
            created_at=datetime.now(UTC),
        )
        self.invitations[invitation.id] = invitation
        return invitation

    async def get_invitation_by_id(self, invitation_id: UUID) -> Invitation | None:
        return self.invitations.get(invitation_id)

    async def get_invitation_by_token(self, token: str) -> Invitation | None:
        for invitation in self.invitations.values():
            if invitation.token == token:
                return invitation
        return None

    async def get_pending_invitation_by_email(self, email: str) -> Invitation | None:
        for invitation in self.invitations.values():
            if (
                invitation.email.lower() == email.lower()
                and invitation.status == InvitationStatus.PENDING
            ):
                return invitation
        return None

    async def mark_invitation_expired(self, invitation_id: UUID) -> bool:
        invitation = self.invitations.get(invitation_id)
        if invitation is None or invitation.status != InvitationStatus.PENDING:
            return False
        self.invitations[invitation_id] = invitation.model_copy(
            update={"status": InvitationStatus.EXPIRED}
        )
        return True

    async def expire_stale_invitations(self, email: str, now: datetime) -> int:
        count = 0
        for invitation in list(self.invitations.values()):
            if (
                invitation.email.lower() == email.lower()
                and invitation.status == InvitationStatus.PENDING
                and invitation.expires_at <= now
            ):
                await self.mark_invitation_expired(invitation.id)
                count += 1
        return count

    async def accept_invitation(
        self,
        invitation_id: UUID,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone: str | None,
        accepted_at: datetime,
    ) -> User:
        invitation = self.invitations.get(invitation_id)
        if invitation is None or invitation.status != InvitationStatus.PENDING:
            raise NotFoundError("Invalid or already used invitation token")
        if await self.get_user_by_email(invitation.email):
            raise ConflictError("User with this email already exists")

        user = self.add_user(
            email=invitation.email,
            password_hash=password_hash,
            full_name=f"{first_name} {last_name}",
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=invitation.role,
            status=UserStatus.ACTIVE,
            store_id=invitation.store_id,
            warehouse_id=invitation.warehouse_id,
            invited_by=invitation.invited_by,
            email_verified=True,
            email_verified_at=accepted_at,
        )
        self.invitations[invitation_id] = invitation.model_copy(
            update={
                "status": InvitationStatus.ACCEPTED,
                "accepted_at": accepted_at,
                "user_id": user.id,
            }
        )
        return user

    async def list_store_invitations(
        self, store_id: UUID, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        return [
            i
            for i in self.invitations.values()
            if i.store_id == store_id and (status is None or i.status == status)
        ]


class InMemoryStoreRepository:
    """StoreRepository backed by dicts. Reads users from the auth repository."""

    def __init__(self, auth_repo: InMemoryAuthRepository) -> None:
        self.auth_repo = auth_repo
        self.stores: dict[UUID, Store] = {}
        self.warehouses: dict[UUID, Warehouse] = {}

    def add_store(self, **fields: Any) -> Store:
        store = Store(id=fields.pop("id", uuid4()), created_at=datetime.now(UTC), **fields)
        self.stores[store.id] = store
        return store

    def add_warehouse(self, store_id: UUID, name: str = "Main") -> Warehouse:
        warehouse = Warehouse(id=uuid4(), store_id=store_id, name=name)
        self.warehouses[warehouse.id] = warehouse
        return warehouse

    def _update(self, store_id: UUID, **fields: Any) -> Store | None:
        store = self.stores.get(store_id)
        if store is None:
            return None
        updated = store.model_copy(update={**fields, "updated_at": datetime.now(UTC)})
        self.stores[store_id] = updated
        return updated

    async def get_store_by_id(self, store_id: UUID) -> Store | None:
        return self.stores.get(store_id)

    async def get_store_by_slug(self, slug: str) -> Store | None:
        return next((s for s in self.stores.values() if s.slug == slug), None)

    async def get_store_by_name(self, name: str) -> Store | None:
        return next((s for s in self.stores.values() if s.name == name), None)

    async def get_store_by_oauth_state(self, state: str) -> Store | None:
        return next((s for s in self.stores.values() if s.salla_oauth_state == state), None)

    async def create_store(self, name: str, slug: str, created_by: UUID) -> Store:
        return self.add_store(name=name, slug=slug, created_by=created_by)

    async def update_store(
        self, store_id: UUID, name: str | None = None, slug: str | None = None
    ) -> Store | None:
        fields = {k: v for k, v in {"name": name, "slug": slug}.items() if v is not None}
        return self._update(store_id, **fields)

    async def delete_store(self, store_id: UUID) -> bool:
        if self.stores.pop(store_id, None) is None:
            return False
        for invitation_id in [
            i.id for i in self.auth_repo.invitations.values() if i.store_id == store_id
        ]:
            del self.auth_repo.invitations[invitation_id]
        return True

    async def list_stores(
        self,
        offset: int,
        limit: int,
        search: str | None,
        sort_by: str,
        sort_order: str,
    ) -> tuple[list[Store], int]:
        stores = [
            s
            for s in self.stores.values()
            if not search or search.lower() in s.name.lower() or search.lower() in s.slug.lower()
        ]
        stores.sort(key=lambda s: getattr(s, sort_by) or s.created_at, reverse=sort_order == "desc")
        return stores[offset : offset + limit], len(stores)

    async def get_store_stats(self, store_id: UUID) -> StoreStats:
        return StoreStats(
            total_users=sum(
                1
                for u in self.auth_repo.users.values()
                if u.store_id == store_id and u.status != UserStatus.DELETED
            ),
            total_warehouses=sum(1 for w in self.warehouses.values() if w.store_id == store_id),
            pending_invitations=sum(
                1
                for i in self.auth_repo.invitations.values()
                if i.store_id == store_id and i.status == InvitationStatus.PENDING
            ),
        )

    async def get_user_summary(self, user_id: UUID) -> dict[str, Any] | None:
        user = self.auth_repo.users.get(user_id)
        if user is None:
            return None
        return {"id": str(user.id), "fullName": user.full_name, "email": user.email}

    async def list_store_users(self, store_id: UUID) -> list[dict[str, Any]]:
        return [
            {
                "id": str(u.id),
                "email": u.email,
                "fullName": u.full_name,
                "role": u.role.value,
                "status": u.status.value,
            }
            for u in self.auth_repo.users.values()
            if u.store_id == store_id
        ]

    async def list_store_warehouses(self, store_id: UUID) -> list[Warehouse]:
        return [w for w in self.warehouses.values() if w.store_id == store_id]

    async def save_salla_credentials(
        self, store_id: UUID, client_id: str, client_secret: str, state: str
    ) -> Store | None:
        return self._update(
            store_id,
            salla_client_id=client_id,
            salla_client_secret=client_secret,
            salla_oauth_state=state,
        )

    async def save_oauth_state(self, store_id: UUID, state: str) -> Store | None:
        return self._update(store_id, salla_oauth_state=state)

    async def save_salla_tokens(
        self,
        store_id: UUID,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime,
        connected_at: datetime,
    ) -> Store | None:
        return self._update(
            store_id,
            salla_access_token=access_token,
            salla_refresh_token=refresh_token,
            salla_token_expires_at=expires_at,
            salla_connected_at=connected_at,
            salla_oauth_state=None,
        )

    async def clear_oauth_state(self, store_id: UUID) -> None:
        self._update(store_id, salla_oauth_state=None)


@dataclass
class RecordingNotifier:
    """Notifier that remembers what it was asked to send."""

    delivered: bool = True
    invitations: list[dict[str, Any]] = field(default_factory=list)
    salla_connected: list[dict[str, Any]] = field(default_factory=list)

    async def send_invitation(self, **kwargs: Any) -> bool:
        self.invitations.append(kwargs)
        return self.delivered

    async def send_salla_connected(self, **kwargs: Any) -> bool:
        self.salla_connected.append(kwargs)
        return self.delivered


@pytest.fixture
def jwt_config() -> JwtConfig:
    """Signing config with distinct test secrets."""
    return JwtConfig(
        secret_key="test-access-secret-0123456789abcdef",  # pragma: allowlist secret
        refresh_secret_key="test-refresh-secret-0123456789abcdef",  # pragma: allowlist secret
    )


@pytest.fixture
def issuer(jwt_config: JwtConfig) -> TokenIssuer:
    """Token issuer with test secrets."""
    return TokenIssuer(jwt_config)


@pytest.fixture
def auth_repo() -> InMemoryAuthRepository:
    """Empty in-memory auth repository."""
    return InMemoryAuthRepository()


@pytest.fixture
def store_repo(auth_repo: InMemoryAuthRepository) -> InMemoryStoreRepository:
    """Empty in-memory store repository sharing users with ``auth_repo``."""
    return InMemoryStoreRepository(auth_repo)


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier that records deliveries."""
    return RecordingNotifier()


@pytest.fixture
def session_manager(auth_repo: InMemoryAuthRepository, issuer: TokenIssuer) -> SessionManager:
    """Session manager over the in-memory repository."""
    return SessionManager(auth_repo, issuer)


@pytest.fixture
def invitation_manager(
    auth_repo: InMemoryAuthRepository,
    store_repo: InMemoryStoreRepository,
    session_manager: SessionManager,
    notifier: RecordingNotifier,
) -> InvitationManager:
    """Invitation manager wired to in-memory collaborators."""
    return InvitationManager(
        repo=auth_repo,
        stores=store_repo,
        sessions=session_manager,
        notifier=notifier,
        config=InvitationConfig(frontend_url="https://app.example.com"),
    )


@pytest.fixture
def make_context() -> Callable[..., AuthContext]:
    """Factory for the AuthContext of a stored user."""

    def _make(user: User, session_id: str = "session-1") -> AuthContext:
        return AuthContext(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            status=user.status,
            store_id=user.store_id,
            warehouse_id=user.warehouse_id,
            session_id=session_id,
        )

    return _make
