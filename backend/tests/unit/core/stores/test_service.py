"""Tests for the store service."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from cryptography.fernet import Fernet
from darkhorse.core.auth.types import AuthContext, UserRole, UserStatus
from darkhorse.core.crypto import SecretCipher
from darkhorse.core.exceptions import (
    ConflictError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from darkhorse.core.stores.service import StoreService, validate_slug
from darkhorse.core.stores.types import SallaTokens


@pytest.fixture
def cipher() -> SecretCipher:
    """Cipher with a throwaway key."""
    return SecretCipher(Fernet.generate_key())


@pytest.fixture
def salla() -> MagicMock:
    """Salla OAuth client double."""
    client = MagicMock()
    client.build_authorization_url = MagicMock(
        side_effect=lambda client_id, state: (
            f"https://accounts.salla.sa/oauth2/auth?client_id={client_id}&state={state}"
        )
    )
    client.exchange_code = AsyncMock(
        return_value=SallaTokens(
            access_token="salla-access", refresh_token="salla-refresh", expires_in=3600
        )
    )
    return client


@pytest.fixture
def service(
    store_repo: Any, salla: MagicMock, notifier: Any, cipher: SecretCipher
) -> StoreService:
    """Store service over the in-memory repository."""
    return StoreService(store_repo, salla, notifier, cipher)


@pytest.fixture
def admin(auth_repo: Any, make_context: Callable[..., AuthContext]) -> AuthContext:
    """SUPER_ADMIN context."""
    user = auth_repo.add_user(
        email="root@example.com",
        full_name="Root Admin",
        role=UserRole.SUPER_ADMIN,
        status=UserStatus.ACTIVE,
        email_verified=True,
    )
    return make_context(user)


class TestValidateSlug:
    """Test slug format rules."""

    @pytest.mark.parametrize("slug", ["acme", "acme-2", "a1-b2-c3"])
    def test_valid(self, slug: str) -> None:
        """Lowercase words joined by single hyphens."""
        assert validate_slug(slug) == slug

    @pytest.mark.parametrize("slug", ["Acme", "acme_store", "-acme", "acme-", "ac--me", ""])
    def test_invalid(self, slug: str) -> None:
        """Anything else is rejected."""
        with pytest.raises(ValidationError):
            validate_slug(slug)


class TestStoreCrud:
    """Test create, read, update, delete."""

    @pytest.mark.asyncio
    async def test_create_store(self, service: StoreService, admin: AuthContext) -> None:
        """New stores carry creator summary and zeroed stats."""
        listing = await service.create_store("  Acme  ", "acme", admin)

        data = listing.to_dict()
        assert data["name"] == "Acme"
        assert data["isActive"] is True
        assert data["creator"]["email"] == "root@example.com"
        assert data["stats"] == {"totalUsers": 0, "totalWarehouses": 0, "pendingInvitations": 0}

    @pytest.mark.asyncio
    async def test_duplicate_slug_and_name(
        self, service: StoreService, admin: AuthContext
    ) -> None:
        """Slug and name are unique."""
        await service.create_store("Acme", "acme", admin)

        with pytest.raises(ConflictError, match="slug"):
            await service.create_store("Other", "acme", admin)
        with pytest.raises(ConflictError, match="name"):
            await service.create_store("Acme", "acme-2", admin)

    @pytest.mark.asyncio
    async def test_get_store_details(
        self, service: StoreService, admin: AuthContext, store_repo: Any
    ) -> None:
        """Details include warehouses."""
        listing = await service.create_store("Acme", "acme", admin)
        store_repo.add_warehouse(listing.store.id, name="Riyadh")

        details = await service.get_store(listing.store.id)

        assert details.to_dict()["warehouses"][0]["name"] == "Riyadh"
        assert details.stats.total_warehouses == 1

    @pytest.mark.asyncio
    async def test_get_missing_store(self, service: StoreService) -> None:
        """Unknown ids are NotFound."""
        with pytest.raises(NotFoundError):
            await service.get_store(uuid4())

    @pytest.mark.asyncio
    async def test_update_store(self, service: StoreService, admin: AuthContext) -> None:
        """Renames keep untouched fields; collisions conflict."""
        acme = await service.create_store("Acme", "acme", admin)
        await service.create_store("Beta", "beta", admin)

        updated = await service.update_store(acme.store.id, name="Acme KSA")
        assert updated.store.name == "Acme KSA"
        assert updated.store.slug == "acme"

        with pytest.raises(ConflictError):
            await service.update_store(acme.store.id, slug="beta")
        with pytest.raises(ValidationError):
            await service.update_store(acme.store.id, slug="Bad Slug")

    @pytest.mark.asyncio
    async def test_update_same_values_is_not_a_conflict(
        self, service: StoreService, admin: AuthContext
    ) -> None:
        """Setting a store's own name and slug is allowed."""
        acme = await service.create_store("Acme", "acme", admin)

        updated = await service.update_store(acme.store.id, name="Acme", slug="acme")

        assert updated.store.id == acme.store.id

    @pytest.mark.asyncio
    async def test_delete_empty_store_removes_invitations(
        self, service: StoreService, admin: AuthContext, auth_repo: Any
    ) -> None:
        """Deleting cascades to invitations."""
        listing = await service.create_store("Acme", "acme", admin)
        await auth_repo.create_invitation(
            email="a@x.com",
            full_name=None,
            token="t",
            role=UserRole.STORE_ADMIN,
            store_id=listing.store.id,
            warehouse_id=None,
            invited_by=admin.user_id,
            expires_at=datetime.now(UTC) + timedelta(hours=1),
        )

        deleted = await service.delete_store(listing.store.id)

        assert deleted.slug == "acme"
        assert auth_repo.invitations == {}
        with pytest.raises(NotFoundError):
            await service.get_store(listing.store.id)

    @pytest.mark.asyncio
    async def test_delete_blocked_by_users(
        self, service: StoreService, admin: AuthContext, auth_repo: Any
    ) -> None:
        """Stores with members cannot be deleted."""
        listing = await service.create_store("Acme", "acme", admin)
        auth_repo.add_user(email="m@x.com", store_id=listing.store.id)

        with pytest.raises(ValidationError, match="existing users or warehouses"):
            await service.delete_store(listing.store.id)

    @pytest.mark.asyncio
    async def test_delete_blocked_by_warehouses(
        self, service: StoreService, admin: AuthContext, store_repo: Any
    ) -> None:
        """Stores with warehouses cannot be deleted."""
        listing = await service.create_store("Acme", "acme", admin)
        store_repo.add_warehouse(listing.store.id)

        with pytest.raises(ValidationError):
            await service.delete_store(listing.store.id)


class TestListStores:
    """Test paging, search and sorting."""

    @pytest.mark.asyncio
    async def test_pagination(self, service: StoreService, admin: AuthContext) -> None:
        """Page metadata follows the total count."""
        for i in range(5):
            await service.create_store(f"Store {i}", f"store-{i}", admin)

        listings, pagination = await service.list_stores(
            page=2, limit=2, sort_by="name", sort_order="asc"
        )

        assert [item.store.slug for item in listings] == ["store-2", "store-3"]
        assert pagination.to_dict() == {
            "currentPage": 2,
            "totalPages": 3,
            "totalCount": 5,
            "limit": 2,
            "hasNextPage": True,
            "hasPreviousPage": True,
        }

    @pytest.mark.asyncio
    async def test_search(self, service: StoreService, admin: AuthContext) -> None:
        """Search matches name or slug, case-insensitively."""
        await service.create_store("Acme", "acme", admin)
        await service.create_store("Beta", "beta", admin)

        listings, pagination = await service.list_stores(search="  ACM ")

        assert [item.store.name for item in listings] == ["Acme"]
        assert pagination.total_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"page": 0},
            {"limit": 0},
            {"limit": 101},
            {"sort_by": "salla_client_secret"},
            {"sort_order": "sideways"},
        ],
    )
    async def test_invalid_parameters(self, service: StoreService, kwargs: dict[str, Any]) -> None:
        """Out-of-range paging or sorting is rejected."""
        with pytest.raises(ValidationError):
            await service.list_stores(**kwargs)


class TestSallaConnect:
    """Test the Salla OAuth connect step."""

    @pytest.mark.asyncio
    async def test_connect_with_credentials(
        self,
        service: StoreService,
        admin: AuthContext,
        store_repo: Any,
        cipher: SecretCipher,
    ) -> None:
        """Credentials are stored with the secret encrypted and a fresh state."""
        listing = await service.create_store("Acme", "acme", admin)

        connection = await service.connect_salla(listing.store.id, "client-1", "s3cret")

        stored = store_repo.stores[listing.store.id]
        assert stored.salla_client_id == "client-1"
        assert stored.salla_client_secret != "s3cret"
        assert cipher.decrypt(stored.salla_client_secret) == "s3cret"
        assert stored.salla_oauth_state == connection.state
        assert f"state={connection.state}" in connection.authorization_url

    @pytest.mark.asyncio
    async def test_reconnect_reuses_stored_credentials(
        self, service: StoreService, admin: AuthContext, store_repo: Any
    ) -> None:
        """Without credentials the stored ones are used with a new state."""
        listing = await service.create_store("Acme", "acme", admin)
        first = await service.connect_salla(listing.store.id, "client-1", "s3cret")

        second = await service.connect_salla(listing.store.id)

        assert second.state != first.state
        assert "client_id=client-1" in second.authorization_url
        assert store_repo.stores[listing.store.id].salla_oauth_state == second.state

    @pytest.mark.asyncio
    async def test_connect_without_any_credentials(
        self, service: StoreService, admin: AuthContext
    ) -> None:
        """A store that never had credentials needs them."""
        listing = await service.create_store("Acme", "acme", admin)

        with pytest.raises(ValidationError, match="required"):
            await service.connect_salla(listing.store.id)

    @pytest.mark.asyncio
    async def test_connect_with_half_credentials(
        self, service: StoreService, admin: AuthContext
    ) -> None:
        """Client id and secret come together."""
        listing = await service.create_store("Acme", "acme", admin)

        with pytest.raises(ValidationError, match="Both"):
            await service.connect_salla(listing.store.id, client_id="client-1")

    @pytest.mark.asyncio
    async def test_connect_missing_store(self, service: StoreService) -> None:
        """Unknown stores are NotFound."""
        with pytest.raises(NotFoundError):
            await service.connect_salla(uuid4(), "client-1", "s3cret")


class TestSallaCallback:
    """Test the Salla OAuth callback step."""

    @pytest.mark.asyncio
    async def test_unknown_state_never_calls_salla(
        self, service: StoreService, salla: MagicMock
    ) -> None:
        """Unknown state fails before any token exchange."""
        with pytest.raises(ValidationError, match="state"):
            await service.salla_callback("code", "forged-state")

        salla.exchange_code.assert_not_called()

    @pytest.mark.asyncio
    async def test_success_stores_encrypted_tokens(
        self,
        service: StoreService,
        admin: AuthContext,
        store_repo: Any,
        salla: MagicMock,
        notifier: Any,
        cipher: SecretCipher,
    ) -> None:
        """Tokens are encrypted at rest, state is consumed, owner is emailed."""
        listing = await service.create_store("Acme", "acme", admin)
        connection = await service.connect_salla(listing.store.id, "client-1", "s3cret")

        store, tokens = await service.salla_callback("auth-code", connection.state)

        salla.exchange_code.assert_awaited_once_with(
            "auth-code", client_id="client-1", client_secret="s3cret"
        )
        stored = store_repo.stores[listing.store.id]
        assert stored.salla_oauth_state is None
        assert cipher.decrypt(stored.salla_access_token) == "salla-access"
        assert cipher.decrypt(stored.salla_refresh_token) == "salla-refresh"
        assert stored.salla_connected_at is not None
        assert stored.salla_token_expires_at - stored.salla_connected_at == timedelta(seconds=3600)
        assert tokens.expires_in == 3600
        assert store.public_dict()["sallaConnectedAt"] is not None
        assert notifier.salla_connected == [
            {"to_email": "root@example.com", "store_name": "Acme", "full_name": "Root Admin"}
        ]

    @pytest.mark.asyncio
    async def test_state_is_single_use(
        self, service: StoreService, admin: AuthContext, salla: MagicMock
    ) -> None:
        """Replaying a consumed state fails."""
        listing = await service.create_store("Acme", "acme", admin)
        connection = await service.connect_salla(listing.store.id, "client-1", "s3cret")
        await service.salla_callback("auth-code", connection.state)

        with pytest.raises(ValidationError):
            await service.salla_callback("auth-code", connection.state)

        assert salla.exchange_code.await_count == 1

    @pytest.mark.asyncio
    async def test_exchange_failure_clears_state(
        self,
        service: StoreService,
        admin: AuthContext,
        store_repo: Any,
        salla: MagicMock,
    ) -> None:
        """A failed exchange consumes the state and stores no tokens."""
        listing = await service.create_store("Acme", "acme", admin)
        connection = await service.connect_salla(listing.store.id, "client-1", "s3cret")
        salla.exchange_code.side_effect = UpstreamServiceError("Salla token exchange failed")

        with pytest.raises(UpstreamServiceError):
            await service.salla_callback("auth-code", connection.state)

        stored = store_repo.stores[listing.store.id]
        assert stored.salla_oauth_state is None
        assert stored.salla_access_token is None

    @pytest.mark.asyncio
    async def test_missing_code_clears_state(
        self, service: StoreService, admin: AuthContext, store_repo: Any
    ) -> None:
        """An empty code also consumes the state."""
        listing = await service.create_store("Acme", "acme", admin)
        connection = await service.connect_salla(listing.store.id, "client-1", "s3cret")

        with pytest.raises(ValidationError, match="code"):
            await service.salla_callback("", connection.state)

        assert store_repo.stores[listing.store.id].salla_oauth_state is None

    @pytest.mark.asyncio
    async def test_email_failure_does_not_fail_callback(
        self,
        service: StoreService,
        admin: AuthContext,
        notifier: Any,
    ) -> None:
        """The confirmation email is best effort."""
        listing = await service.create_store("Acme", "acme", admin)
        connection = await service.connect_salla(listing.store.id, "client-1", "s3cret")
        notifier.send_salla_connected = AsyncMock(side_effect=RuntimeError("smtp down"))

        store, _ = await service.salla_callback("auth-code", connection.state)

        assert store.salla_connected_at is not None
