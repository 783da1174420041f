"""Store management and Salla store connection."""

import re
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

import structlog

from darkhorse.core.auth.tokens import generate_oauth_state
from darkhorse.core.auth.types import AuthContext
from darkhorse.core.crypto import SecretCipher
from darkhorse.core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from darkhorse.core.notifications import Notifier
from darkhorse.core.stores.repository import StoreRepository
from darkhorse.core.stores.types import (
    STORE_SORT_FIELDS,
    Pagination,
    SallaConnection,
    SallaTokens,
    Store,
    StoreDetails,
    StoreListing,
)

logger = structlog.get_logger()

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
MAX_PAGE_SIZE = 100


class SallaOAuth(Protocol):
    """OAuth operations against Salla."""

    def build_authorization_url(self, client_id: str, state: str) -> str:
        """Authorization URL the store admin is redirected to."""
        ...

    async def exchange_code(self, code: str, client_id: str, client_secret: str) -> SallaTokens:
        """Exchange an authorization code for tokens."""
        ...


def validate_slug(slug: str) -> str:
    """Return the slug if it is lowercase words joined by hyphens.

    Raises:
        ValidationError: If the slug does not match.
    """
    if not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "Slug must be lowercase letters, numbers, and hyphens only",
            {"field": "slug"},
        )
    return slug


class StoreService:
    """CRUD for stores plus the Salla OAuth connect/callback flow."""

    def __init__(
        self,
        repo: StoreRepository,
        salla: SallaOAuth,
        notifier: Notifier,
        cipher: SecretCipher,
    ) -> None:
        """Initialize the store service.

        Args:
            repo: Store repository.
            salla: Salla OAuth client.
            notifier: Sends the connection confirmation email.
            cipher: Encrypts OAuth secrets at rest.
        """
        self._repo = repo
        self._salla = salla
        self._notifier = notifier
        self._cipher = cipher

    async def create_store(self, name: str, slug: str, creator: AuthContext) -> StoreListing:
        """Create an active store owned by ``creator``.

        Raises:
            ValidationError: If the slug is malformed.
            ConflictError: If the slug or name is taken.
        """
        name = name.strip()
        validate_slug(slug)

        if await self._repo.get_store_by_slug(slug):
            raise ConflictError("Store with this slug already exists")
        if await self._repo.get_store_by_name(name):
            raise ConflictError("Store with this name already exists")

        store = await self._repo.create_store(name=name, slug=slug, created_by=creator.user_id)
        logger.info("store_created", store_id=str(store.id), created_by=str(creator.user_id))

        creator_summary = await self._repo.get_user_summary(creator.user_id)
        return StoreListing(
            store=store,
            stats=await self._repo.get_store_stats(store.id),
            creator=creator_summary,
        )

    async def get_store(self, store_id: UUID) -> StoreDetails:
        """Store with creator, members, warehouses and counts.

        Raises:
            NotFoundError: If the store does not exist.
        """
        store = await self._require_store(store_id)
        return StoreDetails(
            store=store,
            stats=await self._repo.get_store_stats(store.id),
            creator=(
                await self._repo.get_user_summary(store.created_by) if store.created_by else None
            ),
            users=await self._repo.list_store_users(store.id),
            warehouses=await self._repo.list_store_warehouses(store.id),
        )

    async def list_stores(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[StoreListing], Pagination]:
        """Page through stores, searching name and slug.

        Raises:
            ValidationError: If paging or sorting parameters are out of range.
        """
        if page < 1:
            raise ValidationError("Page must be at least 1", {"field": "page"})
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"Limit must be between 1 and {MAX_PAGE_SIZE}", {"field": "limit"}
            )
        if sort_by not in STORE_SORT_FIELDS:
            raise ValidationError(f"Cannot sort by {sort_by}", {"field": "sortBy"})
        if sort_order not in ("asc", "desc"):
            raise ValidationError("Sort order must be asc or desc", {"field": "sortOrder"})

        stores, total = await self._repo.list_stores(
            offset=(page - 1) * limit,
            limit=limit,
            search=search.strip() if search and search.strip() else None,
            sort_by=sort_by,
            sort_order=sort_order,
        )

        listings = [
            StoreListing(
                store=store,
                stats=await self._repo.get_store_stats(store.id),
                creator=(
                    await self._repo.get_user_summary(store.created_by)
                    if store.created_by
                    else None
                ),
            )
            for store in stores
        ]
        return listings, Pagination(current_page=page, limit=limit, total_count=total)

    async def update_store(
        self,
        store_id: UUID,
        name: str | None = None,
        slug: str | None = None,
    ) -> StoreListing:
        """Rename a store or change its slug.

        Raises:
            NotFoundError: If the store does not exist.
            ValidationError: If the slug is malformed.
            ConflictError: If the new slug or name belongs to another store.
        """
        existing = await self._require_store(store_id)

        if slug is not None and slug != existing.slug:
            validate_slug(slug)
            if await self._repo.get_store_by_slug(slug):
                raise ConflictError("Store with this slug already exists")

        if name is not None:
            name = name.strip()
            if name != existing.name and await self._repo.get_store_by_name(name):
                raise ConflictError("Store with this name already exists")

        store = await self._repo.update_store(store_id, name=name, slug=slug)
        if store is None:
            raise NotFoundError("Store not found")

        logger.info("store_updated", store_id=str(store_id))
        return StoreListing(
            store=store,
            stats=await self._repo.get_store_stats(store.id),
            creator=(
                await self._repo.get_user_summary(store.created_by) if store.created_by else None
            ),
        )

    async def delete_store(self, store_id: UUID) -> Store:
        """Delete an empty store. Its invitations go with it.

        Raises:
            NotFoundError: If the store does not exist.
            ValidationError: If users or warehouses still belong to it.
        """
        store = await self._require_store(store_id)
        stats = await self._repo.get_store_stats(store_id)
        if stats.total_users > 0 or stats.total_warehouses > 0:
            raise ValidationError(
                "Cannot delete store with existing users or warehouses. "
                "Please remove all associated data first."
            )

        await self._repo.delete_store(store_id)
        logger.info("store_deleted", store_id=str(store_id))
        return store

    async def connect_salla(
        self,
        store_id: UUID,
        client_id: str | None = None,
        client_secret: str | None = None,
    ) -> SallaConnection:
        """Start the Salla OAuth flow for a store.

        New credentials replace stored ones; without them the stored
        credentials are reused. Each call issues a fresh single-use state.

        Raises:
            NotFoundError: If the store does not exist.
            ValidationError: If no credentials are given or stored.
        """
        store = await self._require_store(store_id)
        state = generate_oauth_state()

        if client_id and client_secret:
            updated = await self._repo.save_salla_credentials(
                store_id,
                client_id=client_id,
                client_secret=self._cipher.encrypt(client_secret),
                state=state,
            )
        elif client_id or client_secret:
            raise ValidationError("Both Salla client ID and client secret are required")
        elif store.salla_client_id and store.salla_client_secret:
            client_id = store.salla_client_id
            updated = await self._repo.save_oauth_state(store_id, state)
        else:
            raise ValidationError("Salla client credentials are required")

        if updated is None:
            raise NotFoundError("Store not found")

        logger.info("salla_connect_started", store_id=str(store_id))
        return SallaConnection(
            store=updated,
            authorization_url=self._salla.build_authorization_url(client_id, state),
            state=state,
        )

    async def salla_callback(self, code: str, state: str) -> tuple[Store, SallaTokens]:
        """Finish the Salla OAuth flow.

        The state is cleared whether the exchange succeeds or not, so it
        cannot be replayed.

        Raises:
            ValidationError: If the state is unknown or the code is missing.
            UpstreamServiceError: If the token exchange fails.
        """
        store = await self._repo.get_store_by_oauth_state(state) if state else None
        if store is None:
            logger.warning("salla_callback_unknown_state")
            raise ValidationError("Invalid or expired OAuth state")

        try:
            if not code:
                raise ValidationError("Authorization code is required", {"field": "code"})
            if not store.salla_client_id or not store.salla_client_secret:
                raise ValidationError("Store has no Salla client credentials")

            tokens = await self._salla.exchange_code(
                code,
                client_id=store.salla_client_id,
                client_secret=self._cipher.decrypt(store.salla_client_secret),
            )

            now = datetime.now(UTC)
            updated = await self._repo.save_salla_tokens(
                store.id,
                access_token=self._cipher.encrypt(tokens.access_token),
                refresh_token=(
                    self._cipher.encrypt(tokens.refresh_token) if tokens.refresh_token else None
                ),
                expires_at=now + timedelta(seconds=tokens.expires_in),
                connected_at=now,
            )
        except Exception:
            await self._clear_state(store.id)
            raise

        if updated is None:
            raise NotFoundError("Store not found")

        logger.info("salla_connected", store_id=str(store.id))
        await self._notify_connected(updated)
        return updated, tokens

    async def _require_store(self, store_id: UUID) -> Store:
        store = await self._repo.get_store_by_id(store_id)
        if store is None:
            raise NotFoundError("Store not found")
        return store

    async def _clear_state(self, store_id: UUID) -> None:
        try:
            await self._repo.clear_oauth_state(store_id)
        except Exception as e:
            logger.error("salla_state_clear_failed", store_id=str(store_id), error=str(e))

    async def _notify_connected(self, store: Store) -> None:
        if store.created_by is None:
            return
        owner = await self._repo.get_user_summary(store.created_by)
        if not owner:
            return
        try:
            await self._notifier.send_salla_connected(
                to_email=owner["email"],
                store_name=store.name,
                full_name=owner.get("fullName"),
            )
        except Exception as e:
            logger.error("salla_connected_email_failed", store_id=str(store.id), error=str(e))

