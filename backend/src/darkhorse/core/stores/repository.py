"""Store repository protocol for database operations."""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from darkhorse.core.stores.types import Store, StoreStats, Warehouse


@runtime_checkable
class StoreRepository(Protocol):
    """Protocol for store database operations."""

    async def get_store_by_id(self, store_id: UUID) -> Store | None:
        """Get store by ID."""
        ...

    async def get_store_by_slug(self, slug: str) -> Store | None:
        """Get store by slug."""
        ...

    async def get_store_by_name(self, name: str) -> Store | None:
        """Get store by name."""
        ...

    async def get_store_by_oauth_state(self, state: str) -> Store | None:
        """Get the store waiting on an OAuth callback with this state."""
        ...

    async def create_store(self, name: str, slug: str, created_by: UUID) -> Store:
        """Insert an active store."""
        ...

    async def update_store(
        self, store_id: UUID, name: str | None = None, slug: str | None = None
    ) -> Store | None:
        """Update store fields. Returns None if the store does not exist."""
        ...

    async def delete_store(self, store_id: UUID) -> bool:
        """Delete a store. Invitations and warehouses cascade."""
        ...

    async def list_stores(
        self,
        offset: int,
        limit: int,
        search: str | None,
        sort_by: str,
        sort_order: str,
    ) -> tuple[list[Store], int]:
        """Page through stores with the total count matching ``search``."""
        ...

    async def get_store_stats(self, store_id: UUID) -> StoreStats:
        """Count users, warehouses and pending invitations of a store."""
        ...

    async def get_user_summary(self, user_id: UUID) -> dict[str, Any] | None:
        """Get ``{id, fullName, email}`` for a user."""
        ...

    async def list_store_users(self, store_id: UUID) -> list[dict[str, Any]]:
        """Member summaries ``{id, email, fullName, role, status}`` of a store."""
        ...

    async def list_store_warehouses(self, store_id: UUID) -> list[Warehouse]:
        """Warehouses of a store."""
        ...

    async def save_salla_credentials(
        self,
        store_id: UUID,
        client_id: str,
        client_secret: str,
        state: str,
    ) -> Store | None:
        """Store (encrypted) client credentials and a pending OAuth state."""
        ...

    async def save_oauth_state(self, store_id: UUID, state: str) -> Store | None:
        """Set a new pending OAuth state, keeping stored credentials."""
        ...

    async def save_salla_tokens(
        self,
        store_id: UUID,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime,
        connected_at: datetime,
    ) -> Store | None:
        """Store (encrypted) provider tokens and clear the OAuth state."""
        ...

    async def clear_oauth_state(self, store_id: UUID) -> None:
        """Clear the pending OAuth state."""
        ...
