"""Store domain types."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

STORE_SORT_FIELDS = ("name", "created_at", "updated_at")


class Store(BaseModel):
    """Tenant record for one merchant account.

    Salla secrets are kept encrypted; ``StoreService`` decrypts them only
    when talking to the provider.
    """

    id: UUID
    name: str
    slug: str
    created_by: UUID | None = None
    is_active: bool = True
    salla_client_id: str | None = None
    salla_client_secret: str | None = None
    salla_access_token: str | None = None
    salla_refresh_token: str | None = None
    salla_token_expires_at: datetime | None = None
    salla_oauth_state: str | None = None
    salla_connected_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    def public_dict(self) -> dict[str, Any]:
        """Store fields safe to return to clients (no OAuth secrets)."""
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "sallaConnectedAt": (
                self.salla_connected_at.isoformat() if self.salla_connected_at else None
            ),
        }


class Warehouse(BaseModel):
    """Warehouse belonging to a store. Managed by the inventory service."""

    id: UUID
    store_id: UUID
    name: str
    code: str | None = None
    is_active: bool = True


@dataclass
class StoreStats:
    """Counts shown next to a store."""

    total_users: int = 0
    total_warehouses: int = 0
    pending_invitations: int = 0

    def to_dict(self) -> dict[str, int]:
        """Wire format."""
        return {
            "totalUsers": self.total_users,
            "totalWarehouses": self.total_warehouses,
            "pendingInvitations": self.pending_invitations,
        }


@dataclass
class StoreListing:
    """A store with its creator summary and stats."""

    store: Store
    stats: StoreStats
    creator: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire format."""
        return {
            **self.store.public_dict(),
            "creator": self.creator,
            "stats": self.stats.to_dict(),
        }


@dataclass
class StoreDetails(StoreListing):
    """A store with its members and warehouses."""

    users: list[dict[str, Any]] = field(default_factory=list)
    warehouses: list[Warehouse] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Wire format."""
        return {
            **super().to_dict(),
            "users": self.users,
            "warehouses": [
                {
                    "id": str(w.id),
                    "name": w.name,
                    "code": w.code,
                    "isActive": w.is_active,
                }
                for w in self.warehouses
            ],
        }


@dataclass
class Pagination:
    """Page metadata for list endpoints."""

    current_page: int
    limit: int
    total_count: int

    @property
    def total_pages(self) -> int:
        """Number of pages, at least zero."""
        return (self.total_count + self.limit - 1) // self.limit if self.limit else 0

    def to_dict(self) -> dict[str, Any]:
        """Wire format."""
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalCount": self.total_count,
            "limit": self.limit,
            "hasNextPage": self.current_page < self.total_pages,
            "hasPreviousPage": self.current_page > 1,
        }


@dataclass
class SallaTokens:
    """Tokens returned by the Salla token endpoint."""

    access_token: str
    refresh_token: str | None
    expires_in: int
    token_type: str = "Bearer"
    scope: str | None = None


@dataclass
class SallaConnection:
    """Result of starting the Salla OAuth flow."""

    store: Store
    authorization_url: str
    state: str
