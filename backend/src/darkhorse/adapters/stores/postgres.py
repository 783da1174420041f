"""PostgreSQL implementation of StoreRepository."""

from datetime import datetime
from typing import Any
from uuid import UUID

from darkhorse.adapters.db.app_db import AppDatabase, affected_rows
from darkhorse.adapters.db.errors import translate_errors
from darkhorse.core.stores.types import Store, StoreStats, Warehouse

STORE_CONFLICT = "Store with this name or slug already exists"

# Only whitelisted identifiers are interpolated into ORDER BY
_SORT_COLUMNS = {
    "name": "name",
    "created_at": "created_at",
    "updated_at": "updated_at",
}


class PostgresStoreRepository:
    """PostgreSQL implementation of store repository."""

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_store(self, row: dict[str, Any]) -> Store:
        """Convert database row to Store model."""
        return Store(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            created_by=row.get("created_by"),
            is_active=row.get("is_active", True),
            salla_client_id=row.get("salla_client_id"),
            salla_client_secret=row.get("salla_client_secret"),
            salla_access_token=row.get("salla_access_token"),
            salla_refresh_token=row.get("salla_refresh_token"),
            salla_token_expires_at=row.get("salla_token_expires_at"),
            salla_oauth_state=row.get("salla_oauth_state"),
            salla_connected_at=row.get("salla_connected_at"),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )

    async def get_store_by_id(self, store_id: UUID) -> Store | None:
        """Get store by ID."""
        async with translate_errors("loading store"):
            row = await self._db.fetch_one("SELECT * FROM stores WHERE id = $1", store_id)
        return self._row_to_store(row) if row else None

    async def get_store_by_slug(self, slug: str) -> Store | None:
        """Get store by slug."""
        async with translate_errors("loading store"):
            row = await self._db.fetch_one("SELECT * FROM stores WHERE slug = $1", slug)
        return self._row_to_store(row) if row else None

    async def get_store_by_name(self, name: str) -> Store | None:
        """Get store by name."""
        async with translate_errors("loading store"):
            row = await self._db.fetch_one("SELECT * FROM stores WHERE name = $1", name)
        return self._row_to_store(row) if row else None

    async def get_store_by_oauth_state(self, state: str) -> Store | None:
        """Get the store waiting on an OAuth callback with this state."""
        async with translate_errors("loading store"):
            row = await self._db.fetch_one(
                "SELECT * FROM stores WHERE salla_oauth_state = $1",
                state,
            )
        return self._row_to_store(row) if row else None

    async def create_store(self, name: str, slug: str, created_by: UUID) -> Store:
        """Insert an active store."""
        async with translate_errors("creating store", STORE_CONFLICT):
            row = await self._db.execute_returning(
                """
                INSERT INTO stores (name, slug, created_by, is_active)
                VALUES ($1, $2, $3, true)
                RETURNING *
                """,
                name,
                slug,
                created_by,
            )
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_store(row)

    async def update_store(
        self, store_id: UUID, name: str | None = None, slug: str | None = None
    ) -> Store | None:
        """Update store fields."""
        updates = []
        params: list[Any] = []
        param_idx = 1

        if name is not None:
            updates.append(f"name = ${param_idx}")
            params.append(name)
            param_idx += 1

        if slug is not None:
            updates.append(f"slug = ${param_idx}")
            params.append(slug)
            param_idx += 1

        if not updates:
            return await self.get_store_by_id(store_id)

        updates.append("updated_at = NOW()")
        params.append(store_id)
        query = f"""
            UPDATE stores SET {", ".join(updates)}
            WHERE id = ${param_idx}
            RETURNING *
        """
        async with translate_errors("updating store", STORE_CONFLICT):
            row = await self._db.execute_returning(query, *params)
        return self._row_to_store(row) if row else None

    async def delete_store(self, store_id: UUID) -> bool:
        """Delete a store. Invitations and warehouses cascade."""
        async with translate_errors("deleting store"):
            result = await self._db.execute("DELETE FROM stores WHERE id = $1", store_id)
        return affected_rows(result) > 0

    async def list_stores(
        self,
        offset: int,
        limit: int,
        search: str | None,
        sort_by: str,
        sort_order: str,
    ) -> tuple[list[Store], int]:
        """Page through stores matching ``search`` on name or slug."""
        column = _SORT_COLUMNS.get(sort_by, "created_at")
        direction = "ASC" if sort_order.lower() == "asc" else "DESC"
        pattern = f"%{search}%" if search else None

        async with translate_errors("listing stores"):
            rows = await self._db.fetch_all(
                f"""
                SELECT * FROM stores
                WHERE $1::text IS NULL OR name ILIKE $1 OR slug ILIKE $1
                ORDER BY {column} {direction}, id
                LIMIT $2 OFFSET $3
                """,
                pattern,
                limit,
                offset,
            )
            total = await self._db.fetch_value(
                """
                SELECT COUNT(*) FROM stores
                WHERE $1::text IS NULL OR name ILIKE $1 OR slug ILIKE $1
                """,
                pattern,
            )
        return [self._row_to_store(row) for row in rows], int(total or 0)

    async def get_store_stats(self, store_id: UUID) -> StoreStats:
        """Count users, warehouses and pending invitations of a store."""
        async with translate_errors("loading store stats"):
            row = await self._db.fetch_one(
                """
                SELECT
                    (SELECT COUNT(*) FROM users
                     WHERE store_id = $1 AND status <> 'DELETED') AS total_users,
                    (SELECT COUNT(*) FROM warehouses WHERE store_id = $1) AS total_warehouses,
                    (SELECT COUNT(*) FROM invitations
                     WHERE store_id = $1 AND status = 'PENDING') AS pending_invitations
                """,
                store_id,
            )
        if row is None:
            return StoreStats()
        return StoreStats(
            total_users=row["total_users"],
            total_warehouses=row["total_warehouses"],
            pending_invitations=row["pending_invitations"],
        )

    async def get_user_summary(self, user_id: UUID) -> dict[str, Any] | None:
        """Get ``{id, fullName, email}`` for a user."""
        async with translate_errors("loading user"):
            row = await self._db.fetch_one(
                "SELECT id, full_name, email FROM users WHERE id = $1",
                user_id,
            )
        if row is None:
            return None
        return {"id": str(row["id"]), "fullName": row["full_name"], "email": row["email"]}

    async def list_store_users(self, store_id: UUID) -> list[dict[str, Any]]:
        """Member summaries of a store."""
        async with translate_errors("listing store users"):
            rows = await self._db.fetch_all(
                """
                SELECT id, email, full_name, role, status FROM users
                WHERE store_id = $1 AND status <> 'DELETED'
                ORDER BY created_at
                """,
                store_id,
            )
        return [
            {
                "id": str(row["id"]),
                "email": row["email"],
                "fullName": row["full_name"],
                "role": row["role"],
                "status": row["status"],
            }
            for row in rows
        ]

    async def list_store_warehouses(self, store_id: UUID) -> list[Warehouse]:
        """Warehouses of a store."""
        async with translate_errors("listing store warehouses"):
            rows = await self._db.fetch_all(
                "SELECT * FROM warehouses WHERE store_id = $1 ORDER BY name",
                store_id,
            )
        return [
            Warehouse(
                id=row["id"],
                store_id=row["store_id"],
                name=row["name"],
                code=row.get("code"),
                is_active=row.get("is_active", True),
            )
            for row in rows
        ]

    async def save_salla_credentials(
        self,
        store_id: UUID,
        client_id: str,
        client_secret: str,
        state: str,
    ) -> Store | None:
        """Store encrypted client credentials and a pending OAuth state."""
        async with translate_errors("saving Salla credentials"):
            row = await self._db.execute_returning(
                """
                UPDATE stores
                SET salla_client_id = $2, salla_client_secret = $3,
                    salla_oauth_state = $4, updated_at = NOW()
                WHERE id = $1
                RETURNING *
                """,
                store_id,
                client_id,
                client_secret,
                state,
            )
        return self._row_to_store(row) if row else None

    async def save_oauth_state(self, store_id: UUID, state: str) -> Store | None:
        """Set a new pending OAuth state."""
        async with translate_errors("saving OAuth state"):
            row = await self._db.execute_returning(
                """
                UPDATE stores SET salla_oauth_state = $2, updated_at = NOW()
                WHERE id = $1
                RETURNING *
                """,
                store_id,
                state,
            )
        return self._row_to_store(row) if row else None

    async def save_salla_tokens(
        self,
        store_id: UUID,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime,
        connected_at: datetime,
    ) -> Store | None:
        """Store encrypted provider tokens and clear the OAuth state."""
        async with translate_errors("saving Salla tokens"):
            row = await self._db.execute_returning(
                """
                UPDATE stores
                SET salla_access_token = $2, salla_refresh_token = $3,
                    salla_token_expires_at = $4, salla_connected_at = $5,
                    salla_oauth_state = NULL, updated_at = NOW()
                WHERE id = $1
                RETURNING *
                """,
                store_id,
                access_token,
                refresh_token,
                expires_at,
                connected_at,
            )
        return self._row_to_store(row) if row else None

    async def clear_oauth_state(self, store_id: UUID) -> None:
        """Clear the pending OAuth state."""
        async with translate_errors("clearing OAuth state"):
            await self._db.execute(
                "UPDATE stores SET salla_oauth_state = NULL, updated_at = NOW() WHERE id = $1",
                store_id,
            )
