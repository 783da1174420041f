"""Tests for PostgreSQL store repository."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import asyncpg
import pytest
from darkhorse.adapters.stores.postgres import PostgresStoreRepository
from darkhorse.core.exceptions import ConflictError
from darkhorse.core.stores import StoreRepository


def store_row(**overrides: Any) -> dict[str, Any]:
    """A stores row as asyncpg returns it."""
    row = {
        "id": uuid4(),
        "name": "Acme",
        "slug": "acme",
        "created_by": uuid4(),
        "is_active": True,
        "created_at": datetime.now(UTC),
    }
    row.update(overrides)
    return row


class TestPostgresStoreRepository:
    """Test PostgresStoreRepository implementation."""

    @pytest.fixture
    def mock_db(self) -> MagicMock:
        """Create mock database."""
        return MagicMock()

    @pytest.fixture
    def repo(self, mock_db: MagicMock) -> PostgresStoreRepository:
        """Create repository with mock database."""
        return PostgresStoreRepository(mock_db)

    def test_implements_protocol(self, repo: PostgresStoreRepository) -> None:
        """Repository should implement StoreRepository protocol."""
        assert isinstance(repo, StoreRepository)

    @pytest.mark.asyncio
    async def test_get_store_by_slug(
        self, repo: PostgresStoreRepository, mock_db: MagicMock
    ) -> None:
        """Should map a stores row."""
        row = store_row(salla_client_id="client-1")
        mock_db.fetch_one = AsyncMock(return_value=row)

        store = await repo.get_store_by_slug("acme")

        assert store is not None
        assert store.id == row["id"]
        assert store.salla_client_id == "client-1"

    @pytest.mark.asyncio
    async def test_create_store_conflict(
        self, repo: PostgresStoreRepository, mock_db: MagicMock
    ) -> None:
        """Unique name or slug violations map to ConflictError."""
        mock_db.execute_returning = AsyncMock(
            side_effect=asyncpg.UniqueViolationError("duplicate key")
        )

        with pytest.raises(ConflictError):
            await repo.create_store("Acme", "acme", uuid4())

    @pytest.mark.asyncio
    async def test_update_store_only_given_fields(
        self, repo: PostgresStoreRepository, mock_db: MagicMock
    ) -> None:
        """Only the provided columns are set."""
        store_id = uuid4()
        mock_db.execute_returning = AsyncMock(return_value=store_row(id=store_id, slug="new"))

        store = await repo.update_store(store_id, slug="new")

        assert store is not None and store.slug == "new"
        query, *params = mock_db.execute_returning.call_args[0]
        assert "slug = $1" in query
        assert "name =" not in query
        assert params == ["new", store_id]

    @pytest.mark.asyncio
    async def test_update_store_without_changes_reads(
        self, repo: PostgresStoreRepository, mock_db: MagicMock
    ) -> None:
        """No fields means a plain read."""
        mock_db.fetch_one = AsyncMock(return_value=store_row())
        mock_db.execute_returning = AsyncMock()

        await repo.update_store(uuid4())

        mock_db.execute_returning.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_stores_search_and_sort(
        self, repo: PostgresStoreRepository, mock_db: MagicMock
    ) -> None:
        """Search becomes an ILIKE pattern; sort uses whitelisted columns."""
        mock_db.fetch_all = AsyncMock(return_value=[store_row()])
        mock_db.fetch_value = AsyncMock(return_value=1)

        stores, total = await repo.list_stores(
            offset=10, limit=5, search="acm", sort_by="name", sort_order="asc"
        )

        assert len(stores) == 1
        assert total == 1
        query, pattern, limit, offset = mock_db.fetch_all.call_args[0]
        assert "ORDER BY name ASC" in query
        assert (pattern, limit, offset) == ("%acm%", 5, 10)

    @pytest.mark.asyncio
    async def test_list_stores_unknown_sort_column(
        self, repo: PostgresStoreRepository, mock_db: MagicMock
    ) -> None:
        """Unknown sort columns never reach the SQL text."""
        mock_db.fetch_all = AsyncMock(return_value=[])
        mock_db.fetch_value = AsyncMock(return_value=0)

        await repo.list_stores(
            offset=0, limit=5, search=None, sort_by="id; DROP TABLE stores", sort_order="desc"
        )

        query = mock_db.fetch_all.call_args[0][0]
        assert "DROP" not in query
        assert "ORDER BY created_at DESC" in query
        assert mock_db.fetch_all.call_args[0][1] is None

    @pytest.mark.asyncio
    async def test_get_store_stats(
        self, repo: PostgresStoreRepository, mock_db: MagicMock
    ) -> None:
        """Counts come back as StoreStats."""
        mock_db.fetch_one = AsyncMock(
            return_value={"total_users": 2, "total_warehouses": 1, "pending_invitations": 3}
        )

        stats = await repo.get_store_stats(uuid4())

        assert stats.to_dict() == {
            "totalUsers": 2,
            "totalWarehouses": 1,
            "pendingInvitations": 3,
        }

    @pytest.mark.asyncio
    async def test_save_salla_tokens_clears_state(
        self, repo: PostgresStoreRepository, mock_db: MagicMock
    ) -> None:
        """Saving tokens consumes the OAuth state in the same statement."""
        mock_db.execute_returning = AsyncMock(return_value=store_row())
        now = datetime.now(UTC)

        await repo.save_salla_tokens(uuid4(), "enc-access", None, now, now)

        assert "salla_oauth_state = NULL" in mock_db.execute_returning.call_args[0][0]

    @pytest.mark.asyncio
    async def test_delete_store(self, repo: PostgresStoreRepository, mock_db: MagicMock) -> None:
        """Delete reports whether a row went away."""
        mock_db.execute = AsyncMock(return_value="DELETE 1")

        assert await repo.delete_store(uuid4()) is True
