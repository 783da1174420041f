"""Tests for AppDatabase helpers."""

from unittest.mock import AsyncMock, patch

import pytest
from darkhorse.adapters.db.app_db import AppDatabase, affected_rows, to_sqlalchemy_url


class TestAppDatabase:
    """Tests for the pool wrapper."""

    @pytest.fixture
    def db(self) -> AppDatabase:
        """Create AppDatabase instance."""
        return AppDatabase(dsn="postgresql://localhost/test")  # pragma: allowlist secret

    async def test_acquire_requires_pool(self, db: AppDatabase) -> None:
        """Queries before connect() fail loudly."""
        with pytest.raises(RuntimeError, match="not initialized"):
            await db.fetch_one("SELECT 1")

    async def test_ping(self, db: AppDatabase) -> None:
        """ping is true when SELECT 1 answers."""
        with patch.object(db, "acquire") as mock_acquire:
            conn = mock_acquire.return_value.__aenter__.return_value
            conn.fetchval = AsyncMock(return_value=1)

            assert await db.ping() is True

    async def test_close_without_pool(self, db: AppDatabase) -> None:
        """Closing an unconnected database is a no-op."""
        await db.close()

        assert db.pool is None


class TestHelpers:
    """Tests for module helpers."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [("DELETE 3", 3), ("UPDATE 0", 0), ("INSERT 0 1", 1), ("", 0), ("SELECT", 0)],
    )
    def test_affected_rows(self, status: str, expected: int) -> None:
        """Row count is the last token of the command status."""
        assert affected_rows(status) == expected

    @pytest.mark.parametrize(
        ("dsn", "expected"),
        [
            ("postgresql://u@h/db", "postgresql+asyncpg://u@h/db"),
            ("postgres://u@h/db", "postgresql+asyncpg://u@h/db"),
            ("postgresql+asyncpg://u@h/db", "postgresql+asyncpg://u@h/db"),
        ],
    )
    def test_to_sqlalchemy_url(self, dsn: str, expected: str) -> None:
        """Plain DSNs are pointed at the asyncpg driver."""
        assert to_sqlalchemy_url(dsn) == expected
