"""First account seeding.

Every invitation needs an inviter, so a fresh database gets one SUPER_ADMIN.

Run with: python -m darkhorse.seed
Or automatically on startup when SUPER_ADMIN_EMAIL and SUPER_ADMIN_PASSWORD are set.
"""

from __future__ import annotations

import asyncio
import os
from datetime import UTC, datetime

import structlog

from darkhorse.adapters.auth.postgres import PostgresAuthRepository
from darkhorse.adapters.db.app_db import AppDatabase
from darkhorse.core.auth.password import hash_password, validate_password_strength
from darkhorse.core.auth.repository import AuthRepository
from darkhorse.core.auth.types import User, UserRole, UserStatus
from darkhorse.core.exceptions import ConflictError

logger = structlog.get_logger()


async def seed_super_admin(
    repo: AuthRepository,
    email: str,
    password: str,
    first_name: str = "Super",
    last_name: str = "Admin",
) -> User:
    """Create an active, verified SUPER_ADMIN unless the email is taken.

    Idempotent - an existing account is returned unchanged, whatever its role.

    Args:
        repo: Auth repository.
        email: Login email of the administrator.
        password: Plain text password; only its hash is stored.
        first_name: Given name.
        last_name: Family name.

    Returns:
        The new or existing user.

    Raises:
        ValidationError: If the password is too weak.
    """
    email = email.strip().lower()

    existing = await repo.get_user_by_email(email)
    if existing:
        logger.info("super_admin_seed_skipped", user_id=str(existing.id))
        return existing

    validate_password_strength(password)

    try:
        user = await repo.create_user(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.SUPER_ADMIN,
            status=UserStatus.ACTIVE,
            email_verified_at=datetime.now(UTC),
        )
    except ConflictError:
        # A concurrent seed won the insert
        winner = await repo.get_user_by_email(email)
        if winner is None:
            raise
        return winner

    logger.info("super_admin_seeded", user_id=str(user.id))
    return user


async def main() -> None:
    """Seed the SUPER_ADMIN named by the environment."""
    email = os.getenv("SUPER_ADMIN_EMAIL")
    password = os.getenv("SUPER_ADMIN_PASSWORD")
    if not email or not password:
        raise SystemExit("SUPER_ADMIN_EMAIL and SUPER_ADMIN_PASSWORD must be set")

    app_db = AppDatabase(os.getenv("DATABASE_URL", "postgresql://localhost:5432/darkhorse"))
    await app_db.connect()
    try:
        if os.getenv("AUTO_CREATE_SCHEMA", "").strip().lower() in ("1", "true", "yes", "on"):
            await app_db.create_schema()
        await seed_super_admin(PostgresAuthRepository(app_db), email, password)
    finally:
        await app_db.close()


if __name__ == "__main__":
    asyncio.run(main())
