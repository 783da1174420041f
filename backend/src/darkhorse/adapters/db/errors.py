"""Translation of driver errors into domain errors."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg
import structlog

from darkhorse.core.exceptions import ConflictError, DatabaseError

logger = structlog.get_logger()


@asynccontextmanager
async def translate_errors(
    operation: str, conflict_message: str | None = None
) -> AsyncIterator[None]:
    """Map asyncpg failures raised inside the block.

    Args:
        operation: Human readable name of the query, e.g. "creating session".
        conflict_message: Message for a unique violation. Defaults to one
            derived from the violated constraint.

    Raises:
        ConflictError: On a unique constraint violation.
        DatabaseError: On any other PostgreSQL error, or when the server
            cannot be reached or times out.
    """
    try:
        yield
    except asyncpg.UniqueViolationError as e:
        logger.info("database_conflict", operation=operation, constraint=e.constraint_name)
        raise ConflictError(
            conflict_message or f"Duplicate value while {operation}",
            {"constraint": e.constraint_name} if e.constraint_name else None,
        ) from e
    except asyncpg.PostgresError as e:
        logger.error("database_error", operation=operation, error=str(e))
        raise DatabaseError(operation, str(e)) from e
    except (OSError, TimeoutError, asyncpg.InterfaceError) as e:
        logger.error("database_unavailable", operation=operation, error=str(e))
        raise DatabaseError(operation, str(e) or type(e).__name__) from e
