"""Auth adapters."""

from darkhorse.adapters.auth.postgres import PostgresAuthRepository

__all__ = ["PostgresAuthRepository"]
