"""Adapters - Infrastructure implementations of core interfaces.

Adapters are organized by type:
- db/: asyncpg pool and schema creation
- auth/: PostgreSQL auth repository (users, sessions, invitations)
- stores/: PostgreSQL store repository
- salla/: Salla OAuth client
- notifications/: SMTP email notifier
"""
