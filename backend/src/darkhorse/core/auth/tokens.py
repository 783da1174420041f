"""Secure random tokens for invitations and OAuth state."""

import secrets
from datetime import UTC, datetime, timedelta

INVITATION_TOKEN_BYTES = 32  # 256 bits of entropy
OAUTH_STATE_BYTES = 32
INVITATION_EXPIRY_HOURS = 72


def generate_invitation_token() -> str:
    """Generate a cryptographically secure invitation token.

    Returns:
        URL-safe base64 encoded token string.
    """
    return secrets.token_urlsafe(INVITATION_TOKEN_BYTES)


def generate_oauth_state() -> str:
    """Generate a single-use OAuth ``state`` value.

    Returns:
        Hex encoded random string.
    """
    return secrets.token_hex(OAUTH_STATE_BYTES)


def get_expiry(hours: int = INVITATION_EXPIRY_HOURS, now: datetime | None = None) -> datetime:
    """Calculate an expiry timestamp.

    Args:
        hours: Number of hours until expiry.
        now: Reference time, defaults to the current UTC time.

    Returns:
        UTC datetime when the token expires.
    """
    return (now or datetime.now(UTC)) + timedelta(hours=hours)


def is_expired(expires_at: datetime, now: datetime | None = None) -> bool:
    """Check if a timestamp is in the past.

    Args:
        expires_at: The expiry timestamp.
        now: Reference time, defaults to the current UTC time.

    Returns:
        True if ``expires_at`` is at or before ``now``.
    """
    now = now or datetime.now(UTC)
    # Handle timezone-naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at <= now
