"""Domain-specific exceptions.

All exceptions raised by the auth service inherit from DarkhorseError,
making it easy to catch all service errors while still being able to
handle specific error types. Each class carries the HTTP status the API
boundary reports it with.
"""

from __future__ import annotations

from typing import Any


class DarkhorseError(Exception):
    """Base exception for all darkhorse errors.

    Attributes:
        message: Human readable description, safe to return to clients.
        details: Optional structured context (field errors, identifiers).
    """

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize the error.

        Args:
            message: Error description.
            details: Optional structured context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DarkhorseError):
    """Input is malformed or a resource is in a state that rejects the request.

    Also raised for expired invitations and unknown OAuth state values.
    """

    status_code = 400


class UnauthorizedError(DarkhorseError):
    """Missing credentials, or the account may not sign in."""

    status_code = 401


class InvalidTokenError(UnauthorizedError):
    """A bearer or refresh token failed verification."""


class InvalidCredentialsError(UnauthorizedError):
    """Password did not match the stored hash."""


class ForbiddenError(DarkhorseError):
    """Authenticated, but the role or store scope does not allow the action."""

    status_code = 403


class NotFoundError(DarkhorseError):
    """Entity is missing, or was lazily expired during lookup."""

    status_code = 404


class ConflictError(DarkhorseError):
    """A uniqueness rule was violated (email, slug, pending invitation)."""

    status_code = 409


class DatabaseError(DarkhorseError):
    """A persistence operation failed.

    The operation name is kept in ``details`` so logs show which query broke
    without leaking SQL to clients.
    """

    status_code = 500

    def __init__(self, operation: str, error: str | None = None) -> None:
        """Initialize DatabaseError.

        Args:
            operation: What was being attempted, e.g. "creating session".
            error: Underlying driver error message.
        """
        super().__init__(
            f"Database operation failed: {operation}",
            {"operation": operation, "error": error} if error else {"operation": operation},
        )
        self.operation = operation


class UpstreamServiceError(DarkhorseError):
    """An external dependency (OAuth provider, mail relay) is unavailable."""

    status_code = 503
