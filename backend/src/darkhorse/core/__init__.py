"""Core domain - business rules for auth, invitations and stores."""

from .exceptions import (
    ConflictError,
    DarkhorseError,
    DatabaseError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
    UpstreamServiceError,
    ValidationError,
)

__all__ = [
    "DarkhorseError",
    "ValidationError",
    "UnauthorizedError",
    "InvalidTokenError",
    "InvalidCredentialsError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "DatabaseError",
    "UpstreamServiceError",
]
