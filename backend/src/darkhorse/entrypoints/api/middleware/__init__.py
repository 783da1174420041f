"""API middleware."""

from darkhorse.entrypoints.api.middleware.auth import (
    Authenticated,
    RequireStoreAdmin,
    RequireSuperAdmin,
    authenticate,
    require_roles,
)

__all__ = [
    "authenticate",
    "require_roles",
    "Authenticated",
    "RequireSuperAdmin",
    "RequireStoreAdmin",
]
