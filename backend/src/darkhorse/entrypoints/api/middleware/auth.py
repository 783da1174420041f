"""Bearer token authentication and role checks."""

from collections.abc import Callable
from typing import Annotated, Any

import structlog
from fastapi import Depends, Request, Response, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from darkhorse.core.auth.service import AuthService
from darkhorse.core.auth.types import AuthContext, UserRole
from darkhorse.core.exceptions import ForbiddenError
from darkhorse.entrypoints.api.deps import get_auth_service

logger = structlog.get_logger()

# auto_error=False so missing or malformed headers go through the service's errors
bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_EXPIRES_SOON_HEADER = "X-Token-Expires-Soon"


async def authenticate(
    request: Request,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
    _credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> AuthContext:
    """Verify the bearer token and return the caller's context.

    Sets ``X-Token-Expires-Soon: true`` on the response when the access
    token is close to expiry so clients can refresh ahead of time.

    Raises:
        UnauthorizedError: Missing header or unknown user.
        InvalidTokenError: Bad, expired or superseded token.
        NotFoundError: The session is gone or expired.
        ForbiddenError: The account is not active.
    """
    context = await service.authenticate(request.headers.get("Authorization"))

    if context.token_expires_soon:
        response.headers[TOKEN_EXPIRES_SOON_HEADER] = "true"

    structlog.contextvars.bind_contextvars(user_id=str(context.user_id))
    return context


def require_roles(*roles: UserRole) -> Callable[..., Any]:
    """Dependency that admits only callers holding one of ``roles``.

    Usage:
        @router.post("/stores")
        async def create_store(
            auth: Annotated[AuthContext, Depends(require_roles(UserRole.SUPER_ADMIN))],
        ):
            ...
    """
    allowed = frozenset(roles)

    async def role_checker(
        auth: Annotated[AuthContext, Depends(authenticate)],
    ) -> AuthContext:
        if auth.role not in allowed:
            logger.info(
                "role_check_failed",
                user_id=str(auth.user_id),
                role=auth.role.value,
                required=sorted(r.value for r in allowed),
            )
            raise ForbiddenError(
                "Insufficient permissions",
                {"required": sorted(r.value for r in allowed)},
            )
        return auth

    return role_checker


# Common role dependencies for convenience
Authenticated = Annotated[AuthContext, Depends(authenticate)]
RequireSuperAdmin = Annotated[AuthContext, Depends(require_roles(UserRole.SUPER_ADMIN))]
RequireStoreAdmin = Annotated[AuthContext, Depends(require_roles(UserRole.STORE_ADMIN))]
