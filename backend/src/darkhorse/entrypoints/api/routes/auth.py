"""Auth API routes: login, tokens, sessions, invitations and Salla connect."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from darkhorse.core.auth.invitations import InvitationManager
from darkhorse.core.auth.roles import resolve_store_scope
from darkhorse.core.auth.service import AuthService
from darkhorse.core.auth.types import InvitationStatus, SessionMetadata, UserRole
from darkhorse.core.stores.service import StoreService
from darkhorse.entrypoints.api.deps import (
    get_auth_service,
    get_invitation_manager,
    get_store_service,
)
from darkhorse.entrypoints.api.middleware.auth import (
    Authenticated,
    RequireStoreAdmin,
    RequireSuperAdmin,
)
from darkhorse.entrypoints.api.responses import success

router = APIRouter(prefix="/auth", tags=["auth"])

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
InvitationsDep = Annotated[InvitationManager, Depends(get_invitation_manager)]
StoreServiceDep = Annotated[StoreService, Depends(get_store_service)]

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


class CamelModel(BaseModel):
    """Request body accepting camelCase aliases or field names."""

    model_config = ConfigDict(populate_by_name=True)


# Request models
class LoginRequest(CamelModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    """Token refresh request body."""

    refresh_token: str = Field(..., alias="refreshToken", min_length=1)


class StoreAdminInvitationRequest(CamelModel):
    """Invite the administrator of a store."""

    email: EmailStr
    full_name: str | None = Field(None, alias="fullName", max_length=200)
    store_id: UUID = Field(..., alias="storeId")
    store_name: str = Field(..., alias="storeName", min_length=1, max_length=100)


class InvitationRequest(CamelModel):
    """Invite a user one step down the role hierarchy."""

    email: EmailStr
    full_name: str | None = Field(None, alias="fullName", max_length=200)
    role: UserRole
    store_id: UUID | None = Field(None, alias="storeId")
    warehouse_id: UUID | None = Field(None, alias="warehouseId")


class AcceptInvitationRequest(CamelModel):
    """Accept an invitation and create the account."""

    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=100)
    phone: str | None = Field(None, pattern=PHONE_PATTERN)


class SallaConnectRequest(CamelModel):
    """Salla app credentials of the caller's store."""

    salla_client_id: str = Field(..., alias="sallaClientId", min_length=1)
    salla_client_secret: str = Field(..., alias="sallaClientSecret", min_length=1)


def session_metadata(request: Request) -> SessionMetadata:
    """Device details of the client making the request."""
    forwarded = request.headers.get("X-Forwarded-For")
    ip_address = (
        forwarded.split(",")[0].strip()
        if forwarded
        else (request.client.host if request.client else None)
    )
    platform = request.headers.get("Sec-CH-UA-Platform")
    return SessionMetadata(
        user_agent=request.headers.get("User-Agent"),
        ip_address=ip_address,
        platform=platform.strip('"') if platform else None,
        device_info=request.headers.get("X-Device-Info"),
        location=request.headers.get("X-Client-Location"),
    )


# Login and token routes
@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    service: AuthServiceDep,
) -> dict[str, Any]:
    """Authenticate with email and password and start a session."""
    result = await service.login(body.email, body.password, session_metadata(request))
    return success(
        "Login successful",
        {
            "user": result.user.public_dict(),
            "session": result.session.public_dict(),
            "tokens": result.tokens.public_dict(),
        },
    )


@router.post("/refresh")
async def refresh(body: RefreshRequest, service: AuthServiceDep) -> dict[str, Any]:
    """Exchange a refresh token for a new token pair."""
    tokens = await service.refresh(body.refresh_token)
    return success("Token refreshed", {"tokens": tokens.public_dict()})


@router.post("/logout")
async def logout(auth: Authenticated, service: AuthServiceDep) -> dict[str, Any]:
    """End the current session."""
    await service.logout(auth)
    return success("Logged out")


@router.post("/logout-all")
async def logout_all(auth: Authenticated, service: AuthServiceDep) -> dict[str, Any]:
    """End every session of the current user."""
    count = await service.logout_all(auth)
    return success("Logged out of all sessions", {"revokedSessions": count})


@router.get("/me")
async def me(auth: Authenticated, service: AuthServiceDep) -> dict[str, Any]:
    """Profile of the current user."""
    user = await service.get_profile(auth)
    return success("Profile retrieved", {"user": user.public_dict()})


@router.get("/sessions")
async def list_sessions(
    auth: Authenticated,
    service: AuthServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    """Sessions of the current user, newest first."""
    sessions, total = await service.list_sessions(auth, limit=limit, offset=offset)
    return success(
        "Sessions retrieved",
        {
            "sessions": [
                {**s.public_dict(), "current": s.id == auth.session_id} for s in sessions
            ],
            "total": total,
        },
    )


# Invitation routes
@router.post("/invitations/store-admin", status_code=201)
async def invite_store_admin(
    body: StoreAdminInvitationRequest,
    auth: RequireSuperAdmin,
    invitations: InvitationsDep,
) -> dict[str, Any]:
    """Invite the administrator of a store."""
    invitation = await invitations.invite_store_admin(
        email=body.email,
        full_name=body.full_name,
        store_id=body.store_id,
        store_name=body.store_name,
        inviter=auth,
    )
    return success("Invitation sent", {"invitation": invitation.public_dict()})


@router.post("/invitations", status_code=201)
async def invite_user(
    body: InvitationRequest,
    auth: Authenticated,
    invitations: InvitationsDep,
) -> dict[str, Any]:
    """Invite a user with a role the caller may grant."""
    invitation = await invitations.invite_user(
        email=body.email,
        full_name=body.full_name,
        role=body.role,
        store_id=body.store_id,
        warehouse_id=body.warehouse_id,
        inviter=auth,
    )
    return success("Invitation sent", {"invitation": invitation.public_dict()})


@router.get("/invitations")
async def list_invitations(
    auth: Authenticated,
    invitations: InvitationsDep,
    store_id: Annotated[UUID | None, Query(alias="storeId")] = None,
    status: InvitationStatus | None = None,
) -> dict[str, Any]:
    """Invitations of a store. Store-scoped callers see only their own store."""
    target_store_id = resolve_store_scope(auth.role, auth.store_id, store_id)
    items = await invitations.list_store_invitations(target_store_id, status)
    return success(
        "Invitations retrieved",
        {"invitations": [i.public_dict() for i in items], "total": len(items)},
    )


@router.post("/invitations/{invitation_id}/resend")
async def resend_invitation(
    invitation_id: UUID,
    auth: Authenticated,
    invitations: InvitationsDep,
) -> dict[str, Any]:
    """Email a pending invitation again."""
    invitation = await invitations.resend_invitation(invitation_id, auth)
    return success("Invitation resent", {"invitation": invitation.public_dict()})


@router.get("/invitations/validate/{token}")
@router.post("/invitations/validate/{token}")
async def validate_invitation(token: str, invitations: InvitationsDep) -> dict[str, Any]:
    """Check an invitation token before showing the signup form."""
    details = await invitations.validate_invitation(token)
    return success("Invitation is valid", {"invitation": details.to_dict()})


@router.post("/invitations/accept", status_code=201)
async def accept_invitation(
    body: AcceptInvitationRequest,
    request: Request,
    invitations: InvitationsDep,
) -> dict[str, Any]:
    """Create the invitee's account and log them in."""
    result = await invitations.accept_invitation(
        token=body.token,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        metadata=session_metadata(request),
    )
    if result.session is None or result.tokens is None:
        return success(
            "Account created. Please log in.",
            {"user": result.user.public_dict(), "session": None, "tokens": None},
        )
    return success(
        "Invitation accepted",
        {
            "user": result.user.public_dict(),
            "session": result.session.public_dict(),
            "tokens": result.tokens.public_dict(),
        },
    )


# Salla routes
@router.post("/salla/connect")
async def connect_salla(
    body: SallaConnectRequest,
    auth: RequireStoreAdmin,
    stores: StoreServiceDep,
) -> dict[str, Any]:
    """Save the store's Salla app credentials and start OAuth."""
    store_id = resolve_store_scope(auth.role, auth.store_id, None)
    connection = await stores.connect_salla(
        store_id,
        client_id=body.salla_client_id,
        client_secret=body.salla_client_secret,
    )
    return success(
        "Salla authorization started",
        {
            "store": connection.store.public_dict(),
            "authorizationUrl": connection.authorization_url,
            "state": connection.state,
        },
    )


@router.get("/salla/connect")
async def reconnect_salla(auth: RequireStoreAdmin, stores: StoreServiceDep) -> dict[str, Any]:
    """Start OAuth again with the credentials already stored."""
    store_id = resolve_store_scope(auth.role, auth.store_id, None)
    connection = await stores.connect_salla(store_id)
    return success(
        "Salla authorization started",
        {
            "store": connection.store.public_dict(),
            "authorizationUrl": connection.authorization_url,
            "state": connection.state,
        },
    )


@router.get("/salla/callback")
async def salla_callback(
    stores: StoreServiceDep,
    code: str = "",
    state: str = "",
) -> dict[str, Any]:
    """OAuth redirect target. Provider tokens never leave the service."""
    store, tokens = await stores.salla_callback(code, state)
    return success(
        "Salla store connected",
        {
            "store": store.public_dict(),
            "connectedAt": (
                store.salla_connected_at.isoformat() if store.salla_connected_at else None
            ),
            "expiresIn": tokens.expires_in,
        },
    )
