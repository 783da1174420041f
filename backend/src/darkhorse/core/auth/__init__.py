"""Auth domain types and utilities."""

from darkhorse.core.auth.invitations import (
    AcceptedInvitation,
    InvitationConfig,
    InvitationDetails,
    InvitationManager,
)
from darkhorse.core.auth.jwt import JwtConfig, TokenIssuer, extract_token_from_header
from darkhorse.core.auth.password import hash_password, validate_password_strength, verify_password
from darkhorse.core.auth.repository import AuthRepository
from darkhorse.core.auth.roles import can_invite, ensure_can_invite, resolve_store_scope
from darkhorse.core.auth.service import AuthService, LoginResult
from darkhorse.core.auth.sessions import SessionManager
from darkhorse.core.auth.types import (
    AuthContext,
    Invitation,
    InvitationStatus,
    Session,
    SessionMetadata,
    TokenPair,
    TokenPayload,
    User,
    UserRole,
    UserStatus,
)

__all__ = [
    "User",
    "UserRole",
    "UserStatus",
    "Invitation",
    "InvitationStatus",
    "Session",
    "SessionMetadata",
    "TokenPair",
    "TokenPayload",
    "AuthContext",
    "hash_password",
    "verify_password",
    "validate_password_strength",
    "JwtConfig",
    "TokenIssuer",
    "extract_token_from_header",
    "can_invite",
    "ensure_can_invite",
    "resolve_store_scope",
    "AuthRepository",
    "SessionManager",
    "AuthService",
    "LoginResult",
    "InvitationManager",
    "InvitationConfig",
    "InvitationDetails",
    "AcceptedInvitation",
]
