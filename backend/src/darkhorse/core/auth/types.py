"""Auth domain types."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr


class UserRole(str, Enum):
    """Platform roles, from platform operator down to warehouse floor staff."""

    SUPER_ADMIN = "SUPER_ADMIN"
    STORE_ADMIN = "STORE_ADMIN"
    DIRECTOR = "DIRECTOR"
    MANAGER = "MANAGER"
    RECEIVER = "RECEIVER"
    PICKER = "PICKER"
    PACKER = "PACKER"
    SHIPPER = "SHIPPER"
    USER = "USER"


class UserStatus(str, Enum):
    """Account lifecycle states. Users are never hard-deleted."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"


class InvitationStatus(str, Enum):
    """Invitation states. ACCEPTED and EXPIRED are terminal."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"


class User(BaseModel):
    """User domain model."""

    id: UUID
    email: EmailStr
    password_hash: str | None = None
    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.PENDING
    store_id: UUID | None = None
    warehouse_id: UUID | None = None
    invited_by: UUID | None = None
    email_verified: bool = False
    email_verified_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Whether the account may authenticate."""
        return self.status == UserStatus.ACTIVE

    def public_dict(self) -> dict[str, object]:
        """User fields safe to return to clients (no password hash)."""
        return {
            "id": str(self.id),
            "email": self.email,
            "fullName": self.full_name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "role": self.role.value,
            "status": self.status.value,
            "storeId": str(self.store_id) if self.store_id else None,
            "warehouseId": str(self.warehouse_id) if self.warehouse_id else None,
            "emailVerified": self.email_verified,
            "createdAt": self.created_at.isoformat(),
        }


class Invitation(BaseModel):
    """Single-use, time-boxed account creation ticket."""

    id: UUID
    email: EmailStr
    full_name: str | None = None
    token: str
    role: UserRole
    store_id: UUID
    warehouse_id: UUID | None = None
    invited_by: UUID
    status: InvitationStatus = InvitationStatus.PENDING
    expires_at: datetime
    accepted_at: datetime | None = None
    user_id: UUID | None = None
    created_at: datetime

    def public_dict(self) -> dict[str, object]:
        """Invitation fields safe to return to clients (no token)."""
        return {
            "id": str(self.id),
            "email": self.email,
            "fullName": self.full_name,
            "role": self.role.value,
            "status": self.status.value,
            "storeId": str(self.store_id),
            "warehouseId": str(self.warehouse_id) if self.warehouse_id else None,
            "expiresAt": self.expires_at.isoformat(),
            "acceptedAt": self.accepted_at.isoformat() if self.accepted_at else None,
        }


class Session(BaseModel):
    """Server-side record binding one login to a token pair."""

    id: str
    user_id: UUID
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime
    created_at: datetime
    user_agent: str | None = None
    ip_address: str | None = None
    device_type: str | None = None
    device_info: str | None = None
    location: str | None = None

    def public_dict(self) -> dict[str, object]:
        """Session fields safe to return to clients (no token strings)."""
        return {
            "id": self.id,
            "expiresAt": self.expires_at.isoformat(),
            "createdAt": self.created_at.isoformat(),
            "userAgent": self.user_agent,
            "ipAddress": self.ip_address,
            "platform": self.device_type,
            "deviceInfo": self.device_info,
            "location": self.location,
        }


class SessionMetadata(BaseModel):
    """Client details captured when a session is created."""

    user_agent: str | None = None
    ip_address: str | None = None
    platform: str | None = None
    device_info: str | None = None
    location: str | None = None


class TokenPair(BaseModel):
    """Access/refresh token pair bound to one session."""

    access_token: str
    refresh_token: str
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime

    def public_dict(self) -> dict[str, str]:
        """Token fields in the wire format clients expect."""
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "accessTokenExpiresAt": self.access_token_expires_at.isoformat(),
            "refreshTokenExpiresAt": self.refresh_token_expires_at.isoformat(),
        }


class TokenPayload(BaseModel):
    """JWT token payload claims."""

    user_id: str
    email: str
    session_id: str
    type: str  # "access" or "refresh"
    exp: int  # expiration timestamp
    iat: int  # issued at timestamp


@dataclass
class AuthContext:
    """Identity produced by authentication and passed explicitly to handlers."""

    user_id: UUID
    email: str
    full_name: str | None
    role: UserRole
    status: UserStatus
    store_id: UUID | None
    warehouse_id: UUID | None
    session_id: str
    token_expires_soon: bool = False
