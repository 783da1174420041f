"""Store model."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID

from darkhorse.models.base import BaseModel


class Store(BaseModel):
    """A merchant tenant. Salla secrets are stored Fernet-encrypted."""

    __tablename__ = "stores"

    name = Column(String(100), nullable=False, unique=True)
    slug = Column(String(100), nullable=False, unique=True)
    # stores and users reference each other; added after both tables exist
    created_by = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True),
    )
    is_active = Column(Boolean, nullable=False, server_default="true")

    salla_client_id = Column(String(255))
    salla_client_secret = Column(Text)
    salla_access_token = Column(Text)
    salla_refresh_token = Column(Text)
    salla_token_expires_at = Column(DateTime(timezone=True))
    salla_oauth_state = Column(String(128), unique=True)
    salla_connected_at = Column(DateTime(timezone=True))
