"""User model."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import UUID

from darkhorse.models.base import BaseModel


class User(BaseModel):
    """A user in the system."""

    __tablename__ = "users"

    email = Column(String(255), nullable=False)
    password_hash = Column(String(255))
    full_name = Column(String(201))
    first_name = Column(String(100))
    last_name = Column(String(100))
    phone = Column(String(20))
    role = Column(String(32), nullable=False, server_default="USER")
    status = Column(String(32), nullable=False, server_default="PENDING")
    store_id = Column(
        UUID(as_uuid=True), ForeignKey("stores.id", ondelete="SET NULL"), index=True
    )
    warehouse_id = Column(UUID(as_uuid=True), ForeignKey("warehouses.id", ondelete="SET NULL"))
    invited_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    email_verified = Column(Boolean, nullable=False, server_default="false")
    email_verified_at = Column(DateTime(timezone=True))


# One live account per email; soft-deleted rows free the address
Index(
    "uq_users_email_live",
    func.lower(User.email),
    unique=True,
    postgresql_where=User.status != "DELETED",
)
