"""Invitation model."""
from sqlalchemy import Column, DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import UUID

from darkhorse.models.base import BaseModel


class Invitation(BaseModel):
    """A single-use ticket to create an account with a preset role."""

    __tablename__ = "invitations"

    email = Column(String(255), nullable=False)
    full_name = Column(String(201))
    token = Column(String(128), nullable=False, unique=True)
    role = Column(String(32), nullable=False)
    store_id = Column(
        UUID(as_uuid=True), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    warehouse_id = Column(UUID(as_uuid=True), ForeignKey("warehouses.id", ondelete="SET NULL"))
    invited_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))
    status = Column(String(16), nullable=False, server_default="PENDING")
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True))
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"))


# At most one PENDING invitation per email
Index(
    "uq_invitations_email_pending",
    func.lower(Invitation.email),
    unique=True,
    postgresql_where=Invitation.status == "PENDING",
)
