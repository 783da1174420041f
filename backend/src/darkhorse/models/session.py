"""Session model."""
from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID

from darkhorse.models.base import BaseModel


class Session(BaseModel):
    """A login. The id doubles as the sessionId token claim."""

    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    user_agent = Column(Text)
    ip_address = Column(String(64))
    device_type = Column(String(64))
    device_info = Column(Text)
    location = Column(String(255))
