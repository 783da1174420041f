"""Warehouse model."""
from sqlalchemy import Boolean, Column, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID

from darkhorse.models.base import BaseModel


class Warehouse(BaseModel):
    """A fulfilment site of a store."""

    __tablename__ = "warehouses"

    store_id = Column(
        UUID(as_uuid=True), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    code = Column(String(50))
    is_active = Column(Boolean, nullable=False, server_default="true")
