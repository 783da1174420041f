"""Base model with common fields for all models."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import MetaData, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, registry

mapper_registry: registry = registry()

# Constraint names stay stable across environments
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class BaseModel(DeclarativeBase):
    """Base model with common fields.

    Repositories insert rows with raw SQL, so defaults live on the server.
    """

    registry = mapper_registry
    metadata = metadata

    __abstract__ = True

    id: Mapped[UUID] = mapped_column(primary_key=True, server_default=text("gen_random_uuid()"))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
