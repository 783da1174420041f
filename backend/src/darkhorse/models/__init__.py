"""SQLAlchemy models for the application database."""
from darkhorse.models.base import BaseModel, metadata
from darkhorse.models.invitation import Invitation
from darkhorse.models.session import Session
from darkhorse.models.store import Store
from darkhorse.models.user import User
from darkhorse.models.warehouse import Warehouse

__all__ = [
    "BaseModel",
    "metadata",
    "Store",
    "Warehouse",
    "User",
    "Invitation",
    "Session",
]
