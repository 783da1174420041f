"""API route modules."""

from fastapi import APIRouter

from darkhorse.entrypoints.api.routes.auth import router as auth_router
from darkhorse.entrypoints.api.routes.stores import router as stores_router

# Create main API router
api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(stores_router)

__all__ = ["api_router"]
