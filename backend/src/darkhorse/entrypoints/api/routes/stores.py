"""Store management routes. SUPER_ADMIN only."""

from typing import Annotated, Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from darkhorse.core.stores.service import SLUG_PATTERN, StoreService
from darkhorse.entrypoints.api.deps import get_store_service
from darkhorse.entrypoints.api.middleware.auth import RequireSuperAdmin
from darkhorse.entrypoints.api.responses import success

router = APIRouter(prefix="/stores", tags=["stores"])

StoreServiceDep = Annotated[StoreService, Depends(get_store_service)]


class CreateStoreRequest(BaseModel):
    """Request to create a store."""

    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN.pattern)


class UpdateStoreRequest(BaseModel):
    """Request to update a store."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN.pattern)


@router.post("", status_code=201)
async def create_store(
    body: CreateStoreRequest,
    auth: RequireSuperAdmin,
    service: StoreServiceDep,
) -> dict[str, Any]:
    """Create a store owned by the caller."""
    listing = await service.create_store(body.name, body.slug, auth)
    return success("Store created", {"store": listing.to_dict()})


@router.get("")
async def list_stores(
    auth: RequireSuperAdmin,
    service: StoreServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    search: str | None = None,
    sort_by: Annotated[
        Literal["name", "created_at", "updated_at"], Query(alias="sortBy")
    ] = "created_at",
    sort_order: Annotated[Literal["asc", "desc"], Query(alias="sortOrder")] = "desc",
) -> dict[str, Any]:
    """Page through stores with their stats."""
    listings, pagination = await service.list_stores(
        page=page,
        limit=limit,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return success(
        "Stores retrieved",
        {
            "stores": [listing.to_dict() for listing in listings],
            "pagination": pagination.to_dict(),
        },
    )


@router.get("/{store_id}")
async def get_store(
    store_id: UUID,
    auth: RequireSuperAdmin,
    service: StoreServiceDep,
) -> dict[str, Any]:
    """Store with members, warehouses and stats."""
    details = await service.get_store(store_id)
    return success("Store retrieved", {"store": details.to_dict()})


@router.put("/{store_id}")
async def update_store(
    store_id: UUID,
    body: UpdateStoreRequest,
    auth: RequireSuperAdmin,
    service: StoreServiceDep,
) -> dict[str, Any]:
    """Rename a store or change its slug."""
    listing = await service.update_store(store_id, name=body.name, slug=body.slug)
    return success("Store updated", {"store": listing.to_dict()})


@router.delete("/{store_id}")
async def delete_store(
    store_id: UUID,
    auth: RequireSuperAdmin,
    service: StoreServiceDep,
) -> dict[str, Any]:
    """Delete a store that has no users or warehouses."""
    store = await service.delete_store(store_id)
    return success(
        "Store deleted",
        {"deletedStore": {"id": str(store.id), "name": store.name, "slug": store.slug}},
    )
