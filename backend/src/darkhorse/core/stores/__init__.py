"""Store domain: tenants, their warehouses and the Salla connection."""

from darkhorse.core.stores.repository import StoreRepository
from darkhorse.core.stores.types import (
    Pagination,
    SallaConnection,
    SallaTokens,
    Store,
    StoreDetails,
    StoreListing,
    StoreStats,
    Warehouse,
)

__all__ = [
    "Store",
    "Warehouse",
    "StoreStats",
    "StoreListing",
    "StoreDetails",
    "Pagination",
    "SallaTokens",
    "SallaConnection",
    "StoreRepository",
]
