"""Adapters layer - Infrastructure implementations of the domain ports.

- memory_store: In-process IEntityStore with change notifications
- postgres_store: asyncpg-backed IEntityStore
- store_api_adapter: IPageAPI implementations over StoreAPIClient
- field_mapper: Raw API payload to entity mapping
"""

from .field_mapper import (
    OrderFieldMapper,
    ProductFieldMapper,
    ProductVariationFieldMapper,
    RefundFieldMapper,
)
from .memory_store import InMemoryEntityStore
from .postgres_store import PostgresEntityStore
from .store_api_adapter import (
    RemoteOrdersAPI,
    RemoteProductsAPI,
    RemoteProductVariationsAPI,
    RemoteRefundsAPI,
)

__all__ = [
    # Mappers
    "OrderFieldMapper",
    "ProductFieldMapper",
    "ProductVariationFieldMapper",
    "RefundFieldMapper",
    # Stores
    "InMemoryEntityStore",
    "PostgresEntityStore",
    # Remote APIs
    "RemoteOrdersAPI",
    "RemoteProductsAPI",
    "RemoteProductVariationsAPI",
    "RemoteRefundsAPI",
]
