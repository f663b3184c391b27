"""Sync module - paginated sync of remote collections into a local entity store.

Architecture:
    domain/        - Pure domain entities, queries and port interfaces
    coordination/  - Page tracking, sync coordination and store projections
    use_cases/     - Business logic orchestration
    adapters/      - Infrastructure implementations (PostgreSQL, memory, store API)
"""

from .domain.entities import (
    EntityKey,
    Order,
    OrderItem,
    PageSyncResult,
    Product,
    ProductVariation,
    Refund,
    StoreChange,
    SyncStatus,
    UpsertResult,
)
from .domain.ports import (
    IEntityStore,
    IFieldMapper,
    IPageAPI,
    ISettingsStore,
    ISyncingDelegate,
)

__all__ = [
    # Entities
    "EntityKey",
    "Order",
    "OrderItem",
    "Product",
    "ProductVariation",
    "Refund",
    # Results
    "PageSyncResult",
    "StoreChange",
    "SyncStatus",
    "UpsertResult",
    # Ports
    "IEntityStore",
    "IFieldMapper",
    "IPageAPI",
    "ISettingsStore",
    "ISyncingDelegate",
]
