"""Domain layer - Pure domain entities, queries and port interfaces.

No infrastructure dependencies allowed in this layer.
"""

from .entities import (
    ENTITY_TYPES,
    CachedEntity,
    EntityKey,
    Order,
    OrderItem,
    OrderItemRefund,
    PageSyncResult,
    Product,
    ProductAttribute,
    ProductVariation,
    Refund,
    StoreChange,
    SyncStatus,
    UpsertResult,
    VariationAttribute,
)
from .ports import (
    IEntityStore,
    IFieldMapper,
    IPageAPI,
    ISettingsStore,
    ISyncingDelegate,
)
from .queries import FieldFilter, Operator, Predicate, SortDescriptor

__all__ = [
    # Entities
    "ENTITY_TYPES",
    "CachedEntity",
    "EntityKey",
    "Order",
    "OrderItem",
    "OrderItemRefund",
    "Product",
    "ProductAttribute",
    "ProductVariation",
    "Refund",
    "VariationAttribute",
    # Results
    "PageSyncResult",
    "StoreChange",
    "SyncStatus",
    "UpsertResult",
    # Queries
    "FieldFilter",
    "Operator",
    "Predicate",
    "SortDescriptor",
    # Ports
    "IEntityStore",
    "IFieldMapper",
    "IPageAPI",
    "ISettingsStore",
    "ISyncingDelegate",
]
