"""Domain entities for the store cache.

Cached entities are plain dataclasses keyed by (site_id, entity id). They
carry no infrastructure code; stores persist them through the JSON-safe
record produced by ``to_record`` and rebuild them with ``from_record``.
"""

import dataclasses
import types
import typing
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, ClassVar, NamedTuple


class EntityKey(NamedTuple):
    """Composite identity of a cached entity."""

    site_id: int
    entity_id: int


# ============================================
# Record Codec
# ============================================


def _unwrap_optional(hint: Any) -> Any:
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _encode(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _decode(hint: Any, value: Any) -> Any:
    if value is None:
        return None
    hint = _unwrap_optional(hint)
    origin = typing.get_origin(hint)

    if origin in (list, tuple):
        args = typing.get_args(hint)
        item_hint = args[0] if args else Any
        items = [_decode(item_hint, v) for v in value]
        return tuple(items) if origin is tuple else items
    if hint is Decimal:
        return Decimal(str(value))
    if hint is datetime:
        return datetime.fromisoformat(value) if isinstance(value, str) else value
    if isinstance(hint, type) and issubclass(hint, Enum):
        return hint(value)
    if dataclasses.is_dataclass(hint):
        hints = _type_hints(hint)
        return hint(**{
            f.name: _decode(hints[f.name], value[f.name])
            for f in dataclasses.fields(hint)
            if f.name in value
        })
    return value


@lru_cache(maxsize=None)
def _type_hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls)


# ============================================
# Cached Entity Base
# ============================================


class CachedEntity:
    """Mixin for dataclasses that live in the entity store.

    Subclasses set:
        entity_type: Name used for storage and change notifications
        ID_FIELD: Attribute holding the remote identifier
        CHILDREN_FIELD: Attribute holding owned child rows, if any
        CHILD_ID_FIELD: Identifier attribute on each child row
    """

    entity_type: ClassVar[str]
    ID_FIELD: ClassVar[str]
    CHILDREN_FIELD: ClassVar[str | None] = None
    CHILD_ID_FIELD: ClassVar[str | None] = None

    site_id: int

    @property
    def entity_id(self) -> int:
        return getattr(self, self.ID_FIELD)

    @property
    def key(self) -> EntityKey:
        return EntityKey(self.site_id, self.entity_id)

    @property
    def children(self) -> list[Any]:
        if not self.CHILDREN_FIELD:
            return []
        return list(getattr(self, self.CHILDREN_FIELD))

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in dataclasses.fields(cls))

    @classmethod
    def field_type(cls, name: str) -> Any:
        """Return the declared type of ``name`` with Optional stripped."""
        return _unwrap_optional(_type_hints(cls)[name])

    @classmethod
    def child_type(cls) -> type | None:
        if not cls.CHILDREN_FIELD:
            return None
        return typing.get_args(cls.field_type(cls.CHILDREN_FIELD))[0]

    def to_record(self, include_children: bool = True) -> dict[str, Any]:
        """Encode to a JSON-safe dict (Decimal and datetime become strings)."""
        record = {}
        for f in dataclasses.fields(self):
            if f.name == self.CHILDREN_FIELD and not include_children:
                continue
            record[f.name] = _encode(getattr(self, f.name))
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any], children: list[dict[str, Any]] | None = None):
        """Rebuild an entity from ``to_record`` output.

        ``children`` overrides the embedded child list when the store keeps
        child rows separately.
        """
        hints = _type_hints(cls)
        values = {}
        for f in dataclasses.fields(cls):
            if f.name == cls.CHILDREN_FIELD and children is not None:
                values[f.name] = _decode(hints[f.name], children)
            elif f.name in record:
                values[f.name] = _decode(hints[f.name], record[f.name])
        return cls(**values)

    @classmethod
    def encode_child(cls, child: Any) -> dict[str, Any]:
        return _encode(child)


# ============================================
# Products
# ============================================


@dataclass
class ProductAttribute:
    """A product attribute such as "Color" with its option values."""

    attribute_id: int
    name: str
    options: list[str] = field(default_factory=list)
    variation: bool = False


@dataclass
class Product(CachedEntity):
    """A catalogue product."""

    entity_type: ClassVar[str] = "product"
    ID_FIELD: ClassVar[str] = "product_id"

    site_id: int
    product_id: int
    name: str = ""
    product_type: str = "simple"
    status: str = "publish"
    menu_order: int = 0
    price: Decimal | None = None
    regular_price: Decimal | None = None
    sku: str | None = None
    stock_quantity: int | None = None
    stock_status: str = "instock"
    purchasable: bool = True
    date_created: datetime | None = None
    date_modified: datetime | None = None
    attributes: list[ProductAttribute] = field(default_factory=list)

    @property
    def variation_attributes(self) -> list[ProductAttribute]:
        """Attributes used to build variations, in display order."""
        return [a for a in self.attributes if a.variation]


@dataclass
class VariationAttribute:
    """The option chosen for one attribute of a variation."""

    attribute_id: int
    name: str
    option: str


@dataclass
class ProductVariation(CachedEntity):
    entity_type: ClassVar[str] = "product_variation"
    ID_FIELD: ClassVar[str] = "variation_id"

    site_id: int
    variation_id: int
    product_id: int
    menu_order: int = 0
    status: str = "publish"
    purchasable: bool = True
    price: Decimal | None = None
    regular_price: Decimal | None = None
    sku: str | None = None
    stock_status: str = "instock"
    attributes: list[VariationAttribute] = field(default_factory=list)


# ============================================
# Orders and Refunds
# ============================================


@dataclass
class OrderItem:
    """A line item owned by an order. Replaced wholesale on each order upsert."""

    item_id: int
    name: str
    product_id: int
    variation_id: int = 0
    quantity: Decimal = Decimal("0")
    price: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    total_tax: Decimal = Decimal("0")
    sku: str | None = None


@dataclass
class Order(CachedEntity):
    entity_type: ClassVar[str] = "order"
    ID_FIELD: ClassVar[str] = "order_id"
    CHILDREN_FIELD: ClassVar[str | None] = "items"
    CHILD_ID_FIELD: ClassVar[str | None] = "item_id"

    site_id: int
    order_id: int
    number: str = ""
    status: str = "pending"
    currency: str = ""
    total: Decimal = Decimal("0")
    customer_id: int = 0
    billing_first_name: str = ""
    billing_last_name: str = ""
    billing_email: str | None = None
    date_created: datetime | None = None
    date_modified: datetime | None = None
    items: list[OrderItem] = field(default_factory=list)

    @property
    def customer_name(self) -> str:
        return f"{self.billing_first_name} {self.billing_last_name}".strip()


@dataclass
class OrderItemRefund:
    """A refunded line item. Quantities and totals are negative."""

    item_id: int
    name: str
    product_id: int
    variation_id: int = 0
    quantity: Decimal = Decimal("0")
    price: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    total_tax: Decimal = Decimal("0")
    sku: str | None = None


@dataclass
class Refund(CachedEntity):
    entity_type: ClassVar[str] = "refund"
    ID_FIELD: ClassVar[str] = "refund_id"
    CHILDREN_FIELD: ClassVar[str | None] = "items"
    CHILD_ID_FIELD: ClassVar[str | None] = "item_id"

    site_id: int
    refund_id: int
    order_id: int
    amount: Decimal = Decimal("0")
    reason: str = ""
    refunded_by_user_id: int = 0
    is_automated: bool = False
    date_created: datetime | None = None
    items: list[OrderItemRefund] = field(default_factory=list)


ENTITY_TYPES: dict[str, type[CachedEntity]] = {
    cls.entity_type: cls for cls in (Product, ProductVariation, Order, Refund)
}


# ============================================
# Sync Results and Status
# ============================================


class SyncStatus(Enum):
    """What a paginated list should display."""

    NONE = "none"
    FIRST_PAGE_SYNC = "first_page_sync"
    RESULTS = "results"
    EMPTY = "empty"


@dataclass
class UpsertResult:
    """Counts from one store upsert batch."""

    inserted: int = 0
    updated: int = 0
    removed: int = 0
    children_inserted: int = 0
    children_updated: int = 0
    children_deleted: int = 0

    @property
    def upserted(self) -> int:
        return self.inserted + self.updated


@dataclass
class PageSyncResult:
    """Outcome of fetching and persisting one page.

    ``item_count`` is the number of raw items the remote returned, which is
    what decides whether the last page has been reached.
    """

    success: bool
    page_number: int
    page_size: int
    item_count: int = 0
    upserted: int = 0
    errors: int = 0
    synced_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Exception | None = None
    error_details: list[str] = field(default_factory=list)

    @property
    def is_last_page(self) -> bool:
        return self.success and self.item_count < self.page_size

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "page_number": self.page_number,
            "page_size": self.page_size,
            "item_count": self.item_count,
            "upserted": self.upserted,
            "errors": self.errors,
            "synced_at": self.synced_at.isoformat(),
            "error": str(self.error) if self.error else None,
        }


@dataclass(frozen=True)
class StoreChange:
    """Published by an entity store after a committed write."""

    entity_type: str
    keys: tuple[EntityKey, ...]
    kind: str = "upsert"
