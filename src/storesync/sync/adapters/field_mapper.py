"""Field mappers from WooCommerce REST payloads to cached entities.

The store API sends money as decimal strings (sometimes ""), GMT timestamps
without an offset and ids as integers. Everything is normalised here so the
domain layer only ever sees Decimal, aware datetimes and ints.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from ..domain.entities import (
    Order,
    OrderItem,
    OrderItemRefund,
    Product,
    ProductAttribute,
    ProductVariation,
    Refund,
    VariationAttribute,
)
from ..domain.ports import IFieldMapper


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC.

    Accepts the trailing "Z" as well as explicit offsets.
    """
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_decimal(value: Any, default: Decimal | None = None) -> Decimal | None:
    """Parse a money or quantity value. Empty strings give ``default``."""
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid decimal value: {value!r}")


def _timestamp(raw: dict[str, Any], name: str) -> datetime | None:
    return parse_timestamp(raw.get(f"{name}_gmt") or raw.get(name))


class ProductFieldMapper(IFieldMapper):
    """Maps /products items to Product entities."""

    entity_cls = Product

    def map_to_entity(self, raw: dict[str, Any], site_id: int) -> Product:
        return Product(
            site_id=site_id,
            product_id=int(raw["id"]),
            name=raw.get("name") or "",
            product_type=raw.get("type") or "simple",
            status=raw.get("status") or "publish",
            menu_order=int(raw.get("menu_order") or 0),
            price=parse_decimal(raw.get("price")),
            regular_price=parse_decimal(raw.get("regular_price")),
            sku=raw.get("sku") or None,
            stock_quantity=raw.get("stock_quantity"),
            stock_status=raw.get("stock_status") or "instock",
            purchasable=bool(raw.get("purchasable", True)),
            date_created=_timestamp(raw, "date_created"),
            date_modified=_timestamp(raw, "date_modified"),
            attributes=[
                ProductAttribute(
                    attribute_id=int(attr.get("id") or 0),
                    name=attr["name"],
                    options=list(attr.get("options") or []),
                    variation=bool(attr.get("variation", False)),
                )
                for attr in sorted(raw.get("attributes") or [], key=lambda a: a.get("position", 0))
            ],
        )


class ProductVariationFieldMapper(IFieldMapper):
    """Maps /products/<id>/variations items for one parent product."""

    entity_cls = ProductVariation

    def __init__(self, product_id: int):
        self.product_id = product_id

    def map_to_entity(self, raw: dict[str, Any], site_id: int) -> ProductVariation:
        return ProductVariation(
            site_id=site_id,
            variation_id=int(raw["id"]),
            product_id=int(raw.get("parent_id") or self.product_id),
            menu_order=int(raw.get("menu_order") or 0),
            status=raw.get("status") or "publish",
            purchasable=bool(raw.get("purchasable", True)),
            price=parse_decimal(raw.get("price")),
            regular_price=parse_decimal(raw.get("regular_price")),
            sku=raw.get("sku") or None,
            stock_status=raw.get("stock_status") or "instock",
            attributes=[
                VariationAttribute(
                    attribute_id=int(attr.get("id") or 0),
                    name=attr["name"],
                    option=attr["option"],
                )
                for attr in raw.get("attributes") or []
            ],
        )


def _line_item_fields(raw: dict[str, Any]) -> dict[str, Any]:
    zero = Decimal("0")
    return {
        "item_id": int(raw["id"]),
        "name": raw.get("name") or "",
        "product_id": int(raw.get("product_id") or 0),
        "variation_id": int(raw.get("variation_id") or 0),
        "quantity": parse_decimal(raw.get("quantity"), zero),
        "price": parse_decimal(raw.get("price"), zero),
        "subtotal": parse_decimal(raw.get("subtotal"), zero),
        "total": parse_decimal(raw.get("total"), zero),
        "total_tax": parse_decimal(raw.get("total_tax"), zero),
        "sku": raw.get("sku") or None,
    }


class OrderFieldMapper(IFieldMapper):
    """Maps /orders items, including their line items."""

    entity_cls = Order

    def map_to_entity(self, raw: dict[str, Any], site_id: int) -> Order:
        billing = raw.get("billing") or {}
        return Order(
            site_id=site_id,
            order_id=int(raw["id"]),
            number=str(raw.get("number") or raw["id"]),
            status=raw.get("status") or "pending",
            currency=raw.get("currency") or "",
            total=parse_decimal(raw.get("total"), Decimal("0")),
            customer_id=int(raw.get("customer_id") or 0),
            billing_first_name=billing.get("first_name") or "",
            billing_last_name=billing.get("last_name") or "",
            billing_email=billing.get("email") or None,
            date_created=_timestamp(raw, "date_created"),
            date_modified=_timestamp(raw, "date_modified"),
            items=[OrderItem(**_line_item_fields(item)) for item in raw.get("line_items") or []],
        )


class RefundFieldMapper(IFieldMapper):
    """Maps /orders/<id>/refunds items for one order."""

    entity_cls = Refund

    def __init__(self, order_id: int):
        self.order_id = order_id

    def map_to_entity(self, raw: dict[str, Any], site_id: int) -> Refund:
        return Refund(
            site_id=site_id,
            refund_id=int(raw["id"]),
            order_id=self.order_id,
            amount=parse_decimal(raw.get("amount"), Decimal("0")),
            reason=raw.get("reason") or "",
            refunded_by_user_id=int(raw.get("refunded_by") or 0),
            is_automated=bool(raw.get("refunded_payment", False)),
            date_created=_timestamp(raw, "date_created"),
            items=[OrderItemRefund(**_line_item_fields(item)) for item in raw.get("line_items") or []],
        )
