"""Tests for cached entities and result objects."""

from datetime import datetime, timezone
from decimal import Decimal

from src.storesync.sync.domain.entities import (
    ENTITY_TYPES,
    EntityKey,
    Order,
    OrderItem,
    PageSyncResult,
    Product,
    ProductAttribute,
    ProductVariation,
    Refund,
    UpsertResult,
)


class TestEntityIdentity:
    """Test keys and type metadata."""

    def test_key_combines_site_and_id(self):
        product = Product(site_id=2, product_id=10)
        assert product.key == EntityKey(2, 10)
        assert product.entity_id == 10

    def test_entity_type_registry(self):
        assert ENTITY_TYPES == {
            "product": Product,
            "product_variation": ProductVariation,
            "order": Order,
            "refund": Refund,
        }

    def test_field_type_strips_optional(self):
        assert Product.field_type("price") is Decimal
        assert Order.field_type("date_created") is datetime

    def test_child_type(self):
        assert Order.child_type() is OrderItem
        assert Product.child_type() is None
        assert Product(site_id=1, product_id=1).children == []


class TestRecordCodec:
    """Test to_record/from_record."""

    def test_record_is_json_safe(self):
        product = Product(
            site_id=1,
            product_id=5,
            price=Decimal("9.99"),
            date_created=datetime(2024, 1, 1, tzinfo=timezone.utc),
            attributes=[ProductAttribute(attribute_id=1, name="Color", options=["Red"], variation=True)],
        )

        record = product.to_record()

        assert record["price"] == "9.99"
        assert record["date_created"] == "2024-01-01T00:00:00+00:00"
        assert record["attributes"] == [{"attribute_id": 1, "name": "Color", "options": ["Red"], "variation": True}]
        assert Product.from_record(record) == product

    def test_children_excluded_and_supplied_separately(self):
        order = Order(site_id=1, order_id=1, items=[OrderItem(item_id=3, name="Mug", product_id=5)])

        record = order.to_record(include_children=False)
        assert "items" not in record

        rebuilt = Order.from_record(record, children=[Order.encode_child(order.items[0])])
        assert rebuilt == order


class TestResults:
    """Test result objects."""

    def test_upsert_result_total(self):
        assert UpsertResult(inserted=2, updated=3).upserted == 5

    def test_page_sync_result_last_page(self):
        assert PageSyncResult(success=True, page_number=1, page_size=25, item_count=10).is_last_page
        assert not PageSyncResult(success=True, page_number=1, page_size=25, item_count=25).is_last_page
        assert not PageSyncResult(success=False, page_number=1, page_size=25).is_last_page

    def test_page_sync_result_to_dict(self):
        result = PageSyncResult(success=False, page_number=2, page_size=25, error=RuntimeError("boom"))
        data = result.to_dict()
        assert data["error"] == "boom"
        assert data["page_number"] == 2
