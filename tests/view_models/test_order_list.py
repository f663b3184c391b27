"""Tests for the order and refund list view models."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import pytest

from src.storesync.settings.models import DateRangeKind, OrderDateRangeFilter
from src.storesync.settings.service import AppSettingsService
from src.storesync.settings.stores import InMemorySettingsStore
from src.storesync.sync.adapters.memory_store import InMemoryEntityStore
from src.storesync.sync.domain.entities import Refund, SyncStatus
from src.storesync.sync.domain.ports import IPageAPI
from src.storesync.view_models.order_list import (
    OrderListViewModel,
    RefundListViewModel,
    date_range_bounds,
)

NOW = datetime(2024, 6, 15, 14, 30, tzinfo=timezone.utc)


class FakePageAPI(IPageAPI):
    def __init__(self, pages: Optional[dict[int, list[dict[str, Any]]]] = None):
        self.pages = pages or {}
        self.calls: list[tuple[int, int, Optional[dict]]] = []

    async def fetch_page(self, page_number: int, page_size: int, filters: Optional[dict[str, Any]] = None):
        self.calls.append((page_number, page_size, filters))
        return self.pages.get(page_number, [])


def raw_order(order_id: int, created: str, status: str = "processing", **extra: Any) -> dict[str, Any]:
    return {
        "id": order_id,
        "number": str(order_id),
        "status": status,
        "currency": "USD",
        "total": "12.00",
        "billing": {"first_name": "Ana", "last_name": "Diaz"},
        "date_created_gmt": created,
        "line_items": [],
        **extra,
    }


class TestDateRangeBounds:
    """Test resolving date range filters."""

    def test_any_has_no_bounds(self):
        assert date_range_bounds(None, NOW) == (None, None)
        assert date_range_bounds(OrderDateRangeFilter(kind=DateRangeKind.ANY), NOW) == (None, None)

    def test_today(self):
        after, before = date_range_bounds(OrderDateRangeFilter(kind=DateRangeKind.TODAY), NOW)
        assert after == datetime(2024, 6, 15, tzinfo=timezone.utc)
        assert before is None

    def test_last_two_and_seven_days(self):
        after2, _ = date_range_bounds(OrderDateRangeFilter(kind=DateRangeKind.LAST_2_DAYS), NOW)
        after7, _ = date_range_bounds(OrderDateRangeFilter(kind=DateRangeKind.LAST_7_DAYS), NOW)
        assert after2 == datetime(2024, 6, 14, tzinfo=timezone.utc)
        assert after7 == datetime(2024, 6, 9, tzinfo=timezone.utc)

    def test_custom_range(self):
        start = datetime(2024, 6, 1, tzinfo=timezone.utc)
        end = datetime(2024, 6, 10)
        after, before = date_range_bounds(
            OrderDateRangeFilter(kind=DateRangeKind.CUSTOM, start=start, end=end), NOW
        )
        assert after == start
        assert before == datetime(2024, 6, 10, tzinfo=timezone.utc)


class TestOrderList:
    """Test the orders list."""

    @pytest.mark.asyncio
    async def test_newest_first(self):
        api = FakePageAPI(pages={1: [
            raw_order(1, "2024-06-01T10:00:00"),
            raw_order(3, "2024-06-03T10:00:00"),
            raw_order(2, "2024-06-02T10:00:00"),
        ]})
        view_model = OrderListViewModel(InMemoryEntityStore(), api, site_id=1)

        await view_model.on_load()

        rows = view_model.rows.value
        assert [row.order_id for row in rows] == [3, 2, 1]
        assert rows[0].customer_name == "Ana Diaz"
        assert rows[0].total == Decimal("12.00")
        assert view_model.sync_status.value is SyncStatus.RESULTS
        assert api.calls[0][2] == {}

    @pytest.mark.asyncio
    async def test_status_and_date_filters_from_settings(self):
        settings = AppSettingsService(InMemorySettingsStore())
        settings.upsert_orders_settings(
            1,
            order_statuses_filter=["processing", "on-hold"],
            date_range_filter=OrderDateRangeFilter(kind=DateRangeKind.LAST_2_DAYS),
        )
        api = FakePageAPI(pages={1: [
            raw_order(1, "2024-06-15T09:00:00"),
            raw_order(2, "2024-06-14T01:00:00", status="on-hold"),
            raw_order(3, "2024-06-15T08:00:00", status="completed"),
            raw_order(4, "2024-06-10T08:00:00"),
        ]})
        view_model = OrderListViewModel(
            InMemoryEntityStore(), api, site_id=1, settings_service=settings, clock=lambda: NOW
        )

        await view_model.on_load()

        assert api.calls[0][2] == {
            "statuses": ["processing", "on-hold"],
            "after": "2024-06-14T00:00:00+00:00",
        }
        assert [row.order_id for row in view_model.rows.value] == [1, 2]

    @pytest.mark.asyncio
    async def test_number_falls_back_to_id(self):
        api = FakePageAPI(pages={1: [raw_order(9, "2024-06-01T10:00:00", number="")]})
        view_model = OrderListViewModel(InMemoryEntityStore(), api, site_id=1)

        await view_model.on_load()

        assert view_model.rows.value[0].number == "9"

    @pytest.mark.asyncio
    async def test_reload_settings_applies_new_filter(self):
        settings = AppSettingsService(InMemorySettingsStore())
        api = FakePageAPI(pages={1: [
            raw_order(1, "2024-06-15T09:00:00", status="completed"),
            raw_order(2, "2024-06-15T10:00:00"),
        ]})
        view_model = OrderListViewModel(InMemoryEntityStore(), api, site_id=1, settings_service=settings)
        await view_model.on_load()
        assert len(view_model.rows.value) == 2

        settings.upsert_orders_settings(1, order_statuses_filter=["completed"])
        await view_model.reload_settings()

        assert [row.order_id for row in view_model.rows.value] == [1]
        assert api.calls[1][2] == {"statuses": ["completed"]}


class TestRefundList:
    """Test the refunds list of one order."""

    @pytest.mark.asyncio
    async def test_lists_refunds_of_order(self):
        store = InMemoryEntityStore()
        await store.upsert(Refund, [Refund(site_id=1, refund_id=50, order_id=999)])
        api = FakePageAPI(pages={1: [
            {"id": 1, "amount": "2.00", "date_created_gmt": "2024-06-01T10:00:00"},
            {"id": 2, "amount": "3.00", "reason": "Late", "date_created_gmt": "2024-06-02T10:00:00"},
        ]})
        view_model = RefundListViewModel(store, api, site_id=1, order_id=1001)

        await view_model.on_load()

        rows = view_model.rows.value
        assert [row.refund_id for row in rows] == [2, 1]
        assert rows[0].reason == "Late"
        assert all(row.order_id == 1001 for row in rows)
