"""Orders list and per-order refunds list view models."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from ..config import SyncingConfig
from ..settings.models import DateRangeKind, OrderDateRangeFilter, OrdersSettings
from ..settings.service import AppSettingsService
from ..sync.adapters.field_mapper import OrderFieldMapper, RefundFieldMapper
from ..sync.domain.entities import Order, Refund
from ..sync.domain.ports import IEntityStore, IPageAPI
from ..sync.domain.queries import Predicate, SortDescriptor, eq, gte, is_in, lt
from ..sync.use_cases.sync_page import SyncPageUseCase
from .paginated_list import PaginatedListViewModel

logger = logging.getLogger(__name__)

ORDER_SORT = [SortDescriptor("date_created", ascending=False), SortDescriptor("order_id", ascending=False)]
REFUND_SORT = [SortDescriptor("date_created", ascending=False), SortDescriptor("refund_id", ascending=False)]


def date_range_bounds(
    date_range: Optional[OrderDateRangeFilter],
    now: Optional[datetime] = None,
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Resolve a date range filter to (after, before) UTC bounds.

    ``after`` is inclusive and ``before`` exclusive. Relative ranges are
    counted in whole days, including today.
    """
    if date_range is None or date_range.kind is DateRangeKind.ANY:
        return None, None

    if date_range.kind is DateRangeKind.CUSTOM:
        return _utc(date_range.start), _utc(date_range.end)

    now = _utc(now or datetime.now(timezone.utc))
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    days_back = {
        DateRangeKind.TODAY: 0,
        DateRangeKind.LAST_2_DAYS: 1,
        DateRangeKind.LAST_7_DAYS: 6,
    }[date_range.kind]
    return start_of_today - timedelta(days=days_back), None


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class OrderRow:
    order_id: int
    number: str
    status: str
    customer_name: str
    total: Decimal
    currency: str
    date_created: Optional[datetime]


@dataclass(frozen=True)
class RefundRow:
    refund_id: int
    order_id: int
    amount: Decimal
    reason: str
    date_created: Optional[datetime]


class OrderListViewModel(PaginatedListViewModel):
    """A site's orders, newest first, filtered by the stored orders settings."""

    def __init__(
        self,
        store: IEntityStore,
        api: IPageAPI,
        site_id: int,
        settings_service: Optional[AppSettingsService] = None,
        config: Optional[SyncingConfig] = None,
        live: bool = False,
        clock=None,
    ):
        self.site_id = site_id
        self.settings_service = settings_service
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.settings = self._load_settings()
        super().__init__(
            store=store,
            sync_use_case=SyncPageUseCase(api, store, OrderFieldMapper(), site_id),
            entity_cls=Order,
            predicate=self._build_predicate(),
            sort=ORDER_SORT,
            config=config,
            live=live,
        )

    def _load_settings(self) -> OrdersSettings:
        stored = None
        if self.settings_service:
            stored = self.settings_service.load_orders_settings(self.site_id)
        return stored or OrdersSettings(site_id=self.site_id)

    def _bounds(self) -> tuple[Optional[datetime], Optional[datetime]]:
        return date_range_bounds(self.settings.date_range_filter, self._clock())

    def _build_predicate(self) -> Predicate:
        predicate = eq("site_id", self.site_id)
        if self.settings.order_statuses_filter:
            predicate = predicate & is_in("status", self.settings.order_statuses_filter)
        after, before = self._bounds()
        if after:
            predicate = predicate & gte("date_created", after)
        if before:
            predicate = predicate & lt("date_created", before)
        return predicate

    def sync_filters(self) -> dict[str, Any]:
        filters: dict[str, Any] = {}
        if self.settings.order_statuses_filter:
            filters["statuses"] = list(self.settings.order_statuses_filter)
        after, before = self._bounds()
        if after:
            filters["after"] = after.isoformat()
        if before:
            filters["before"] = before.isoformat()
        return filters

    async def reload_settings(self) -> None:
        """Re-read stored orders settings and resync from page 1."""
        self.settings = self._load_settings()
        self.projection.update(predicate=self._build_predicate())
        await self._refresh_projection()
        await self.sync_first_page(reason="settings_changed")

    def make_row(self, order: Order) -> OrderRow:
        return OrderRow(
            order_id=order.order_id,
            number=order.number or str(order.order_id),
            status=order.status,
            customer_name=order.customer_name,
            total=order.total,
            currency=order.currency,
            date_created=order.date_created,
        )


class RefundListViewModel(PaginatedListViewModel):
    def __init__(
        self,
        store: IEntityStore,
        api: IPageAPI,
        site_id: int,
        order_id: int,
        config: Optional[SyncingConfig] = None,
        live: bool = False,
    ):
        self.site_id = site_id
        self.order_id = order_id
        super().__init__(
            store=store,
            sync_use_case=SyncPageUseCase(api, store, RefundFieldMapper(order_id), site_id),
            entity_cls=Refund,
            predicate=eq("site_id", site_id) & eq("order_id", order_id),
            sort=REFUND_SORT,
            config=config,
            live=live,
        )

    def make_row(self, refund: Refund) -> RefundRow:
        return RefundRow(
            refund_id=refund.refund_id,
            order_id=refund.order_id,
            amount=refund.amount,
            reason=refund.reason,
            date_created=refund.date_created,
        )
