"""View models for picking products and product variations (e.g. when adding items to an order)."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from ..config import SyncingConfig
from ..settings.models import ProductsSettings, ProductsSortOrder
from ..settings.service import AppSettingsService
from ..sync.adapters.field_mapper import ProductFieldMapper, ProductVariationFieldMapper
from ..sync.domain.entities import Product, ProductVariation
from ..sync.domain.ports import IEntityStore, IPageAPI
from ..sync.domain.queries import Predicate, SortDescriptor, eq, is_in, not_in
from ..sync.use_cases.sync_page import SyncPageUseCase
from .paginated_list import PaginatedListViewModel

logger = logging.getLogger(__name__)

EXCLUDED_PRODUCT_TYPES = ("variable",)
INCLUDED_PRODUCT_STATUSES = ("publish", "private")

PRODUCT_SORT_DESCRIPTORS = {
    ProductsSortOrder.NAME_ASCENDING: [SortDescriptor("name", ascending=True)],
    ProductsSortOrder.NAME_DESCENDING: [SortDescriptor("name", ascending=False)],
    ProductsSortOrder.DATE_ASCENDING: [SortDescriptor("date_created", ascending=True)],
    ProductsSortOrder.DATE_DESCENDING: [SortDescriptor("date_created", ascending=False)],
}


@dataclass(frozen=True)
class ProductRow:
    product_id: int
    name: str
    sku: Optional[str]
    price: Optional[Decimal]
    stock_status: str
    stock_quantity: Optional[int]


@dataclass(frozen=True)
class VariationRow:
    variation_id: int
    product_id: int
    name: str
    sku: Optional[str]
    price: Optional[Decimal]
    stock_status: str


class ProductSelectorViewModel(PaginatedListViewModel):
    """Selectable products of one site.

    Variable products are excluded (their variations are picked separately)
    and only published or private products are shown. Sort order and the
    stock/status/type filters come from the site's stored products settings.
    """

    def __init__(
        self,
        store: IEntityStore,
        api: IPageAPI,
        site_id: int,
        settings_service: Optional[AppSettingsService] = None,
        config: Optional[SyncingConfig] = None,
        live: bool = False,
    ):
        self.site_id = site_id
        self.settings_service = settings_service
        self.settings = self._load_settings()
        super().__init__(
            store=store,
            sync_use_case=SyncPageUseCase(api, store, ProductFieldMapper(), site_id),
            entity_cls=Product,
            predicate=self._build_predicate(),
            sort=PRODUCT_SORT_DESCRIPTORS[self.settings.effective_sort],
            config=config,
            live=live,
        )

    def _load_settings(self) -> ProductsSettings:
        stored = None
        if self.settings_service:
            stored = self.settings_service.load_products_settings(self.site_id)
        return stored or ProductsSettings(site_id=self.site_id)

    def _build_predicate(self) -> Predicate:
        predicate = (
            eq("site_id", self.site_id)
            & not_in("product_type", EXCLUDED_PRODUCT_TYPES)
            & is_in("status", INCLUDED_PRODUCT_STATUSES)
        )
        if self.settings.stock_status_filter:
            predicate = predicate & eq("stock_status", self.settings.stock_status_filter)
        if self.settings.product_status_filter:
            predicate = predicate & eq("status", self.settings.product_status_filter)
        if self.settings.product_type_filter:
            predicate = predicate & eq("product_type", self.settings.product_type_filter)
        return predicate

    def sync_filters(self) -> dict[str, Any]:
        filters: dict[str, Any] = {"sort": self.settings.effective_sort.value}
        if self.settings.stock_status_filter:
            filters["stock_status"] = self.settings.stock_status_filter
        if self.settings.product_status_filter:
            filters["status"] = self.settings.product_status_filter
        if self.settings.product_type_filter:
            filters["type"] = self.settings.product_type_filter
        if self.settings.product_category_filter is not None:
            filters["category"] = self.settings.product_category_filter
        return filters

    async def reload_settings(self) -> None:
        """Re-read stored products settings and resync from page 1."""
        self.settings = self._load_settings()
        self.projection.update(
            predicate=self._build_predicate(),
            sort=PRODUCT_SORT_DESCRIPTORS[self.settings.effective_sort],
        )
        await self._refresh_projection()
        await self.sync_first_page(reason="settings_changed")

    def make_row(self, product: Product) -> ProductRow:
        return ProductRow(
            product_id=product.product_id,
            name=product.name,
            sku=product.sku,
            price=product.price,
            stock_status=product.stock_status,
            stock_quantity=product.stock_quantity,
        )


def variation_name(product: Product, variation: ProductVariation) -> str:
    """Build a display name such as "Blue - Any Size".

    Every variation attribute of the parent product contributes one part:
    the option the variation sets for it, or "Any <attribute>" if unset.
    """
    options = {a.name.lower(): a.option for a in variation.attributes}
    parent_attributes = product.variation_attributes
    if not parent_attributes:
        return " - ".join(a.option for a in variation.attributes)
    return " - ".join(
        options.get(attr.name.lower()) or f"Any {attr.name}"
        for attr in parent_attributes
    )


class ProductVariationSelectorViewModel(PaginatedListViewModel):
    """Purchasable variations of one product, in menu order."""

    def __init__(
        self,
        store: IEntityStore,
        api: IPageAPI,
        site_id: int,
        product: Product,
        config: Optional[SyncingConfig] = None,
        live: bool = False,
    ):
        self.site_id = site_id
        self.product = product
        super().__init__(
            store=store,
            sync_use_case=SyncPageUseCase(
                api, store, ProductVariationFieldMapper(product.product_id), site_id
            ),
            entity_cls=ProductVariation,
            predicate=(
                eq("site_id", site_id)
                & eq("product_id", product.product_id)
                & eq("purchasable", True)
            ),
            sort=[SortDescriptor("menu_order"), SortDescriptor("variation_id")],
            config=config,
            live=live,
        )

    def make_row(self, variation: ProductVariation) -> VariationRow:
        return VariationRow(
            variation_id=variation.variation_id,
            product_id=variation.product_id,
            name=variation_name(self.product, variation),
            sku=variation.sku,
            price=variation.price,
            stock_status=variation.stock_status,
        )
