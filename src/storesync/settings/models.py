"""Pydantic models for locally persisted app settings.

Products and orders list settings are stored per site; general settings are
global to the installation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator


class ProductsSortOrder(str, Enum):
    NAME_ASCENDING = "name_ascending"
    NAME_DESCENDING = "name_descending"
    DATE_ASCENDING = "date_ascending"
    DATE_DESCENDING = "date_descending"


DEFAULT_PRODUCTS_SORT_ORDER = ProductsSortOrder.NAME_ASCENDING


class ProductsSettings(BaseModel):
    """Sort order and filters of one site's products list."""

    site_id: int
    sort: Optional[ProductsSortOrder] = None
    stock_status_filter: Optional[str] = None
    product_status_filter: Optional[str] = None
    product_type_filter: Optional[str] = None
    product_category_filter: Optional[int] = None

    @property
    def effective_sort(self) -> ProductsSortOrder:
        return self.sort or DEFAULT_PRODUCTS_SORT_ORDER

    @property
    def has_filters(self) -> bool:
        return any(
            value is not None
            for value in (
                self.stock_status_filter,
                self.product_status_filter,
                self.product_type_filter,
                self.product_category_filter,
            )
        )


class DateRangeKind(str, Enum):
    ANY = "any"
    TODAY = "today"
    LAST_2_DAYS = "last_2_days"
    LAST_7_DAYS = "last_7_days"
    CUSTOM = "custom"


class OrderDateRangeFilter(BaseModel):
    kind: DateRangeKind = DateRangeKind.ANY
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Naive timestamps are UTC
        if value is None or value.tzinfo is not None:
            return value
        return value.replace(tzinfo=timezone.utc)

    @model_validator(mode="after")
    def _check_custom_range(self) -> "OrderDateRangeFilter":
        if self.kind is DateRangeKind.CUSTOM and self.start and self.end and self.start > self.end:
            raise ValueError("start must not be after end")
        return self


class OrdersSettings(BaseModel):
    """Filters of one site's orders list."""

    site_id: int
    order_statuses_filter: Optional[list[str]] = None
    date_range_filter: Optional[OrderDateRangeFilter] = None


class GeneralAppSettings(BaseModel):
    """Installation-wide settings, including the beta feature switches."""

    installation_date: Optional[datetime] = None
    is_view_add_ons_switch_enabled: bool = False
    is_product_sku_input_scanner_switch_enabled: bool = False
    is_coupon_management_switch_enabled: bool = False
    is_product_multi_selection_switch_enabled: bool = False
    last_jetpack_benefits_banner_dismissed_time: Optional[datetime] = None
