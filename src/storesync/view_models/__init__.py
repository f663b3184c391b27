"""View models for paginated product, variation, order and refund lists."""

from .order_list import OrderListViewModel, OrderRow, RefundListViewModel, RefundRow, date_range_bounds
from .paginated_list import PaginatedListViewModel
from .product_selector import (
    ProductRow,
    ProductSelectorViewModel,
    ProductVariationSelectorViewModel,
    VariationRow,
    variation_name,
)

__all__ = [
    "OrderListViewModel",
    "OrderRow",
    "PaginatedListViewModel",
    "ProductRow",
    "ProductSelectorViewModel",
    "ProductVariationSelectorViewModel",
    "RefundListViewModel",
    "RefundRow",
    "VariationRow",
    "date_range_bounds",
    "variation_name",
]
