"""Remote page adapters over StoreAPIClient.

Each adapter implements IPageAPI for one collection endpoint and translates
domain-level filters into the store's query parameters.
"""

import logging
from typing import Any, Optional

from ...api.client import StoreAPIClient
from ..domain.ports import IPageAPI

logger = logging.getLogger(__name__)

# Product sort order -> (orderby, order) query parameters
PRODUCT_SORT_PARAMS = {
    "name_ascending": ("title", "asc"),
    "name_descending": ("title", "desc"),
    "date_ascending": ("date", "asc"),
    "date_descending": ("date", "desc"),
}


def _join(values: Any) -> Any:
    if isinstance(values, (list, tuple, set, frozenset)):
        return ",".join(str(v) for v in values)
    return values


class RemoteProductsAPI(IPageAPI):
    """Pages of /wc/v3/products.

    Supported filters: sort, status, stock_status, type, category, search.
    """

    endpoint = "/wc/v3/products"

    def __init__(self, client: StoreAPIClient):
        self.client = client

    async def fetch_page(
        self,
        page_number: int,
        page_size: int,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        filters = dict(filters or {})
        params: dict[str, Any] = {}

        sort = filters.pop("sort", None)
        if sort:
            try:
                params["orderby"], params["order"] = PRODUCT_SORT_PARAMS[sort]
            except KeyError:
                raise ValueError(f"Unknown product sort order: {sort!r}")

        for name in ("status", "stock_status", "type", "category", "search"):
            value = filters.pop(name, None)
            if value is not None:
                params[name] = _join(value)
        if filters:
            logger.debug(f"Ignoring unsupported product filters: {sorted(filters)}")

        return await self.client.get_page(self.endpoint, page_number, page_size, params)


class RemoteProductVariationsAPI(IPageAPI):
    """Pages of /wc/v3/products/<product_id>/variations, by menu order."""

    def __init__(self, client: StoreAPIClient, product_id: int):
        self.client = client
        self.product_id = product_id

    @property
    def endpoint(self) -> str:
        return f"/wc/v3/products/{self.product_id}/variations"

    async def fetch_page(
        self,
        page_number: int,
        page_size: int,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        params = {"orderby": "menu_order", "order": "asc"}
        params.update(filters or {})
        return await self.client.get_page(self.endpoint, page_number, page_size, params)


class RemoteOrdersAPI(IPageAPI):
    """Pages of /wc/v3/orders, newest first.

    Supported filters: statuses (list), after/before (ISO timestamps).
    """

    endpoint = "/wc/v3/orders"

    def __init__(self, client: StoreAPIClient):
        self.client = client

    async def fetch_page(
        self,
        page_number: int,
        page_size: int,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        filters = filters or {}
        params: dict[str, Any] = {"orderby": "date", "order": "desc"}

        statuses = filters.get("statuses")
        params["status"] = _join(statuses) if statuses else "any"
        for name in ("after", "before"):
            if filters.get(name):
                params[name] = filters[name]

        return await self.client.get_page(self.endpoint, page_number, page_size, params)


class RemoteRefundsAPI(IPageAPI):
    """Pages of /wc/v3/orders/<order_id>/refunds."""

    def __init__(self, client: StoreAPIClient, order_id: int):
        self.client = client
        self.order_id = order_id

    @property
    def endpoint(self) -> str:
        return f"/wc/v3/orders/{self.order_id}/refunds"

    async def fetch_page(
        self,
        page_number: int,
        page_size: int,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        return await self.client.get_page(self.endpoint, page_number, page_size, filters)
