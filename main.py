#!/usr/bin/env python3
"""Store list sync CLI.

Drives the paginated list view models against a live store: loads the first
page, then keeps requesting the next page until the list reports no more
items (or --pages is reached), and prints the resulting rows.

Environment Variables Required:
    - STORE_BASE_URL: Site REST root, e.g. https://shop.example.com/wp-json
    - STORE_CONSUMER_KEY: REST API consumer key
    - STORE_CONSUMER_SECRET: REST API consumer secret

Optional:
    - STORE_SITE_ID: Site identifier used as the local cache scope (default 0)
    - DATABASE_URL: PostgreSQL connection string (in-memory cache if unset)
    - SETTINGS_FILE: JSON file holding products/orders settings
    - SYNC_PAGE_SIZE, SYNC_PREFETCH_THRESHOLD, SYNC_PAGE_TTL_SECONDS

Example Usage:
    $ python main.py --products                   # Sync and list products
    $ python main.py --orders --pages 3           # First three pages of orders
    $ python main.py --variations 42              # Variations of product 42
    $ python main.py --refunds 1001 --json        # Refunds of order 1001 as JSON
"""
import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.storesync.api import ConfigurationError, StoreAPIClient, StoreSyncError, close_pool, create_pool
from src.storesync.config import StoreConfig
from src.storesync.settings import AppSettingsService, InMemorySettingsStore, JSONFileSettingsStore
from src.storesync.sync.adapters import (
    InMemoryEntityStore,
    PostgresEntityStore,
    ProductFieldMapper,
    RemoteOrdersAPI,
    RemoteProductsAPI,
    RemoteProductVariationsAPI,
    RemoteRefundsAPI,
)
from src.storesync.view_models import (
    OrderListViewModel,
    PaginatedListViewModel,
    ProductSelectorViewModel,
    ProductVariationSelectorViewModel,
    RefundListViewModel,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def setup_store(config: StoreConfig, memory_only: bool):
    """Create the entity store.

    Returns:
        (store, pool) where pool is None for the in-memory store
    """
    if memory_only or not config.database_url:
        logger.info("Using in-memory entity store")
        return InMemoryEntityStore(), None

    pool = await create_pool(config.database_url, min_size=1, max_size=5)
    return PostgresEntityStore(pool), pool


async def drain(view_model: PaginatedListViewModel, max_pages: Optional[int]) -> int:
    """Load the list and request further pages while it has more items.

    Returns:
        Number of pages requested
    """
    await view_model.on_load()
    pages = 1
    while view_model.has_more_items and (max_pages is None or pages < max_pages):
        result = await view_model.sync_next_page()
        if result is None:
            break
        pages += 1
        if not result.success:
            logger.warning(f"Page {result.page_number} failed, stopping: {result.error}")
            break
    return pages


def print_rows(rows: list, as_json: bool) -> None:
    if as_json:
        print(json.dumps([asdict(row) for row in rows], indent=2, default=str))
        return
    for row in rows:
        print("  " + " | ".join(f"{value}" for value in asdict(row).values()))


async def build_view_model(args, config, client, store, settings_service) -> PaginatedListViewModel:
    syncing = config.syncing_config()
    if args.page_size:
        syncing.page_size = args.page_size

    if args.variations is not None:
        raw = await client.get(f"/wc/v3/products/{args.variations}")
        product = ProductFieldMapper().map_to_entity(raw, config.site_id)
        return ProductVariationSelectorViewModel(
            store,
            RemoteProductVariationsAPI(client, product.product_id),
            config.site_id,
            product,
            config=syncing,
        )
    if args.refunds is not None:
        return RefundListViewModel(
            store,
            RemoteRefundsAPI(client, args.refunds),
            config.site_id,
            args.refunds,
            config=syncing,
        )
    if args.orders:
        return OrderListViewModel(
            store, RemoteOrdersAPI(client), config.site_id, settings_service, config=syncing
        )
    return ProductSelectorViewModel(
        store, RemoteProductsAPI(client), config.site_id, settings_service, config=syncing
    )


async def run(args: argparse.Namespace) -> int:
    start_time = datetime.now(timezone.utc)
    config = StoreConfig()
    try:
        config.validate()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    logger.info(f"Starting with {config!r}")

    settings_store = JSONFileSettingsStore(config.settings_file) if config.settings_file else InMemorySettingsStore()
    settings_service = AppSettingsService(settings_store)
    store, pool = await setup_store(config, args.memory)

    try:
        async with StoreAPIClient(config.base_url, config.consumer_key, config.consumer_secret) as client:
            view_model = await build_view_model(args, config, client, store, settings_service)
            try:
                pages = await drain(view_model, args.pages)
                rows = view_model.rows.value
                if view_model.sync_error.value:
                    logger.warning(f"Last sync error: {view_model.sync_error.value}")
                print_rows(rows, args.json)
                logger.info(
                    f"{len(rows)} rows, {pages} page(s), status={view_model.sync_status.value.value}"
                )
            finally:
                view_model.close()
    except StoreSyncError as e:
        logger.error(f"Sync failed: {e}")
        return 1
    finally:
        await close_pool(pool)

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(f"Completed in {duration:.1f} seconds")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Sync store lists into a local cache and print them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --products               # Products (default)
  python main.py --orders --pages 2       # First two pages of orders
  python main.py --variations 42          # Purchasable variations of product 42
  python main.py --refunds 1001           # Refunds of order 1001
  python main.py --orders --memory        # Ignore DATABASE_URL
        """
    )

    list_group = parser.add_argument_group("List Selection")
    exclusive = list_group.add_mutually_exclusive_group()
    exclusive.add_argument(
        "--products",
        action="store_true",
        help="Sync products (default if no list specified)"
    )
    exclusive.add_argument(
        "--orders",
        action="store_true",
        help="Sync orders"
    )
    exclusive.add_argument(
        "--variations",
        type=int,
        metavar="PRODUCT_ID",
        help="Sync variations of a variable product"
    )
    exclusive.add_argument(
        "--refunds",
        type=int,
        metavar="ORDER_ID",
        help="Sync refunds of an order"
    )

    paging_group = parser.add_argument_group("Paging Options")
    paging_group.add_argument(
        "--pages",
        type=int,
        metavar="N",
        help="Stop after N pages (default: until the last page)"
    )
    paging_group.add_argument(
        "--page-size",
        type=int,
        metavar="SIZE",
        help="Items per page (overrides SYNC_PAGE_SIZE)"
    )

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--memory",
        action="store_true",
        help="Use the in-memory store even if DATABASE_URL is set"
    )
    output_group.add_argument(
        "--json",
        action="store_true",
        help="Print rows as JSON"
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
