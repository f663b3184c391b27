"""Sync Page Use Case - fetch, map and persist one page of a remote collection.

Workflow:
1. Fetch the page from the remote API (via IPageAPI)
2. Map raw items to entities (via IFieldMapper), collecting per-item errors
3. Upsert the entities into the local store (via IEntityStore)
4. Return a PageSyncResult carrying the raw item count

A transport or persistence failure yields ``success=False``; the caller may
request the same page again, and because upserts are keyed the retry is
harmless even if the first attempt was partly applied.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ...api.exceptions import ErrorCollector
from ..domain.entities import CachedEntity, PageSyncResult
from ..domain.ports import IEntityStore, IFieldMapper, IPageAPI
from ..domain.queries import Predicate

logger = logging.getLogger(__name__)


class SyncPageUseCase:
    """Runs the page sync workflow for one entity type and one site.

    Example:
        use_case = SyncPageUseCase(
            api=RemoteProductsAPI(client),
            store=PostgresEntityStore(pool),
            mapper=ProductFieldMapper(),
            site_id=42,
        )
        result = await use_case.execute(page_number=1, page_size=25)
    """

    def __init__(
        self,
        api: IPageAPI,
        store: IEntityStore,
        mapper: IFieldMapper,
        site_id: int,
        replace_scope: Optional[Predicate] = None,
    ):
        """Initialize the use case.

        Args:
            api: Port for fetching raw pages
            store: Port for persisting entities
            mapper: Port for turning raw items into entities
            site_id: Site the fetched entities belong to
            replace_scope: When set, a first-page sync also removes stored
                entities matching this predicate that the page did not contain
        """
        self.api = api
        self.store = store
        self.mapper = mapper
        self.site_id = site_id
        self.replace_scope = replace_scope

    async def execute(
        self,
        page_number: int,
        page_size: int,
        filters: Optional[dict[str, Any]] = None,
    ) -> PageSyncResult:
        started_at = datetime.now(timezone.utc)

        # Step 1: Fetch
        try:
            raw_items = await self.api.fetch_page(page_number, page_size, filters)
        except Exception as e:
            logger.error(f"Failed to fetch page {page_number}: {e}")
            return PageSyncResult(
                success=False,
                page_number=page_number,
                page_size=page_size,
                errors=1,
                synced_at=started_at,
                error=e,
                error_details=[f"API fetch failed: {e}"],
            )

        # Step 2: Map
        entities: list[CachedEntity] = []
        collector = ErrorCollector()
        for raw in raw_items:
            try:
                entities.append(self.mapper.map_to_entity(raw, self.site_id))
            except Exception as e:
                collector.add(e, context={"id": raw.get("id") if isinstance(raw, dict) else None})

        error_details = [
            f"Mapping error for item {ctx.get('id', 'unknown')}: {e}"
            for e, ctx in collector.get_errors()
        ]
        if collector.has_errors():
            logger.warning(str(collector.to_exception(succeeded=len(entities))))

        # Step 3: Persist
        replace_scope = self.replace_scope if page_number == 1 else None
        upserted = 0
        if entities or replace_scope is not None:
            try:
                outcome = await self.store.upsert(
                    self.mapper.entity_cls, entities, replace_scope=replace_scope
                )
                upserted = outcome.upserted
            except Exception as e:
                logger.error(f"Failed to persist page {page_number}: {e}")
                return PageSyncResult(
                    success=False,
                    page_number=page_number,
                    page_size=page_size,
                    item_count=len(raw_items),
                    errors=collector.count() + 1,
                    synced_at=started_at,
                    error=e,
                    error_details=error_details + [f"Store upsert failed: {e}"],
                )

        logger.info(
            f"Page {page_number}: {len(raw_items)} fetched, {upserted} upserted, "
            f"{collector.count()} mapping error(s)"
        )
        return PageSyncResult(
            success=True,
            page_number=page_number,
            page_size=page_size,
            item_count=len(raw_items),
            upserted=upserted,
            errors=collector.count(),
            synced_at=started_at,
            error_details=error_details,
        )
