"""Base view model for a paginated, locally cached list.

Wires a ResultsProjection (what is shown) to a SyncingCoordinator (what is
fetched) and derives the SyncStatus the UI renders from both.
"""

import logging
from collections.abc import Sequence
from typing import Any, Optional

from ..api.exceptions import PageSyncError, ProjectionError, QueryError
from ..config import SyncingConfig
from ..observable import Observable
from ..sync.coordination.projection import ResultsProjection
from ..sync.coordination.syncing_coordinator import SyncingCoordinator
from ..sync.domain.entities import CachedEntity, PageSyncResult, SyncStatus
from ..sync.domain.ports import IEntityStore, ISyncingDelegate
from ..sync.domain.queries import Predicate, SortDescriptor
from ..sync.use_cases.sync_page import SyncPageUseCase

logger = logging.getLogger(__name__)


class PaginatedListViewModel(ISyncingDelegate):
    """Observable list state plus the sync entry points a list screen needs.

    Status rules:
        - NONE until the first fetch completes, unless cached rows exist
        - FIRST_PAGE_SYNC while page 1 is being fetched and nothing is cached
        - after every completion, RESULTS if the projection has rows, else EMPTY

    Attributes:
        sync_status: Observable SyncStatus
        rows: Observable list of display rows built by ``make_row``
        sync_error: Observable holding the last sync failure, cleared on success
        should_show_scroll_indicator: True while any page fetch is in flight
    """

    def __init__(
        self,
        store: IEntityStore,
        sync_use_case: SyncPageUseCase,
        entity_cls: type[CachedEntity],
        predicate: Predicate,
        sort: Sequence[SortDescriptor],
        config: Optional[SyncingConfig] = None,
        live: bool = False,
    ):
        self.config = config or SyncingConfig()
        self.store = store
        self.sync_use_case = sync_use_case
        self.projection = ResultsProjection(store, entity_cls, predicate, sort, auto_refresh=live)
        self.coordinator = SyncingCoordinator(self, self.config)

        self.sync_status: Observable[SyncStatus] = Observable(SyncStatus.NONE, name="sync_status")
        self.rows: Observable[list[Any]] = Observable([], name="rows")
        self.sync_error: Observable[Optional[Exception]] = Observable(None, name="sync_error")
        self.should_show_scroll_indicator = Observable(False, name="scroll_indicator")

        self._loaded = False
        self._active_syncs = 0
        self.projection.objects.subscribe(self._on_objects_changed, replay=False)

    # ----------------------------------------
    # Hooks for subclasses
    # ----------------------------------------

    def make_row(self, entity: Any) -> Any:
        return entity

    def sync_filters(self) -> Optional[dict[str, Any]]:
        """Remote filters sent with every page request."""
        return None

    # ----------------------------------------
    # UI entry points
    # ----------------------------------------

    @property
    def has_more_items(self) -> bool:
        highest = self.coordinator.highest_page_being_synced
        if highest is None or self.coordinator.reached_last_page:
            return False
        return highest * self.coordinator.page_size > self.projection.number_of_objects

    async def activate(self) -> None:
        """Show whatever is cached. Does not touch the network."""
        await self._refresh_projection()
        if not self.projection.is_empty:
            self.sync_status.value = SyncStatus.RESULTS

    async def on_load(self) -> None:
        """Activate and sync the first page; later calls are no-ops."""
        if self._loaded:
            return
        self._loaded = True
        await self.activate()
        await self.sync_first_page(reason="on_load")

    async def sync_first_page(self, reason: Optional[str] = None) -> Optional[PageSyncResult]:
        return await self.coordinator.synchronize_first_page(reason)

    async def sync_next_page(self) -> Optional[PageSyncResult]:
        """Prefetch as if the last loaded row had just become visible."""
        return await self.coordinator.ensure_next_page_is_synchronized(
            self.projection.number_of_objects - 1
        )

    async def ensure_next_page_is_synchronized(self, last_visible_index: int) -> Optional[PageSyncResult]:
        return await self.coordinator.ensure_next_page_is_synchronized(last_visible_index)

    def close(self) -> None:
        self.projection.close()

    # ----------------------------------------
    # ISyncingDelegate
    # ----------------------------------------

    async def sync(
        self,
        page_number: int,
        page_size: int,
        reason: Optional[str] = None,
    ) -> PageSyncResult:
        self._active_syncs += 1
        self.should_show_scroll_indicator.value = True
        if page_number == 1 and self.projection.is_empty:
            self.sync_status.value = SyncStatus.FIRST_PAGE_SYNC

        try:
            result = await self.sync_use_case.execute(page_number, page_size, self.sync_filters())
        except Exception:
            self._active_syncs -= 1
            self.should_show_scroll_indicator.value = self._active_syncs > 0
            self._transition_to_results_updated_state()
            raise
        self._active_syncs -= 1

        if result.success:
            self.sync_error.value = None
        else:
            self.sync_error.value = result.error or PageSyncError(page_number)

        await self._refresh_projection()
        self.should_show_scroll_indicator.value = self._active_syncs > 0
        self._transition_to_results_updated_state()
        return result

    # ----------------------------------------
    # Internals
    # ----------------------------------------

    def _transition_to_results_updated_state(self) -> None:
        self.sync_status.value = SyncStatus.EMPTY if self.projection.is_empty else SyncStatus.RESULTS

    async def _refresh_projection(self) -> None:
        try:
            await self.projection.perform_fetch()
        except QueryError as e:
            if self.config.strict_queries:
                raise
            logger.error(f"Malformed {self.projection.entity_cls.entity_type} query: {e}")
        except ProjectionError as e:
            logger.error(f"Keeping previous {self.projection.entity_cls.entity_type} rows: {e}")
            self.sync_error.value = e

    def _on_objects_changed(self, objects: list[Any]) -> None:
        self.rows.value = [self.make_row(o) for o in objects]
