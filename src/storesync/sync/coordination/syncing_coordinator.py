"""Drives page fetches for one paginated list.

The coordinator owns a PageTracker and a delegate. It asks the tracker
whether a page is due, calls ``delegate.sync`` for it, and reports the
outcome back to the tracker. It never retries on its own; a failed page
simply becomes due again the next time the list scrolls near its end.

All methods must be awaited from the event loop that owns the coordinator.
Tracker state is only touched between awaits, so concurrent page requests
started with ``asyncio.gather`` or separate tasks cannot interleave inside
a state update.
"""

import logging
from typing import Optional

from ...config import SyncingConfig
from ..domain.entities import PageSyncResult
from ..domain.ports import ISyncingDelegate
from .page_tracker import PageTracker

logger = logging.getLogger(__name__)


class SyncingCoordinator:
    """Issues at most one outstanding fetch per page number.

    Example:
        coordinator = SyncingCoordinator(delegate, SyncingConfig(page_size=25))
        await coordinator.synchronize_first_page()
        await coordinator.ensure_next_page_is_synchronized(last_visible_index=22)
    """

    def __init__(
        self,
        delegate: ISyncingDelegate,
        config: Optional[SyncingConfig] = None,
        tracker: Optional[PageTracker] = None,
    ):
        config = config or SyncingConfig()
        self.delegate = delegate
        self.tracker = tracker or PageTracker(
            page_size=config.page_size,
            prefetch_threshold=config.prefetch_threshold,
            page_ttl=config.page_ttl_seconds,
        )

    @property
    def page_size(self) -> int:
        return self.tracker.page_size

    @property
    def highest_page_being_synced(self) -> Optional[int]:
        return self.tracker.highest_page_being_synced

    @property
    def reached_last_page(self) -> bool:
        return self.tracker.reached_last_page

    @property
    def is_syncing(self) -> bool:
        return bool(self.tracker.pages_in_flight)

    async def synchronize_first_page(self, reason: Optional[str] = None) -> Optional[PageSyncResult]:
        """Restart pagination and fetch page 1.

        Returns None when page 1 is already being fetched; that request is
        adopted by the new cycle instead of being duplicated.
        """
        if not self.tracker.restart():
            logger.debug("First page already in flight; not requesting it again")
            return None
        return await self._sync_page(1, reason)

    async def resynchronize(self, reason: Optional[str] = None) -> Optional[PageSyncResult]:
        return await self.synchronize_first_page(reason)

    async def ensure_next_page_is_synchronized(
        self,
        last_visible_index: int,
        reason: Optional[str] = None,
    ) -> Optional[PageSyncResult]:
        """Fetch the next page if ``last_visible_index`` is close to the end of its page.

        Returns None (a silent no-op) when the last page was reached, the
        index is not near a page end, or the next page is in flight or fresh.
        """
        page_number = self.tracker.next_page_to_sync(last_visible_index)
        if page_number is None:
            return None
        return await self._sync_page(page_number, reason)

    async def _sync_page(self, page_number: int, reason: Optional[str]) -> PageSyncResult:
        ticket = self.tracker.begin(page_number)
        logger.debug(f"Syncing page {page_number} (size {self.page_size}, reason={reason})")

        try:
            result = await self.delegate.sync(page_number, self.page_size, reason)
        except Exception as e:
            logger.error(f"Sync delegate raised for page {page_number}: {e}")
            result = PageSyncResult(
                success=False,
                page_number=page_number,
                page_size=self.page_size,
                error=e,
                error_details=[str(e)],
            )

        self.tracker.finish(ticket, result.success, result.item_count)
        if result.success:
            logger.debug(f"Page {page_number} synced: {result.item_count} item(s)")
        else:
            logger.warning(f"Page {page_number} failed to sync: {result.error}")
        return result


__all__ = ["SyncingCoordinator"]
