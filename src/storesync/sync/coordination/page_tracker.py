"""Pure pagination bookkeeping for one paginated list.

The tracker decides *whether* a page should be fetched; it never performs
I/O. ``SyncingCoordinator`` wraps it with the actual delegate calls.

Example (page_size=25, prefetch_threshold=5):

    tracker.restart()                     # page 1 due
    ticket = tracker.begin(1)
    tracker.finish(ticket, success=True, item_count=25)
    tracker.next_page_to_sync(10)         # None, index 10 is far from the end
    tracker.next_page_to_sync(20)         # 2, inside the trailing 5 items
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageTicket:
    """Issued by ``begin``; ties a completion back to the cycle that started it."""

    page_number: int
    generation: int


class PageTracker:
    """Tracks requested pages, in-flight pages and the last-page condition.

    Attributes:
        page_size: Items per page, fixed for the tracker's lifetime
        prefetch_threshold: How many trailing items of a page trigger a fetch
            of the next page when they become visible
        page_ttl: Seconds a successfully synced page stays fresh; None means
            fresh until the next restart
    """

    def __init__(
        self,
        page_size: int,
        prefetch_threshold: int = 5,
        page_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        if prefetch_threshold < 0:
            raise ValueError(f"prefetch_threshold must be >= 0, got {prefetch_threshold}")

        self.page_size = page_size
        self.prefetch_threshold = min(prefetch_threshold, page_size - 1)
        self.page_ttl = page_ttl
        self._clock = clock

        self.highest_page_being_synced: Optional[int] = None
        self.reached_last_page = False
        self.generation = 0
        self._in_flight: set[int] = set()
        self._adopted: set[int] = set()
        self._synced_at: dict[int, float] = {}

    # ----------------------------------------
    # Queries
    # ----------------------------------------

    def page_number_for(self, index: int) -> int:
        """1-based page containing the 0-based item index."""
        return index // self.page_size + 1

    def is_in_flight(self, page_number: int) -> bool:
        return page_number in self._in_flight

    @property
    def pages_in_flight(self) -> frozenset[int]:
        return frozenset(self._in_flight)

    def is_fresh(self, page_number: int) -> bool:
        synced_at = self._synced_at.get(page_number)
        if synced_at is None:
            return False
        if self.page_ttl is None:
            return True
        return self._clock() - synced_at < self.page_ttl

    def is_near_page_end(self, last_visible_index: int) -> bool:
        position = last_visible_index % self.page_size
        return position >= self.page_size - 1 - self.prefetch_threshold

    def next_page_to_sync(self, last_visible_index: int) -> Optional[int]:
        """Return the page to prefetch for this scroll position, or None."""
        if last_visible_index < 0 or self.reached_last_page:
            return None
        if not self.is_near_page_end(last_visible_index):
            return None

        next_page = self.page_number_for(last_visible_index) + 1
        if self.is_in_flight(next_page):
            logger.debug(f"Page {next_page} already in flight")
            return None
        if self.is_fresh(next_page):
            return None
        return next_page

    # ----------------------------------------
    # Transitions
    # ----------------------------------------

    def restart(self) -> bool:
        """Start a new cycle from page 1 (pull-to-refresh).

        In-flight markers survive so a page still being fetched is not
        requested a second time. A page-1 request already in flight is
        adopted by the new cycle; other in-flight completions become stale.

        Returns:
            True if page 1 still has to be requested
        """
        self.generation += 1
        self.reached_last_page = False
        self._synced_at.clear()
        self.highest_page_being_synced = 1
        self._adopted.clear()
        if self.is_in_flight(1):
            self._adopted.add(1)
            return False
        return True

    def begin(self, page_number: int) -> PageTicket:
        if page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {page_number}")
        self._in_flight.add(page_number)
        if self.highest_page_being_synced is None or page_number > self.highest_page_being_synced:
            self.highest_page_being_synced = page_number
        return PageTicket(page_number, self.generation)

    def finish(self, ticket: PageTicket, success: bool, item_count: int = 0) -> None:
        """Record a page completion.

        Failures leave the page neither fresh nor last, so the next scroll
        past the threshold re-requests the same page. Completions from a
        superseded cycle only release the in-flight marker.
        """
        self._in_flight.discard(ticket.page_number)

        adopted = ticket.page_number in self._adopted
        self._adopted.discard(ticket.page_number)
        if ticket.generation != self.generation and not adopted:
            logger.debug(
                f"Ignoring stale completion for page {ticket.page_number} "
                f"(generation {ticket.generation}, current {self.generation})"
            )
            return
        if not success:
            return

        self._synced_at[ticket.page_number] = self._clock()
        if item_count < self.page_size:
            self.reached_last_page = True
