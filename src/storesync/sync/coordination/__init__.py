"""Coordination layer - which pages to fetch and what the list shows."""

from .page_tracker import PageTicket, PageTracker
from .projection import ResultsProjection
from .syncing_coordinator import SyncingCoordinator

__all__ = [
    "PageTicket",
    "PageTracker",
    "ResultsProjection",
    "SyncingCoordinator",
]
