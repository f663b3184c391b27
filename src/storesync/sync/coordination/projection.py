"""Predicate-filtered, sorted view over the entity store."""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Optional

from ...api.exceptions import ProjectionError, QueryError
from ...observable import Observable, Subscription
from ..domain.entities import CachedEntity, StoreChange
from ..domain.ports import IEntityStore
from ..domain.queries import (
    Predicate,
    SortDescriptor,
    validate_sort,
    with_identity_tiebreak,
)

logger = logging.getLogger(__name__)


class ResultsProjection:
    """Holds the current ordered contents of one store query.

    Callers refresh it with ``perform_fetch`` after each upsert batch. With
    ``auto_refresh`` and a store that publishes changes, it also re-fetches
    on every change to its entity type; ``wait_for_refresh`` awaits that.

    A failed fetch raises ProjectionError and leaves the previous contents in
    place, so subscribers never see a partially updated list.

    Attributes:
        objects: Observable holding the current list of entities
    """

    def __init__(
        self,
        store: IEntityStore,
        entity_cls: type[CachedEntity],
        predicate: Optional[Predicate] = None,
        sort: Sequence[SortDescriptor] = (),
        auto_refresh: bool = False,
    ):
        self.store = store
        self.entity_cls = entity_cls
        self.predicate = predicate or Predicate()
        self.sort = with_identity_tiebreak(sort, entity_cls)
        self.objects: Observable[list[Any]] = Observable([], name=f"{entity_cls.entity_type}_projection")
        self.fetch_count = 0

        self._refresh_task: Optional[asyncio.Task] = None
        self._dirty = False
        self._store_subscription: Optional[Subscription] = None
        if auto_refresh and store.supports_change_notifications:
            self._store_subscription = store.subscribe(self._on_store_change)

    # ----------------------------------------
    # Contents
    # ----------------------------------------

    @property
    def fetched_objects(self) -> list[Any]:
        return list(self.objects.value)

    @property
    def number_of_objects(self) -> int:
        return len(self.objects.value)

    @property
    def is_empty(self) -> bool:
        return not self.objects.value

    def object_at(self, index: int) -> Any:
        return self.objects.value[index]

    def index_of(self, entity: CachedEntity) -> Optional[int]:
        for i, obj in enumerate(self.objects.value):
            if obj.key == entity.key:
                return i
        return None

    # ----------------------------------------
    # Fetching
    # ----------------------------------------

    def update(
        self,
        predicate: Optional[Predicate] = None,
        sort: Optional[Sequence[SortDescriptor]] = None,
    ) -> None:
        """Replace the query. Call ``perform_fetch`` afterwards to apply it."""
        if predicate is not None:
            self.predicate = predicate
        if sort is not None:
            self.sort = with_identity_tiebreak(sort, self.entity_cls)

    async def perform_fetch(self) -> list[Any]:
        """Run the query and publish the new contents.

        Raises:
            QueryError: The predicate or sort references unknown fields
            ProjectionError: The store query failed
        """
        self.predicate.validate(self.entity_cls)
        validate_sort(self.sort, self.entity_cls)

        try:
            results = await self.store.query(self.entity_cls, self.predicate, self.sort)
        except QueryError:
            raise
        except Exception as e:
            raise ProjectionError(
                f"Failed to fetch {self.entity_cls.entity_type} projection: {e}",
                entity_type=self.entity_cls.entity_type,
                cause=e,
            )

        self.fetch_count += 1
        self.objects.value = list(results)
        return self.fetched_objects

    # ----------------------------------------
    # Live Updates
    # ----------------------------------------

    def _on_store_change(self, change: StoreChange) -> None:
        if change.entity_type != self.entity_cls.entity_type:
            return
        self._dirty = True
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(self._refresh())

    async def _refresh(self) -> None:
        # Changes arriving mid-query set _dirty again and get one more pass
        while self._dirty:
            self._dirty = False
            try:
                await self.perform_fetch()
            except ProjectionError as e:
                logger.error(f"Live refresh of {self.entity_cls.entity_type} projection failed: {e}")

    async def wait_for_refresh(self) -> None:
        """Wait for a pending change-triggered refresh, if any."""
        if self._refresh_task:
            await self._refresh_task

    def close(self) -> None:
        if self._store_subscription:
            self._store_subscription.cancel()
            self._store_subscription = None
        if self._refresh_task and not self._refresh_task.done():
            self._refresh_task.cancel()
