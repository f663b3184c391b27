"""Port interfaces for the sync layer.

Use cases, coordinators and view models depend on these abstractions only.
Adapters in ``storesync.sync.adapters`` and ``storesync.settings`` provide the
concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, Optional

from ...observable import Subscription
from .entities import CachedEntity, PageSyncResult, StoreChange, UpsertResult
from .queries import Predicate, SortDescriptor


class IEntityStore(ABC):
    """Port for the local persistent entity cache.

    A single store is shared by every projection and coordinator in the
    process. Writes touch only the keys they are given (plus those entities'
    children), so syncs of unrelated entity types never block each other.
    """

    @abstractmethod
    async def upsert(
        self,
        entity_cls: type[CachedEntity],
        entities: Sequence[CachedEntity],
        replace_scope: Optional[Predicate] = None,
    ) -> UpsertResult:
        """Insert or update entities by key.

        A matching key has its fields overwritten and its children replaced:
        stale children are deleted, matching ones updated, new ones inserted.

        Args:
            entity_cls: Type of every entity in the batch
            entities: Entities to write, possibly empty
            replace_scope: If given, stored entities of that type matching the
                predicate but absent from ``entities`` are deleted in the same
                write

        Returns:
            Insert/update/delete counts
        """
        ...

    @abstractmethod
    async def delete(self, entity_cls: type[CachedEntity], predicate: Predicate) -> int:
        """Delete matching entities and their children. Returns rows removed."""
        ...

    @abstractmethod
    async def query(
        self,
        entity_cls: type[CachedEntity],
        predicate: Predicate,
        sort: Sequence[SortDescriptor] = (),
    ) -> list[CachedEntity]:
        """Return matching entities in sort order."""
        ...

    @abstractmethod
    async def count(self, entity_cls: type[CachedEntity], predicate: Predicate) -> int:
        ...

    @property
    def supports_change_notifications(self) -> bool:
        return False

    def subscribe(self, listener: Callable[[StoreChange], Any]) -> Subscription:
        """Register for StoreChange events published after each committed write."""
        raise NotImplementedError(f"{type(self).__name__} does not publish changes")


class IPageAPI(ABC):
    """Port for one paginated remote collection."""

    @abstractmethod
    async def fetch_page(
        self,
        page_number: int,
        page_size: int,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Fetch one page of raw items (1-based page number)."""
        ...


class IFieldMapper(ABC):
    """Port for mapping raw API items to entities.

    Attributes:
        entity_cls: The entity type this mapper produces
    """

    entity_cls: type[CachedEntity]

    @abstractmethod
    def map_to_entity(self, raw: dict[str, Any], site_id: int) -> CachedEntity:
        """Map one raw item. Raises ValueError/KeyError on malformed input."""
        ...


class ISyncingDelegate(ABC):
    """Port implemented by whoever owns a SyncingCoordinator (usually a view model)."""

    @abstractmethod
    async def sync(
        self,
        page_number: int,
        page_size: int,
        reason: Optional[str] = None,
    ) -> PageSyncResult:
        """Fetch and persist one page, reporting the raw item count."""
        ...


class ISettingsStore(ABC):
    """Port for key-value persistence of app settings documents."""

    @abstractmethod
    def load(self, key: str) -> Optional[dict[str, Any]]:
        ...

    @abstractmethod
    def save(self, key: str, data: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...
