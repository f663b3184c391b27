"""In-process implementation of IEntityStore.

Entities are held as encoded records, the same shape the Postgres store
writes to JSONB, so reads always hand out fresh objects and callers cannot
mutate the cache by accident. Writes complete without yielding to the event
loop, which makes each upsert atomic with respect to other coroutines.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any, Optional

from ...observable import Subject, Subscription
from ..domain.entities import CachedEntity, EntityKey, StoreChange, UpsertResult
from ..domain.ports import IEntityStore
from ..domain.queries import Predicate, SortDescriptor, sort_entities, validate_sort

logger = logging.getLogger(__name__)


class InMemoryEntityStore(IEntityStore):
    """Dictionary-backed entity cache with change notifications."""

    def __init__(self):
        # entity_type -> key -> record (without children)
        self._records: dict[str, dict[EntityKey, dict[str, Any]]] = {}
        # entity_type -> key -> child_id -> child record
        self._children: dict[str, dict[EntityKey, dict[Any, dict[str, Any]]]] = {}
        self._changes: Subject[StoreChange] = Subject("entity_store")

    # ----------------------------------------
    # Change Notifications
    # ----------------------------------------

    @property
    def supports_change_notifications(self) -> bool:
        return True

    def subscribe(self, listener: Callable[[StoreChange], Any]) -> Subscription:
        return self._changes.subscribe(listener)

    # ----------------------------------------
    # Writes
    # ----------------------------------------

    async def upsert(
        self,
        entity_cls: type[CachedEntity],
        entities: Sequence[CachedEntity],
        replace_scope: Optional[Predicate] = None,
    ) -> UpsertResult:
        for entity in entities:
            if not isinstance(entity, entity_cls):
                raise TypeError(
                    f"Expected {entity_cls.__name__}, got {type(entity).__name__}"
                )
        if replace_scope is not None:
            replace_scope.validate(entity_cls)

        entity_type = entity_cls.entity_type
        records = self._records.setdefault(entity_type, {})
        children = self._children.setdefault(entity_type, {})
        result = UpsertResult()

        removed_keys: list[EntityKey] = []
        if replace_scope is not None:
            incoming = {e.key for e in entities}
            for key in list(records):
                if key in incoming:
                    continue
                if replace_scope.matches(self._decode(entity_cls, key)):
                    del records[key]
                    children.pop(key, None)
                    removed_keys.append(key)
            result.removed = len(removed_keys)

        written: dict[EntityKey, None] = {}
        for entity in entities:
            key = entity.key
            if key in records:
                result.updated += 1
            else:
                result.inserted += 1
            records[key] = entity.to_record(include_children=False)

            if entity_cls.CHILDREN_FIELD:
                new_children = {
                    getattr(child, entity_cls.CHILD_ID_FIELD): entity_cls.encode_child(child)
                    for child in entity.children
                }
                old_children = children.get(key, {})
                result.children_deleted += len(old_children.keys() - new_children.keys())
                result.children_updated += len(old_children.keys() & new_children.keys())
                result.children_inserted += len(new_children.keys() - old_children.keys())
                children[key] = new_children
            written[key] = None

        if removed_keys:
            self._changes.publish(StoreChange(entity_type, tuple(removed_keys), kind="delete"))
        if written:
            self._changes.publish(StoreChange(entity_type, tuple(written), kind="upsert"))

        logger.debug(
            f"Upserted {entity_type}: {result.inserted} inserted, {result.updated} updated, "
            f"{result.removed} removed"
        )
        return result

    async def delete(self, entity_cls: type[CachedEntity], predicate: Predicate) -> int:
        predicate.validate(entity_cls)
        entity_type = entity_cls.entity_type
        records = self._records.get(entity_type, {})
        children = self._children.get(entity_type, {})

        removed = [key for key in records if predicate.matches(self._decode(entity_cls, key))]
        for key in removed:
            del records[key]
            children.pop(key, None)

        if removed:
            self._changes.publish(StoreChange(entity_type, tuple(removed), kind="delete"))
        return len(removed)

    # ----------------------------------------
    # Reads
    # ----------------------------------------

    def _decode(self, entity_cls: type[CachedEntity], key: EntityKey) -> CachedEntity:
        entity_type = entity_cls.entity_type
        record = self._records[entity_type][key]
        child_records = None
        if entity_cls.CHILDREN_FIELD:
            child_records = list(self._children.get(entity_type, {}).get(key, {}).values())
        return entity_cls.from_record(record, children=child_records)

    async def query(
        self,
        entity_cls: type[CachedEntity],
        predicate: Predicate,
        sort: Sequence[SortDescriptor] = (),
    ) -> list[CachedEntity]:
        predicate.validate(entity_cls)
        validate_sort(sort, entity_cls)
        matching = [
            entity
            for entity in (
                self._decode(entity_cls, key)
                for key in self._records.get(entity_cls.entity_type, {})
            )
            if predicate.matches(entity)
        ]
        return sort_entities(matching, sort)

    async def count(self, entity_cls: type[CachedEntity], predicate: Predicate) -> int:
        return len(await self.query(entity_cls, predicate))

    async def get(self, entity_cls: type[CachedEntity], key: EntityKey) -> Optional[CachedEntity]:
        if key not in self._records.get(entity_cls.entity_type, {}):
            return None
        return self._decode(entity_cls, key)
