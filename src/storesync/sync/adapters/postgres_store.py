"""PostgreSQL implementation of IEntityStore.

Entities live as JSONB documents in ``cached_entities``; owned child rows
(order line items, refunded items) live in ``cached_entity_children``. See
db/cache_schema.sql.

Each upsert batch runs in one transaction. INSERT ... ON CONFLICT only locks
the rows it touches, so concurrent syncs of different entity types, or of
disjoint keys, never wait on each other.

The pool must come from ``storesync.api.database.create_pool``, which
registers the JSONB codec this module relies on.
"""

import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from ...api.database import database_connection, database_transaction
from ...observable import Subject, Subscription
from ..domain.entities import CachedEntity, EntityKey, StoreChange, UpsertResult
from ..domain.ports import IEntityStore
from ..domain.queries import Operator, Predicate, SortDescriptor, validate_sort

if TYPE_CHECKING:
    import asyncpg

logger = logging.getLogger(__name__)

NUMERIC, BOOLEAN, TEXT = "numeric", "boolean", "text"

SQL_OPERATORS = {
    Operator.LT: "<",
    Operator.LTE: "<=",
    Operator.GT: ">",
    Operator.GTE: ">=",
}


def _kind(entity_cls: type[CachedEntity], field_name: str) -> str:
    field_type = entity_cls.field_type(field_name)
    if field_type is bool:
        return BOOLEAN
    if field_type in (int, float, Decimal):
        return NUMERIC
    return TEXT


def _column(entity_cls: type[CachedEntity], field_name: str) -> str:
    if field_name == "site_id":
        return "e.site_id"
    if field_name == entity_cls.ID_FIELD:
        return "e.entity_id"
    kind = _kind(entity_cls, field_name)
    if kind == TEXT:
        return f"(e.data->>'{field_name}')"
    return f"(e.data->>'{field_name}')::{kind}"


def _param(kind: str, value: Any) -> Any:
    if value is None:
        return None
    if kind == NUMERIC:
        return Decimal(str(value))
    if kind == BOOLEAN:
        return bool(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def build_where(
    entity_cls: type[CachedEntity],
    predicate: Predicate,
    params: list[Any],
) -> str:
    """Translate a predicate into SQL, appending bind values to ``params``.

    Field names have already been validated against the entity, so they are
    safe to interpolate; values always go through bind parameters.
    """
    predicate.validate(entity_cls)
    clauses = []
    for f in predicate.filters:
        column = _column(entity_cls, f.field)
        if f.field in ("site_id", entity_cls.ID_FIELD):
            cast = "bigint"
            convert = int
        else:
            cast = _kind(entity_cls, f.field)
            convert = lambda v, kind=cast: _param(kind, v)

        if f.operator in (Operator.EQ, Operator.NE) and f.value is None:
            clauses.append(f"{column} IS {'NOT ' if f.operator is Operator.NE else ''}NULL")
            continue

        if f.operator in (Operator.IN, Operator.NOT_IN):
            params.append([convert(v) for v in f.value if v is not None])
            expr = f"COALESCE({column} = ANY(${len(params)}::{cast}[]), false)"
            if None in f.value:
                expr = f"({expr} OR {column} IS NULL)"
            clauses.append(expr if f.operator is Operator.IN else f"NOT {expr}")
            continue

        params.append(convert(f.value))
        placeholder = f"${len(params)}::{cast}"
        if f.operator is Operator.EQ:
            clauses.append(f"{column} = {placeholder}")
        elif f.operator is Operator.NE:
            clauses.append(f"{column} IS DISTINCT FROM {placeholder}")
        else:
            clauses.append(f"{column} {SQL_OPERATORS[f.operator]} {placeholder}")

    return " AND ".join(clauses) if clauses else "TRUE"


def build_order_by(entity_cls: type[CachedEntity], sort: Sequence[SortDescriptor]) -> str:
    validate_sort(sort, entity_cls)
    terms = []
    for descriptor in sort:
        column = _column(entity_cls, descriptor.key)
        if _kind(entity_cls, descriptor.key) == TEXT and descriptor.key not in ("site_id", entity_cls.ID_FIELD):
            column = f'{column} COLLATE "C"'
        direction = "ASC NULLS FIRST" if descriptor.ascending else "DESC NULLS LAST"
        terms.append(f"{column} {direction}")
    return ", ".join(terms) if terms else "e.site_id, e.entity_id"


def _load(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) else value


class PostgresEntityStore(IEntityStore):
    """asyncpg-backed entity cache with in-process change notifications."""

    def __init__(self, pool: "asyncpg.Pool"):
        self.pool = pool
        self._changes: Subject[StoreChange] = Subject("postgres_entity_store")

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
        entity_type = entity_cls.entity_type
        result = UpsertResult()
        removed_keys: list[EntityKey] = []

        async with database_transaction(self.pool) as conn:
            if replace_scope is not None:
                params: list[Any] = [
                    entity_type,
                    [e.site_id for e in entities],
                    [e.entity_id for e in entities],
                ]
                where = build_where(entity_cls, replace_scope, params)
                rows = await conn.fetch(
                    f"""
                    DELETE FROM cached_entities e
                    WHERE e.entity_type = $1
                      AND (e.site_id, e.entity_id) NOT IN (
                          SELECT * FROM unnest($2::bigint[], $3::bigint[])
                      )
                      AND {where}
                    RETURNING e.site_id, e.entity_id
                    """,
                    *params,
                )
                removed_keys = [EntityKey(r["site_id"], r["entity_id"]) for r in rows]
                result.removed = len(removed_keys)

            for entity in entities:
                inserted = await conn.fetchval(
                    """
                    INSERT INTO cached_entities (entity_type, site_id, entity_id, data, synced_at)
                    VALUES ($1, $2, $3, $4::jsonb, NOW())
                    ON CONFLICT (entity_type, site_id, entity_id) DO UPDATE SET
                        data = EXCLUDED.data,
                        synced_at = NOW()
                    RETURNING (xmax = 0)
                    """,
                    entity_type,
                    entity.site_id,
                    entity.entity_id,
                    entity.to_record(include_children=False),
                )
                if inserted:
                    result.inserted += 1
                else:
                    result.updated += 1

                if entity_cls.CHILDREN_FIELD:
                    await self._replace_children(conn, entity_cls, entity, result)

        if removed_keys:
            self._changes.publish(StoreChange(entity_type, tuple(removed_keys), kind="delete"))
        if entities:
            keys = tuple(dict.fromkeys(e.key for e in entities))
            self._changes.publish(StoreChange(entity_type, keys, kind="upsert"))

        logger.debug(
            f"Upserted {entity_type}: {result.inserted} inserted, {result.updated} updated, "
            f"{result.removed} removed"
        )
        return result

    async def _replace_children(
        self,
        conn,
        entity_cls: type[CachedEntity],
        entity: CachedEntity,
        result: UpsertResult,
    ) -> None:
        """Delete stale children, then upsert the current ones in order."""
        entity_type = entity_cls.entity_type
        child_ids = [getattr(c, entity_cls.CHILD_ID_FIELD) for c in entity.children]

        existing = {
            row["child_id"]
            for row in await conn.fetch(
                """
                SELECT child_id FROM cached_entity_children
                WHERE entity_type = $1 AND site_id = $2 AND entity_id = $3
                """,
                entity_type,
                entity.site_id,
                entity.entity_id,
            )
        }
        stale = existing - set(child_ids)
        if stale:
            await conn.execute(
                """
                DELETE FROM cached_entity_children
                WHERE entity_type = $1 AND site_id = $2 AND entity_id = $3
                  AND child_id = ANY($4::bigint[])
                """,
                entity_type,
                entity.site_id,
                entity.entity_id,
                list(stale),
            )

        for position, child in enumerate(entity.children):
            await conn.execute(
                """
                INSERT INTO cached_entity_children
                    (entity_type, site_id, entity_id, child_id, position, data)
                VALUES ($1, $2, $3, $4, $5, $6::jsonb)
                ON CONFLICT (entity_type, site_id, entity_id, child_id) DO UPDATE SET
                    position = EXCLUDED.position,
                    data = EXCLUDED.data
                """,
                entity_type,
                entity.site_id,
                entity.entity_id,
                child_ids[position],
                position,
                entity_cls.encode_child(child),
            )

        result.children_deleted += len(stale)
        result.children_updated += len(existing & set(child_ids))
        result.children_inserted += len(set(child_ids) - existing)

    async def delete(self, entity_cls: type[CachedEntity], predicate: Predicate) -> int:
        params: list[Any] = [entity_cls.entity_type]
        where = build_where(entity_cls, predicate, params)
        async with database_transaction(self.pool) as conn:
            rows = await conn.fetch(
                f"""
                DELETE FROM cached_entities e
                WHERE e.entity_type = $1 AND {where}
                RETURNING e.site_id, e.entity_id
                """,
                *params,
            )
        if rows:
            keys = tuple(EntityKey(r["site_id"], r["entity_id"]) for r in rows)
            self._changes.publish(StoreChange(entity_cls.entity_type, keys, kind="delete"))
        return len(rows)

    # ----------------------------------------
    # Reads
    # ----------------------------------------

    async def query(
        self,
        entity_cls: type[CachedEntity],
        predicate: Predicate,
        sort: Sequence[SortDescriptor] = (),
    ) -> list[CachedEntity]:
        params: list[Any] = [entity_cls.entity_type]
        where = build_where(entity_cls, predicate, params)
        order_by = build_order_by(entity_cls, sort)

        children_sql = "NULL"
        if entity_cls.CHILDREN_FIELD:
            children_sql = """
                COALESCE((
                    SELECT jsonb_agg(c.data ORDER BY c.position)
                    FROM cached_entity_children c
                    WHERE c.entity_type = e.entity_type
                      AND c.site_id = e.site_id
                      AND c.entity_id = e.entity_id
                ), '[]'::jsonb)
            """

        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                f"""
                SELECT e.data, {children_sql} AS children
                FROM cached_entities e
                WHERE e.entity_type = $1 AND {where}
                ORDER BY {order_by}
                """,
                *params,
            )

        return [
            entity_cls.from_record(
                _load(row["data"]),
                children=_load(row["children"]) if entity_cls.CHILDREN_FIELD else None,
            )
            for row in rows
        ]

    async def count(self, entity_cls: type[CachedEntity], predicate: Predicate) -> int:
        params: list[Any] = [entity_cls.entity_type]
        where = build_where(entity_cls, predicate, params)
        async with database_connection(self.pool) as conn:
            return await conn.fetchval(
                f"SELECT COUNT(*) FROM cached_entities e WHERE e.entity_type = $1 AND {where}",
                *params,
            )
