"""Predicates and sort descriptors over cached entities.

Both are plain value objects. Stores evaluate them (in memory or by
translating to SQL); ``validate`` rejects malformed queries up front so a
typo in a field name fails loudly instead of silently matching nothing.

Example:
    predicate = (
        eq("site_id", 42)
        & not_in("product_type", ["variable"])
        & is_in("status", ["publish", "private"])
    )
    sort = [SortDescriptor("name")]
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ...api.exceptions import QueryError

COLLECTION_TYPES = (list, tuple, set, frozenset)


class Operator(Enum):
    EQ = "eq"
    NE = "ne"
    IN = "in"
    NOT_IN = "not_in"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"


ORDERING_OPERATORS = frozenset({Operator.LT, Operator.LTE, Operator.GT, Operator.GTE})


@dataclass(frozen=True)
class FieldFilter:
    field: str
    operator: Operator
    value: Any

    def matches(self, entity: Any) -> bool:
        actual = getattr(entity, self.field)
        op = self.operator
        if op is Operator.EQ:
            return actual == self.value
        if op is Operator.NE:
            return actual != self.value
        if op is Operator.IN:
            return actual in self.value
        if op is Operator.NOT_IN:
            return actual not in self.value
        # None never satisfies an ordering comparison
        if actual is None or self.value is None:
            return False
        if op is Operator.LT:
            return actual < self.value
        if op is Operator.LTE:
            return actual <= self.value
        if op is Operator.GT:
            return actual > self.value
        return actual >= self.value


@dataclass(frozen=True)
class Predicate:
    """A conjunction of field filters. The empty predicate matches everything."""

    filters: tuple[FieldFilter, ...] = ()

    def __and__(self, other: "Predicate") -> "Predicate":
        if not isinstance(other, Predicate):
            return NotImplemented
        return Predicate(self.filters + other.filters)

    def matches(self, entity: Any) -> bool:
        return all(f.matches(entity) for f in self.filters)

    def validate(self, entity_cls: type) -> None:
        """Raise QueryError if a filter names an unknown field or has a bad value."""
        names = entity_cls.field_names()
        for f in self.filters:
            if not isinstance(f.operator, Operator):
                raise QueryError(f"Unknown operator {f.operator!r}", field=f.field)
            if f.field not in names:
                raise QueryError(
                    f"{entity_cls.__name__} has no field '{f.field}'",
                    field=f.field,
                    entity_type=entity_cls.entity_type,
                )
            if f.operator in (Operator.IN, Operator.NOT_IN):
                if not isinstance(f.value, COLLECTION_TYPES):
                    raise QueryError(
                        f"'{f.operator.value}' on '{f.field}' needs a collection, "
                        f"got {type(f.value).__name__}",
                        field=f.field,
                    )
            elif f.operator in ORDERING_OPERATORS and isinstance(f.value, COLLECTION_TYPES):
                raise QueryError(
                    f"'{f.operator.value}' on '{f.field}' needs a scalar value",
                    field=f.field,
                )

    def fields(self) -> set[str]:
        return {f.field for f in self.filters}


def _filter(field_name: str, operator: Operator, value: Any) -> Predicate:
    return Predicate((FieldFilter(field_name, operator, value),))


def eq(field_name: str, value: Any) -> Predicate:
    return _filter(field_name, Operator.EQ, value)


def ne(field_name: str, value: Any) -> Predicate:
    return _filter(field_name, Operator.NE, value)


def is_in(field_name: str, values: Iterable[Any]) -> Predicate:
    return _filter(field_name, Operator.IN, tuple(values))


def not_in(field_name: str, values: Iterable[Any]) -> Predicate:
    return _filter(field_name, Operator.NOT_IN, tuple(values))


def lt(field_name: str, value: Any) -> Predicate:
    return _filter(field_name, Operator.LT, value)


def lte(field_name: str, value: Any) -> Predicate:
    return _filter(field_name, Operator.LTE, value)


def gt(field_name: str, value: Any) -> Predicate:
    return _filter(field_name, Operator.GT, value)


def gte(field_name: str, value: Any) -> Predicate:
    return _filter(field_name, Operator.GTE, value)


# ============================================
# Sorting
# ============================================


@dataclass(frozen=True)
class SortDescriptor:
    key: str
    ascending: bool = True


def validate_sort(sort: Sequence[SortDescriptor], entity_cls: type) -> None:
    names = entity_cls.field_names()
    for descriptor in sort:
        if descriptor.key not in names:
            raise QueryError(
                f"Cannot sort {entity_cls.__name__} by unknown field '{descriptor.key}'",
                field=descriptor.key,
                entity_type=entity_cls.entity_type,
            )


def with_identity_tiebreak(sort: Sequence[SortDescriptor], entity_cls: type) -> list[SortDescriptor]:
    """Append the id field so equal sort keys never fall back to insertion order."""
    descriptors = list(sort)
    if not any(d.key == entity_cls.ID_FIELD for d in descriptors):
        descriptors.append(SortDescriptor(entity_cls.ID_FIELD))
    return descriptors


def sort_entities(entities: Iterable[Any], sort: Sequence[SortDescriptor]) -> list[Any]:
    """Stable multi-key sort. None sorts before any value when ascending."""
    result = list(entities)
    for descriptor in reversed(sort):
        result.sort(
            key=lambda e, k=descriptor.key: (getattr(e, k) is not None, getattr(e, k)),
            reverse=not descriptor.ascending,
        )
    return result
