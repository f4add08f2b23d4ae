"""In-memory store implementation.

Blocking (native_mode = SYNC) and safe for concurrent use: all access to the
row list goes through one RLock.  Entities are deep-copied on the way in and
on the way out, so callers never share state with the store.

Both query styles are supported; query_style only selects which one the
repository uses for find():
  - MemoryCursor : imperative: sort/skip/limit mutate the cursor
  - MemoryQuery  : composable: where/order_by/offset/limit return new queries

Dotted sort paths walk nested objects.  A segment holding a sequence fans
out to all its elements; the row then sorts by the smallest value ascending
and the largest descending.  Missing/None values sort first ascending.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from src.domain.exceptions import StoreError
from src.domain.models.enums import QueryStyle
from src.domain.models.query import ByIdentity, ByIdentitySet, Filter, SortClause, Unfiltered
from src.domain.repositories.store import Store
from src.domain.services.bridge import CancellationToken
from src.domain.services.identity import IdentityResolver, identity_resolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _check(cancellation: CancellationToken | None) -> None:
    if cancellation is not None:
        cancellation.raise_if_cancelled()


def _path_values(entity: Any, path: str) -> list[Any]:
    values = [entity]
    for segment in path.split("."):
        next_values: list[Any] = []
        for value in values:
            if value is None:
                continue
            attr = value.get(segment) if isinstance(value, dict) else getattr(value, segment, None)
            if isinstance(attr, (list, tuple, set, frozenset)):
                next_values.extend(attr)
            else:
                next_values.append(attr)
        values = next_values
    return values


def _sort_key(clause: SortClause) -> Callable[[Any], tuple]:
    def key(entity: Any) -> tuple:
        values = [v for v in _path_values(entity, clause.property_path) if v is not None]
        if not values:
            return (0, None)
        return (1, max(values) if clause.descending else min(values))

    return key


def _matches(entity: Any, filter: Filter) -> bool:
    if isinstance(filter, Unfiltered):
        return True
    value = getattr(entity, filter.field, None)
    if isinstance(filter, ByIdentity):
        return value == filter.value
    if isinstance(filter, ByIdentitySet):
        return value in filter.values
    raise TypeError(f"Unsupported filter: {filter!r}")


class MemoryCursor(Generic[T]):
    def __init__(self, store: InMemoryStore[T], filter: Filter) -> None:
        self._store = store
        self._filter = filter
        self._sort: SortClause | None = None
        self._skip: int | None = None
        self._limit: int | None = None

    def sort(self, clause: SortClause) -> MemoryCursor[T]:
        self._sort = clause
        return self

    def skip(self, count: int) -> MemoryCursor[T]:
        self._skip = count
        return self

    def limit(self, count: int) -> MemoryCursor[T]:
        self._limit = count
        return self

    def to_list(self, cancellation: CancellationToken | None = None) -> list[T]:
        _check(cancellation)
        sorts = (self._sort,) if self._sort is not None else ()
        return self._store._run((self._filter,), sorts, self._skip, self._limit)


@dataclass(frozen=True)
class MemoryQuery(Generic[T]):
    source: InMemoryStore[T]
    filters: tuple[Filter, ...] = ()
    sorts: tuple[SortClause, ...] = ()
    skip_count: int | None = None
    limit_count: int | None = None

    def where(self, filter: Filter) -> MemoryQuery[T]:
        return dataclasses.replace(self, filters=(*self.filters, filter))

    def order_by(self, clause: SortClause) -> MemoryQuery[T]:
        return dataclasses.replace(self, sorts=(*self.sorts, clause))

    def offset(self, count: int) -> MemoryQuery[T]:
        return dataclasses.replace(self, skip_count=count)

    def limit(self, count: int) -> MemoryQuery[T]:
        return dataclasses.replace(self, limit_count=count)

    def __iter__(self) -> Iterator[T]:
        return iter(self.source.execute(self))


class InMemoryStore(Store[T]):
    def __init__(
        self,
        entity_type: type[T],
        *,
        query_style: QueryStyle = QueryStyle.IMPERATIVE,
        identity: IdentityResolver | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.query_style = query_style
        self._identity = identity or identity_resolver
        self._rows: list[T] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def _guard_unique(self, entities: list[T]) -> None:
        id_name = self._identity.id_property(self.entity_type)
        if id_name is None:
            return
        seen = {getattr(row, id_name) for row in self._rows}
        for entity in entities:
            value = getattr(entity, id_name)
            if value in seen:
                raise StoreError(
                    f"Duplicate key {id_name}={value!r} in {self.entity_type.__name__}"
                )
            seen.add(value)

    def _run(
        self,
        filters: tuple[Filter, ...],
        sorts: tuple[SortClause, ...],
        skip: int | None,
        limit: int | None,
    ) -> list[T]:
        with self._lock:
            rows = [r for r in self._rows if all(_matches(r, f) for f in filters)]
        # stable sorts applied last-to-first give first-clause precedence
        for clause in reversed(sorts):
            rows.sort(key=_sort_key(clause), reverse=clause.descending)
        if skip:
            rows = rows[skip:]
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]

    # --- writes ---

    def insert_one(self, entity: T, cancellation: CancellationToken | None = None) -> None:
        _check(cancellation)
        with self._lock:
            self._guard_unique([entity])
            self._rows.append(copy.deepcopy(entity))
        logger.debug("Inserted 1 %s", self.entity_type.__name__)

    def insert_many(
        self, entities: Iterable[T], cancellation: CancellationToken | None = None
    ) -> None:
        _check(cancellation)
        items = list(entities)
        with self._lock:
            self._guard_unique(items)
            self._rows.extend(copy.deepcopy(e) for e in items)
        logger.debug("Inserted %d %s", len(items), self.entity_type.__name__)

    def delete_where(self, filter: Filter, cancellation: CancellationToken | None = None) -> None:
        _check(cancellation)
        with self._lock:
            before = len(self._rows)
            self._rows = [r for r in self._rows if not _matches(r, filter)]
            removed = before - len(self._rows)
        logger.debug("Deleted %d %s", removed, self.entity_type.__name__)

    def replace_where(
        self, filter: Filter, entity: T, cancellation: CancellationToken | None = None
    ) -> None:
        _check(cancellation)
        with self._lock:
            for i, row in enumerate(self._rows):
                if _matches(row, filter):
                    self._rows[i] = copy.deepcopy(entity)
                    return
        logger.debug("Replace matched no %s; nothing changed", self.entity_type.__name__)

    # --- reads ---

    def find_one(self, filter: Filter, cancellation: CancellationToken | None = None) -> T | None:
        _check(cancellation)
        with self._lock:
            for row in self._rows:
                if _matches(row, filter):
                    return copy.deepcopy(row)
        return None

    def find(self, filter: Filter) -> MemoryCursor[T]:
        return MemoryCursor(self, filter)

    def as_composable_query(self) -> MemoryQuery[T]:
        return MemoryQuery(self)

    def execute(
        self, query: MemoryQuery[T], cancellation: CancellationToken | None = None
    ) -> list[T]:
        _check(cancellation)
        return self._run(query.filters, query.sorts, query.skip_count, query.limit_count)
