"""Store capability consumed by the repository engine.

A store implements exactly one execution mode natively:
  - Store      : blocking methods (native_mode = SYNC)
  - AsyncStore : coroutine methods (native_mode = ASYNC)
The engine derives the other form through SyncAsyncBridge.

Reads come in two styles (query_style):
  - COMPOSABLE : as_composable_query() → where/order_by/offset/limit → execute()
  - IMPERATIVE : find(filter) → cursor.sort/skip/limit → cursor.to_list()
Building a query or cursor never performs I/O; execute() / to_list() do.

Thread safety: a store shared across threads must tolerate concurrent calls.
The engine does not serialise access to it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, ClassVar, Generic, Protocol, TypeVar

from src.domain.models.enums import ExecutionMode, QueryStyle
from src.domain.models.query import Filter, SortClause, Unfiltered
from src.domain.services.bridge import CancellationToken

T = TypeVar("T")


class Cursor(Protocol):
    """Mutable cursor: each call adjusts the cursor and returns it."""

    def sort(self, clause: SortClause) -> Cursor: ...

    def skip(self, count: int) -> Cursor: ...

    def limit(self, count: int) -> Cursor: ...

    def to_list(self, cancellation: CancellationToken | None = None) -> Any: ...


class ComposableQuery(Protocol):
    """Immutable query: each call returns a new, narrower query."""

    def where(self, filter: Filter) -> ComposableQuery: ...

    def order_by(self, clause: SortClause) -> ComposableQuery: ...

    def offset(self, count: int) -> ComposableQuery: ...

    def limit(self, count: int) -> ComposableQuery: ...


class _StoreBase(ABC, Generic[T]):
    native_mode: ClassVar[ExecutionMode]
    query_style: QueryStyle = QueryStyle.COMPOSABLE

    @abstractmethod
    def find(self, filter: Filter) -> Cursor:
        """Return an unexecuted cursor over entities matching filter."""

    @abstractmethod
    def as_composable_query(self) -> ComposableQuery:
        """Return an unexecuted query over all entities."""

    def _cursor(
        self,
        filter: Filter | None,
        sort: SortClause | None,
        skip: int | None,
        limit: int | None,
    ) -> Cursor:
        cursor = self.find(filter or Unfiltered())
        if sort is not None:
            cursor = cursor.sort(sort)
        if skip is not None:
            cursor = cursor.skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        return cursor


class Store(_StoreBase[T]):
    """Blocking store."""

    native_mode = ExecutionMode.SYNC

    @abstractmethod
    def insert_one(self, entity: T, cancellation: CancellationToken | None = None) -> None: ...

    @abstractmethod
    def insert_many(
        self, entities: Iterable[T], cancellation: CancellationToken | None = None
    ) -> None: ...

    @abstractmethod
    def delete_where(self, filter: Filter, cancellation: CancellationToken | None = None) -> None: ...

    @abstractmethod
    def replace_where(
        self, filter: Filter, entity: T, cancellation: CancellationToken | None = None
    ) -> None:
        """Replace the first match; zero matches is a successful no-op."""

    @abstractmethod
    def find_one(self, filter: Filter, cancellation: CancellationToken | None = None) -> T | None: ...

    @abstractmethod
    def execute(
        self, query: ComposableQuery, cancellation: CancellationToken | None = None
    ) -> list[T]: ...

    def query(
        self,
        filter: Filter | None = None,
        sort: SortClause | None = None,
        skip: int | None = None,
        limit: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[T]:
        return self._cursor(filter, sort, skip, limit).to_list(cancellation)


class AsyncStore(_StoreBase[T]):
    """Coroutine store."""

    native_mode = ExecutionMode.ASYNC

    @abstractmethod
    async def insert_one(self, entity: T, cancellation: CancellationToken | None = None) -> None: ...

    @abstractmethod
    async def insert_many(
        self, entities: Iterable[T], cancellation: CancellationToken | None = None
    ) -> None: ...

    @abstractmethod
    async def delete_where(
        self, filter: Filter, cancellation: CancellationToken | None = None
    ) -> None: ...

    @abstractmethod
    async def replace_where(
        self, filter: Filter, entity: T, cancellation: CancellationToken | None = None
    ) -> None:
        """Replace the first match; zero matches is a successful no-op."""

    @abstractmethod
    async def find_one(
        self, filter: Filter, cancellation: CancellationToken | None = None
    ) -> T | None: ...

    @abstractmethod
    async def execute(
        self, query: ComposableQuery, cancellation: CancellationToken | None = None
    ) -> list[T]: ...

    async def query(
        self,
        filter: Filter | None = None,
        sort: SortClause | None = None,
        skip: int | None = None,
        limit: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[T]:
        return await self._cursor(filter, sort, skip, limit).to_list(cancellation)

