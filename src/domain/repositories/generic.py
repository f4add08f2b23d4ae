"""Generic repository engine.

GenericRepository[T] orchestrates identity resolution, filter construction,
query translation and sync/async bridging on top of a pluggable store:

    caller ──► GenericRepository ──► IdentityResolver   (which field is the id)
                    │            ──► PagingSortState    (fluent options → QueryOptions)
                    │            ──► QueryTranslator    (plan → query / cursor)
                    ▼
              SyncAsyncBridge ──► Store

A sync store is called directly by the blocking form and from the worker
pool by the async form.  An async store is always driven on the bridge loop,
by both forms, so its engine and connection pool see a single event loop.

Validation (IdentityUnresolved, InvalidPropertyPath) happens before the
store is touched.  Store errors propagate unchanged.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from src.domain.models.enums import ExecutionMode, QueryStyle, SortOrder
from src.domain.models.query import ByIdentity, ByIdentitySet, QueryOptions, Unfiltered
from src.domain.services.bridge import CancellationToken, SyncAsyncBridge, default_bridge
from src.domain.services.identity import IdentityResolver, identity_resolver
from src.domain.services.paging import PagingSortState
from src.domain.services.paths import PropertyPathValidator
from src.domain.services.translation import QueryTranslator

from .base import PropertyRef, Repository
from .store import AsyncStore, Store

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenericRepository(Repository[T]):
    """CRUD repository for entity_type backed by store.

    Not safe for concurrent configure + query on one instance: fluent
    paging/sorting mutates instance state.  Use one instance per concurrent
    query shape, or pass QueryOptions built from query_options() per call.
    """

    def __init__(
        self,
        entity_type: type[T],
        store: Store[T] | AsyncStore[T],
        *,
        bridge: SyncAsyncBridge | None = None,
        identity: IdentityResolver | None = None,
        translator: QueryTranslator | None = None,
    ) -> None:
        self._entity_type = entity_type
        self._store = store
        self._bridge = bridge or default_bridge()
        self._identity = identity or identity_resolver
        self._translator = translator or QueryTranslator()
        self._validator = PropertyPathValidator(self._identity)
        self._state = PagingSortState(entity_type, self._validator)
        self._identity.shape(entity_type)

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    @property
    def store(self) -> Store[T] | AsyncStore[T]:
        return self._store

    @property
    def id_property_name(self) -> str | None:
        return self._identity.id_property(self._entity_type)

    # --- bridging ---

    def _call(self, method: Callable[..., Any], *args: Any) -> Any:
        if self._store.native_mode is ExecutionMode.ASYNC:
            return self._bridge.run_sync(method, *args)
        return method(*args)

    async def _call_async(
        self,
        method: Callable[..., Any],
        *args: Any,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        if self._store.native_mode is ExecutionMode.ASYNC:
            return await self._bridge.run_coroutine(method, *args, cancellation=cancellation)
        return await self._bridge.run_async(
            functools.partial(method, cancellation=cancellation),
            *args,
            cancellation=cancellation,
        )

    # --- filters ---

    def _by_identity(self, entity: T) -> ByIdentity:
        field = self._identity.require_identity(self._entity_type)
        return ByIdentity(field, getattr(entity, field))

    def _by_identity_set(self, entities: Iterable[T]) -> ByIdentitySet:
        field = self._identity.require_identity(self._entity_type)
        return ByIdentitySet(field, tuple(getattr(e, field) for e in entities))

    def _by_id(self, id: Any) -> ByIdentity:
        return ByIdentity(self._identity.require_identity(self._entity_type), id)

    def _reader(self, options: QueryOptions | None) -> Callable[..., Any]:
        """Snapshot options now and return the store call that runs the read."""
        snapshot = options if options is not None else self._state.build()
        logger.debug("find %s with %s", self._entity_type.__name__, snapshot)
        query = self._translator.translate(self._store, Unfiltered(), snapshot)
        if self._store.query_style is QueryStyle.IMPERATIVE:
            return query.to_list
        return functools.partial(self._store.execute, query)

    # --- create ---

    def create(self, entity: T) -> None:
        self._call(self._store.insert_one, entity)

    async def create_async(self, entity: T, cancellation: CancellationToken | None = None) -> None:
        await self._call_async(self._store.insert_one, entity, cancellation=cancellation)

    def create_many(self, entities: Iterable[T]) -> None:
        items = list(entities)
        if items:
            self._call(self._store.insert_many, items)

    async def create_many_async(
        self, entities: Iterable[T], cancellation: CancellationToken | None = None
    ) -> None:
        items = list(entities)
        if items:
            await self._call_async(self._store.insert_many, items, cancellation=cancellation)

    # --- update / delete ---

    def update(self, entity: T) -> None:
        self._call(self._store.replace_where, self._by_identity(entity), entity)

    async def update_async(self, entity: T, cancellation: CancellationToken | None = None) -> None:
        await self._call_async(
            self._store.replace_where, self._by_identity(entity), entity, cancellation=cancellation
        )

    def delete(self, entity: T) -> None:
        self._call(self._store.delete_where, self._by_identity(entity))

    async def delete_async(self, entity: T, cancellation: CancellationToken | None = None) -> None:
        await self._call_async(
            self._store.delete_where, self._by_identity(entity), cancellation=cancellation
        )

    def delete_many(self, entities: Iterable[T]) -> None:
        filter = self._by_identity_set(entities)
        if filter.values:
            self._call(self._store.delete_where, filter)

    async def delete_many_async(
        self, entities: Iterable[T], cancellation: CancellationToken | None = None
    ) -> None:
        filter = self._by_identity_set(entities)
        if filter.values:
            await self._call_async(self._store.delete_where, filter, cancellation=cancellation)

    # --- reads ---

    def get_by_id(self, id: Any) -> T | None:
        return self._call(self._store.find_one, self._by_id(id))

    async def get_by_id_async(
        self, id: Any, cancellation: CancellationToken | None = None
    ) -> T | None:
        return await self._call_async(self._store.find_one, self._by_id(id), cancellation=cancellation)

    def find(self, options: QueryOptions | None = None) -> list[T]:
        return self._call(self._reader(options))

    async def find_async(
        self,
        options: QueryOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[T]:
        return await self._call_async(self._reader(options), cancellation=cancellation)

    def as_queryable(self, options: QueryOptions | None = None) -> Any:
        snapshot = options if options is not None else self._state.build()
        plan = self._translator.plan(Unfiltered(), snapshot)
        return self._translator.compose(self._store.as_composable_query(), plan)

    # --- paging / sorting ---

    @property
    def page_number(self) -> int:
        return self._state.page_number

    @property
    def page_size(self) -> int:
        return self._state.page_size

    @property
    def sort_property_name(self) -> str | None:
        return self._state.sort_property_name

    @property
    def sort_order(self) -> SortOrder:
        return self._state.sort_order

    def page(self, number: int, size: int) -> GenericRepository[T]:
        self._state.page(number, size)
        return self

    def clear_paging(self) -> GenericRepository[T]:
        self._state.clear_paging()
        return self

    def sort_by(self, prop: PropertyRef) -> GenericRepository[T]:
        self._state.sort_by(prop)
        return self

    def sort_by_descending(self, prop: PropertyRef) -> GenericRepository[T]:
        self._state.sort_by_descending(prop)
        return self

    def clear_sorting(self) -> GenericRepository[T]:
        self._state.clear_sorting()
        return self

    def query_options(self) -> PagingSortState:
        """Fresh fluent builder for explicit per-call QueryOptions."""
        return PagingSortState(self._entity_type, self._validator)

    def set_identity(self, prop: PropertyRef) -> GenericRepository[T]:
        """Override the identity property for this entity type (process-wide)."""
        self._identity.set_identity(self._entity_type, prop)
        return self
