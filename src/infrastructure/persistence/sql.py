"""SQLAlchemy async store implementation.

Coroutine store (native_mode = ASYNC) over a table derived from the entity's
class map.  Entities must be pydantic models: rows are written from
model_dump() and read back through model_validate().

Each operation opens its own AsyncSession, so one store may be shared by
concurrent tasks.  Writes run inside session.begin() and commit on exit.
Any SQLAlchemyError is re-raised as StoreError with the original as __cause__.

Dotted paths index into JSON columns ("address.city" → address['city']).
Paths through a list column are rejected with InvalidPropertyPath.

The engine's pool is bound to the event loop that opened its connections
(asyncpg).  GenericRepository drives every call on its bridge loop; run
create_schema() there too, e.g. bridge.run_sync(store.create_schema).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import JSON, ColumnElement, Select, Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.domain.exceptions import ConfigurationError, InvalidPropertyPath, StoreError
from src.domain.models.enums import QueryStyle
from src.domain.models.query import ByIdentity, ByIdentitySet, Filter, SortClause, Unfiltered
from src.domain.models.shape import is_structured
from src.domain.repositories.store import AsyncStore
from src.domain.services.bridge import CancellationToken

from .class_map import ClassMap, ClassMapRegistry
from .class_map import class_maps as default_class_maps

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _column(table: Table, path: str) -> ColumnElement[Any]:
    head, _, rest = path.partition(".")
    column = table.c[head]
    if rest:
        return column[tuple(rest.split("."))]
    return column


def _predicate(table: Table, filter: Filter) -> ColumnElement[bool] | None:
    if isinstance(filter, Unfiltered):
        return None
    if isinstance(filter, ByIdentity):
        return table.c[filter.field] == filter.value
    if isinstance(filter, ByIdentitySet):
        return table.c[filter.field].in_(filter.values)
    raise TypeError(f"Unsupported filter: {filter!r}")


class SqlQuery:
    """Composable wrapper over a Select; .statement is the raw escape hatch.

    sort_guard, when set, vets every order_by path before it reaches SQL.
    """

    def __init__(
        self,
        statement: Select,
        table: Table,
        sort_guard: Callable[[str], None] | None = None,
    ) -> None:
        self.statement = statement
        self.table = table
        self._sort_guard = sort_guard

    def _derive(self, statement: Select) -> SqlQuery:
        return SqlQuery(statement, self.table, self._sort_guard)

    def where(self, filter: Filter) -> SqlQuery:
        predicate = _predicate(self.table, filter)
        if predicate is None:
            return self
        return self._derive(self.statement.where(predicate))

    def order_by(self, clause: SortClause) -> SqlQuery:
        if self._sort_guard is not None:
            self._sort_guard(clause.property_path)
        column = _column(self.table, clause.property_path)
        return self._derive(
            self.statement.order_by(column.desc() if clause.descending else column.asc())
        )

    def offset(self, count: int) -> SqlQuery:
        return self._derive(self.statement.offset(count))

    def limit(self, count: int) -> SqlQuery:
        return self._derive(self.statement.limit(count))


class SqlCursor(Generic[T]):
    def __init__(self, store: SqlAlchemyStore[T], filter: Filter) -> None:
        self._store = store
        self._query = store.as_composable_query().where(filter)
        self._sort: SortClause | None = None
        self._skip: int | None = None
        self._limit: int | None = None

    def sort(self, clause: SortClause) -> SqlCursor[T]:
        self._store.check_sort_path(clause.property_path)
        self._sort = clause
        return self

    def skip(self, count: int) -> SqlCursor[T]:
        self._skip = count
        return self

    def limit(self, count: int) -> SqlCursor[T]:
        self._limit = count
        return self

    async def to_list(self, cancellation: CancellationToken | None = None) -> list[T]:
        query = self._query
        if self._sort is not None:
            query = query.order_by(self._sort)
        if self._skip is not None:
            query = query.offset(self._skip)
        if self._limit is not None:
            query = query.limit(self._limit)
        return await self._store.execute(query, cancellation)


class SqlAlchemyStore(AsyncStore[T]):
    def __init__(
        self,
        entity_type: type[T],
        engine: AsyncEngine,
        *,
        class_maps: ClassMapRegistry | None = None,
        class_map_initializer: Callable[[ClassMap], None] | None = None,
        query_style: QueryStyle = QueryStyle.COMPOSABLE,
    ) -> None:
        if not (isinstance(entity_type, type) and issubclass(entity_type, BaseModel)):
            raise ConfigurationError(
                f"SqlAlchemyStore needs a pydantic model, got {entity_type!r}"
            )
        self.entity_type = entity_type
        self.query_style = query_style
        self._engine = engine
        self._sessions = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
        registry = class_maps if class_maps is not None else default_class_maps
        self.class_map: ClassMap = registry.register(entity_type, class_map_initializer)
        self._identity = registry.identity
        self.table: Table = self.class_map.table
        self._json_columns = {c.name for c in self.table.columns if isinstance(c.type, JSON)}

    def check_sort_path(self, path: str) -> None:
        """Reject sort paths that cross a list.

        A JSON key lookup on an array is NULL for every row, which would
        silently leave the rows unsorted.
        """
        current: Any = self.entity_type
        for segment in path.split("."):
            if not is_structured(current):
                raise InvalidPropertyPath(path, self.entity_type.__name__)
            info = self._identity.shape(current).find_property(segment)
            if info is None or info.is_sequence:
                raise InvalidPropertyPath(path, self.entity_type.__name__)
            current = info.element_type

    async def create_schema(self) -> None:
        """Create the entity's table if it does not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(self.table.metadata.create_all, tables=[self.table])

    def _to_row(self, entity: T) -> dict[str, Any]:
        data = entity.model_dump(mode="python")
        if self._json_columns:
            data.update(entity.model_dump(mode="json", include=self._json_columns))
        return {name: data[name] for name in self.table.c.keys() if name in data}

    def _to_entity(self, row: Any) -> T:
        return self.entity_type.model_validate(dict(row._mapping))

    def _fail(self, exc: SQLAlchemyError) -> StoreError:
        return StoreError(f"{self.entity_type.__name__} store failed: {exc}")

    async def _write(
        self,
        statement: Any,
        params: list[dict[str, Any]] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        try:
            async with self._sessions() as session:
                async with session.begin():
                    await session.execute(statement, params)
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc

    async def _read(
        self, statement: Select, cancellation: CancellationToken | None = None
    ) -> list[T]:
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        try:
            async with self._sessions() as session:
                result = await session.execute(statement)
                rows = result.all()
        except SQLAlchemyError as exc:
            raise self._fail(exc) from exc
        return [self._to_entity(row) for row in rows]

    # --- writes ---

    async def insert_one(self, entity: T, cancellation: CancellationToken | None = None) -> None:
        await self.insert_many([entity], cancellation)

    async def insert_many(
        self, entities: Iterable[T], cancellation: CancellationToken | None = None
    ) -> None:
        rows = [self._to_row(e) for e in entities]
        if not rows:
            return
        await self._write(insert(self.table), rows, cancellation)
        logger.debug("Inserted %d %s", len(rows), self.entity_type.__name__)

    async def delete_where(
        self, filter: Filter, cancellation: CancellationToken | None = None
    ) -> None:
        statement = delete(self.table)
        predicate = _predicate(self.table, filter)
        if predicate is not None:
            statement = statement.where(predicate)
        await self._write(statement, cancellation=cancellation)

    async def replace_where(
        self, filter: Filter, entity: T, cancellation: CancellationToken | None = None
    ) -> None:
        statement = update(self.table).values(**self._to_row(entity))
        predicate = _predicate(self.table, filter)
        if predicate is not None:
            statement = statement.where(predicate)
        await self._write(statement, cancellation=cancellation)

    # --- reads ---

    async def find_one(
        self, filter: Filter, cancellation: CancellationToken | None = None
    ) -> T | None:
        rows = await self._read(self.as_composable_query().where(filter).limit(1).statement, cancellation)
        return rows[0] if rows else None

    def find(self, filter: Filter) -> SqlCursor[T]:
        return SqlCursor(self, filter)

    def as_composable_query(self) -> SqlQuery:
        return SqlQuery(select(self.table), self.table, self.check_sort_path)

    async def execute(
        self, query: SqlQuery, cancellation: CancellationToken | None = None
    ) -> list[T]:
        return await self._read(query.statement, cancellation)

