"""Generic repository base interface.

Repository[T] is the root abstraction for CRUD access to one entity type.
The concrete engine lives in src/domain/repositories/generic.py and talks to
a pluggable store (src/domain/repositories/store.py).

Design notes:
  - Every CRUD operation has a blocking form and an ``*_async`` form.  A
    store implements one natively; the engine derives the other.
  - T is the domain entity type (a pydantic model or dataclass).
  - Paging and sorting are configured fluently on the repository.  Reads
    snapshot that state when called; pass explicit QueryOptions per call
    when the same instance is queried concurrently.
  - Absence is None, never an error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from src.domain.models.query import QueryOptions
from src.domain.services.bridge import CancellationToken

T = TypeVar("T")

PropertyRef = str | Callable[[Any], Any]


class Repository(ABC, Generic[T]):
    """Abstract CRUD + paging/sorting interface for an entity collection."""

    # --- create ---

    @abstractmethod
    def create(self, entity: T) -> None:
        """Insert a new entity."""

    @abstractmethod
    async def create_async(self, entity: T, cancellation: CancellationToken | None = None) -> None:
        ...

    @abstractmethod
    def create_many(self, entities: Iterable[T]) -> None:
        """Insert a list of new entities."""

    @abstractmethod
    async def create_many_async(
        self, entities: Iterable[T], cancellation: CancellationToken | None = None
    ) -> None:
        ...

    # --- update / delete ---

    @abstractmethod
    def update(self, entity: T) -> None:
        """Replace the stored entity with the same identity; no-op when absent."""

    @abstractmethod
    async def update_async(self, entity: T, cancellation: CancellationToken | None = None) -> None:
        ...

    @abstractmethod
    def delete(self, entity: T) -> None:
        """Delete the stored entity with the same identity."""

    @abstractmethod
    async def delete_async(self, entity: T, cancellation: CancellationToken | None = None) -> None:
        ...

    @abstractmethod
    def delete_many(self, entities: Iterable[T]) -> None:
        """Delete every stored entity sharing an identity with one of entities."""

    @abstractmethod
    async def delete_many_async(
        self, entities: Iterable[T], cancellation: CancellationToken | None = None
    ) -> None:
        ...

    # --- reads ---

    @abstractmethod
    def get_by_id(self, id: Any) -> T | None:
        """Return the entity with the given identity value, or None if not found."""

    @abstractmethod
    async def get_by_id_async(
        self, id: Any, cancellation: CancellationToken | None = None
    ) -> T | None:
        ...

    @abstractmethod
    def find(self, options: QueryOptions | None = None) -> list[T]:
        """Return all entities, paged and sorted by options or the current state."""

    @abstractmethod
    async def find_async(
        self,
        options: QueryOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> list[T]:
        ...

    @abstractmethod
    def as_queryable(self, options: QueryOptions | None = None) -> Any:
        """Return the unexecuted, further composable query behind find()."""

    # --- paging / sorting ---

    @abstractmethod
    def page(self, number: int, size: int) -> Repository[T]:
        ...

    @abstractmethod
    def clear_paging(self) -> Repository[T]:
        ...

    @abstractmethod
    def sort_by(self, prop: PropertyRef) -> Repository[T]:
        ...

    @abstractmethod
    def sort_by_descending(self, prop: PropertyRef) -> Repository[T]:
        ...

    @abstractmethod
    def clear_sorting(self) -> Repository[T]:
        ...
