"""Concrete store implementations.

Exports the stores, the class-map registry and the get_repository() factory
for wiring a GenericRepository at the application boundary.
"""

from __future__ import annotations

from typing import TypeVar

from src.domain.repositories.generic import GenericRepository
from src.domain.repositories.store import AsyncStore, Store
from src.domain.services.bridge import SyncAsyncBridge, default_bridge
from src.infrastructure.database import Settings

from .class_map import ClassMap, ClassMapRegistry, class_maps
from .memory import InMemoryStore, MemoryCursor, MemoryQuery
from .sql import SqlAlchemyStore, SqlCursor, SqlQuery

T = TypeVar("T")


def get_repository(
    entity_type: type[T],
    store: Store[T] | AsyncStore[T],
    settings: Settings | None = None,
) -> GenericRepository[T]:
    """Construct a repository for entity_type over store.

    The process-wide bridge is used unless settings.bridge_max_workers asks
    for a dedicated worker pool:

        store = SqlAlchemyStore(Order, create_engine())
        orders = get_repository(Order, store)
        cheapest = orders.sort_by("total").page(1, 10).find()
    """
    bridge = default_bridge()
    if settings is not None and settings.bridge_max_workers is not None:
        bridge = SyncAsyncBridge(max_workers=settings.bridge_max_workers)
    return GenericRepository(entity_type, store, bridge=bridge)


__all__ = [
    "ClassMap",
    "ClassMapRegistry",
    "class_maps",
    "InMemoryStore",
    "MemoryCursor",
    "MemoryQuery",
    "SqlAlchemyStore",
    "SqlCursor",
    "SqlQuery",
    "get_repository",
]
