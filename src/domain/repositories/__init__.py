"""Domain repository interfaces and the generic engine.

Import from this package rather than individual modules to avoid coupling
callers to specific repository module paths.
"""

from .base import PropertyRef, Repository
from .generic import GenericRepository
from .store import AsyncStore, ComposableQuery, Cursor, Store

__all__ = [
    "Repository",
    "GenericRepository",
    "Store",
    "AsyncStore",
    "Cursor",
    "ComposableQuery",
    "PropertyRef",
]
