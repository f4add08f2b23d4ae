"""Entity identity resolution.

The resolver owns the process-wide shape cache.  Each entity type's shape is
built at most once: first access takes a per-type lock (created under a
registry lock) and re-checks the cache, so concurrent first readers all see
the one fully-formed shape that won.

Convention, compared case-insensitively and ignoring underscores:
    1. "<TypeName>Id"   (Order → OrderId, order_id, orderid)
    2. "Id"
    3. unresolved (None): identity-dependent operations then fail with
       IdentityUnresolved at the point of use.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable
from typing import Any

from src.domain.exceptions import ConfigurationError, IdentityUnresolved
from src.domain.models.shape import EntityShape, build_shape, selector_path

logger = logging.getLogger(__name__)


def _key(name: str) -> str:
    return name.replace("_", "").lower()


class IdentityResolver:
    def __init__(self) -> None:
        self._shapes: dict[type, EntityShape] = {}
        self._overrides: dict[type, str] = {}
        self._locks: dict[type, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @staticmethod
    def resolve(shape: EntityShape) -> str | None:
        """Return the conventional identity column of shape, or None."""
        candidates = (f"{shape.type_name}Id", "Id")
        for candidate in candidates:
            wanted = _key(candidate)
            for column in shape.columns:
                if _key(column) == wanted:
                    return column
        return None

    def _lock_for(self, entity_type: type) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(entity_type)
            if lock is None:
                lock = self._locks[entity_type] = threading.Lock()
            return lock

    def _build(self, entity_type: type) -> EntityShape:
        shape = build_shape(entity_type)
        id_name = self._overrides.get(entity_type) or self.resolve(shape)
        return dataclasses.replace(shape, id_property_name=id_name)

    def shape(self, entity_type: type) -> EntityShape:
        shape = self._shapes.get(entity_type)
        if shape is not None:
            return shape
        with self._lock_for(entity_type):
            shape = self._shapes.get(entity_type)
            if shape is None:
                shape = self._shapes[entity_type] = self._build(entity_type)
                logger.debug(
                    "Built shape for %s: columns=%s id=%s",
                    shape.type_name, shape.columns, shape.id_property_name,
                )
            return shape

    def id_property(self, entity_type: type) -> str | None:
        return self.shape(entity_type).id_property_name

    def require_identity(self, entity_type: type) -> str:
        name = self.id_property(entity_type)
        if name is None:
            raise IdentityUnresolved(entity_type.__name__)
        return name

    def identity_value(self, entity_type: type, entity: Any) -> Any:
        """Read the identity value off an entity instance."""
        return getattr(entity, self.require_identity(entity_type))

    def set_identity(
        self, entity_type: type, prop: str | Callable[[Any], Any]
    ) -> str:
        """Override the identity property of entity_type.

        prop is a property name or a selector such as ``lambda o: o.order_id``.
        Setting the same override twice is a no-op; a different override
        needs reset() first.
        """
        path = selector_path(prop)
        if path is None or "." in path:
            raise ConfigurationError(
                f"Identity of '{entity_type.__name__}' must be a single property, got {prop!r}"
            )
        shape = self.shape(entity_type)
        info = shape.find_property(path)
        if info is None:
            raise ConfigurationError(
                f"'{path}' is not a public property of '{shape.type_name}'."
            )

        with self._lock_for(entity_type):
            current = self._overrides.get(entity_type)
            if current is not None and current != info.name:
                raise ConfigurationError(
                    f"Identity of '{shape.type_name}' already set to '{current}'; "
                    "call reset() before overriding it again."
                )
            self._overrides[entity_type] = info.name
            cached = self._shapes.get(entity_type)
            # reset() may have dropped the shape since self.shape() above
            self._shapes[entity_type] = (
                dataclasses.replace(cached, id_property_name=info.name)
                if cached is not None
                else self._build(entity_type)
            )
        logger.info("Identity of %s set to %s", shape.type_name, info.name)
        return info.name

    def reset(self, entity_type: type | None = None) -> None:
        """Forget cached shapes and overrides (all types when entity_type is None).

        Takes each type's lock, so a build or override in progress finishes
        before its result is dropped and cannot be written back afterwards.
        """
        with self._registry_lock:
            targets = list(self._locks) if entity_type is None else [entity_type]
        for target in targets:
            with self._lock_for(target):
                self._shapes.pop(target, None)
                self._overrides.pop(target, None)


identity_resolver = IdentityResolver()
