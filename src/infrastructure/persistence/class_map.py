"""Class maps: how an entity type is laid out as a SQLAlchemy table.

A ClassMap is derived from the entity shape, optionally adjusted by a
caller-supplied initializer, then frozen into a Table on the registry's
MetaData.  Defaults:

    table name    "{TypeName}Collection"
    scalar field  typed column (see _SCALAR_TYPES)
    other field   JSON column (nested models, lists, dicts)
    identity      primary key, when the type has one

Registration is idempotent: registering a type twice logs a warning and
returns the first map.  Every other failure (bad initializer, unsupported
type, table name clash) raises ConfigurationError chained to its cause.
"""

from __future__ import annotations

import datetime as dt
import decimal
import enum
import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    Interval,
    LargeBinary,
    MetaData,
    Numeric,
    String,
    Table,
    Time,
    Uuid,
)
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.types import TypeEngine

from src.domain.exceptions import ConfigurationError
from src.domain.models.shape import EntityShape
from src.domain.services.identity import IdentityResolver, identity_resolver

logger = logging.getLogger(__name__)

# order matters: bool before int, datetime before date
_SCALAR_TYPES: list[tuple[type, Callable[[], TypeEngine]]] = [
    (bool, Boolean),
    (int, Integer),
    (float, Float),
    (decimal.Decimal, Numeric),
    (str, String),
    (bytes, LargeBinary),
    (dt.datetime, lambda: DateTime(timezone=True)),
    (dt.date, Date),
    (dt.time, Time),
    (dt.timedelta, Interval),
    (uuid.UUID, Uuid),
]


def column_type_for(tp: Any) -> TypeEngine:
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return SqlEnum(tp, native_enum=False, values_callable=lambda e: [m.value for m in e])
    for python_type, factory in _SCALAR_TYPES:
        if isinstance(tp, type) and issubclass(tp, python_type):
            return factory()
    if tp is Any:
        return JSON()
    raise ConfigurationError(f"No column type for {tp!r}; set it in a class map initializer")


@dataclass
class ClassMap:
    entity_type: type
    table_name: str
    id_column: str | None
    column_types: dict[str, TypeEngine] = field(default_factory=dict)
    table: Table | None = None

    @classmethod
    def from_shape(cls, shape: EntityShape) -> ClassMap:
        column_types = {
            name: column_type_for(info.element_type) if info.is_scalar else JSON()
            for name, info in shape.properties.items()
        }
        return cls(
            entity_type=shape.entity_type,
            table_name=f"{shape.type_name}Collection",
            id_column=shape.id_property_name,
            column_types=column_types,
        )

    def build(self, metadata: MetaData) -> Table:
        if self.id_column is not None and self.id_column not in self.column_types:
            raise ConfigurationError(
                f"Identity column '{self.id_column}' is not mapped for {self.entity_type.__name__}"
            )
        columns = [
            Column(name, type_, primary_key=name == self.id_column)
            for name, type_ in self.column_types.items()
        ]
        self.table = Table(self.table_name, metadata, *columns)
        return self.table


class ClassMapRegistry:
    def __init__(
        self,
        metadata: MetaData | None = None,
        identity: IdentityResolver | None = None,
    ) -> None:
        self.metadata = metadata if metadata is not None else MetaData()
        self.identity = identity or identity_resolver
        self._maps: dict[type, ClassMap] = {}
        self._lock = threading.Lock()

    def is_registered(self, entity_type: type) -> bool:
        return entity_type in self._maps

    def register(
        self,
        entity_type: type,
        initializer: Callable[[ClassMap], None] | None = None,
    ) -> ClassMap:
        with self._lock:
            existing = self._maps.get(entity_type)
            if existing is not None:
                logger.warning(
                    "Class map for %s already registered; ignoring duplicate registration",
                    entity_type.__name__,
                )
                return existing

            try:
                class_map = ClassMap.from_shape(self.identity.shape(entity_type))
                if initializer is not None:
                    initializer(class_map)
                class_map.build(self.metadata)
            except ConfigurationError:
                raise
            except Exception as exc:
                raise ConfigurationError(
                    f"Cannot map {entity_type.__name__}: {exc}"
                ) from exc

            self._maps[entity_type] = class_map
            logger.debug("Registered class map %s → %s", entity_type.__name__, class_map.table_name)
            return class_map

    def lookup(self, entity_type: type) -> ClassMap:
        try:
            return self._maps[entity_type]
        except KeyError:
            raise ConfigurationError(f"No class map registered for {entity_type.__name__}") from None


class_maps = ClassMapRegistry()
