"""Entity shape: the per-type field descriptor the repository engine works from.

Shapes are built from declared fields, never from instances:
  - pydantic models   → model_fields
  - dataclasses       → dataclasses.fields() + resolved type hints
  - other annotated classes → typing.get_type_hints()

A property is a *column* when it is scalar: not a collection and not a
structured class (pydantic model or dataclass).  str and bytes are scalar.
Only columns take part in identity resolution.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import types
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from src.domain.exceptions import ConfigurationError


@dataclass(frozen=True)
class PropertyInfo:
    """One declared field of an entity type.

    element_type is what a dotted path walks into: the annotation with
    Optional stripped and, for sequences, the element type.
    """

    name: str
    annotation: Any
    element_type: Any
    is_sequence: bool
    is_scalar: bool


@dataclass(frozen=True)
class EntityShape:
    entity_type: type
    properties: Mapping[str, PropertyInfo]
    id_property_name: str | None = None

    @property
    def type_name(self) -> str:
        return self.entity_type.__name__

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.properties.values() if p.is_scalar)

    def find_property(self, name: str) -> PropertyInfo | None:
        """Exact match first, then case-insensitive."""
        if name in self.properties:
            return self.properties[name]
        lowered = name.lower()
        for prop in self.properties.values():
            if prop.name.lower() == lowered:
                return prop
        return None


def is_structured(tp: Any) -> bool:
    return isinstance(tp, type) and (issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp))


def _strip_optional(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _describe(name: str, annotation: Any) -> PropertyInfo:
    inner = _strip_optional(annotation)
    origin = typing.get_origin(inner) or inner

    if isinstance(origin, type) and issubclass(origin, (str, bytes)):
        return PropertyInfo(name, annotation, inner, is_sequence=False, is_scalar=True)
    # pydantic models define __iter__, so this must precede the Iterable check
    if is_structured(inner):
        return PropertyInfo(name, annotation, inner, is_sequence=False, is_scalar=False)
    if isinstance(origin, type) and issubclass(origin, collections.abc.Mapping):
        return PropertyInfo(name, annotation, inner, is_sequence=False, is_scalar=False)
    if isinstance(origin, type) and issubclass(origin, collections.abc.Iterable):
        args = [a for a in typing.get_args(inner) if a is not Ellipsis]
        element = _strip_optional(args[0]) if len(set(args)) == 1 else Any
        return PropertyInfo(name, annotation, element, is_sequence=True, is_scalar=False)
    return PropertyInfo(name, annotation, inner, is_sequence=False, is_scalar=True)


def _declared_fields(entity_type: type) -> dict[str, Any]:
    if isinstance(entity_type, type) and issubclass(entity_type, BaseModel):
        return {name: info.annotation for name, info in entity_type.model_fields.items()}
    if dataclasses.is_dataclass(entity_type):
        hints = typing.get_type_hints(entity_type)
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(entity_type)}
    if isinstance(entity_type, type) and getattr(entity_type, "__annotations__", None):
        return dict(typing.get_type_hints(entity_type))
    raise ConfigurationError(
        f"Cannot derive a shape for {entity_type!r}: declare its fields as a "
        "pydantic model, a dataclass or class annotations."
    )


def build_shape(entity_type: type) -> EntityShape:
    """Reflect the declared fields of entity_type.  Identity is left unresolved."""
    fields = _declared_fields(entity_type)
    properties = {name: _describe(name, annotation) for name, annotation in fields.items()}
    return EntityShape(entity_type=entity_type, properties=types.MappingProxyType(properties))


class _PathRecorder:
    """Stand-in entity that records attribute access: lambda o: o.a.b → ('a', 'b')."""

    __slots__ = ("_parts",)

    def __init__(self, parts: tuple[str, ...] = ()) -> None:
        self._parts = parts

    def __getattr__(self, name: str) -> _PathRecorder:
        if name.startswith("__"):
            raise AttributeError(name)
        return _PathRecorder((*self._parts, name))


def selector_path(selector: str | Callable[[Any], Any]) -> str | None:
    """Return the dotted path a selector reads, or None if it is not a plain attribute chain."""
    if isinstance(selector, str):
        return selector
    if not callable(selector):
        return None
    try:
        result = selector(_PathRecorder())
    except (AttributeError, TypeError):
        return None
    if isinstance(result, _PathRecorder) and result._parts:
        return ".".join(result._parts)
    return None
