"""Property name and dotted-path validation.

Validation only corrects case: "address.CITY" → "address.city".  Backends
compare field names exactly, user input often does not.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from src.domain.exceptions import InvalidPropertyPath
from src.domain.models.shape import is_structured, selector_path

from .identity import IdentityResolver, identity_resolver


class PropertyPathValidator:
    def __init__(self, identity: IdentityResolver | None = None) -> None:
        self._identity = identity or identity_resolver

    def validate_name(self, entity_type: type, name: str) -> str:
        """Validate a single (non-dotted) property name."""
        shape = self._identity.shape(entity_type)
        info = shape.find_property(name)
        if info is None:
            raise InvalidPropertyPath(name, shape.type_name)
        return info.name

    def validate_path(self, entity_type: type, path: str) -> str:
        if "." not in path:
            return self.validate_name(entity_type, path)

        root_name = entity_type.__name__
        current: Any = entity_type
        validated: list[str] = []
        for segment in path.split("."):
            if validated and not is_structured(current):
                raise InvalidPropertyPath(path, root_name)
            info = self._identity.shape(current).find_property(segment)
            if info is None:
                raise InvalidPropertyPath(path, root_name)
            validated.append(info.name)
            current = info.element_type
        return ".".join(validated)

    def validate(self, entity_type: type, prop: str | Callable[[Any], Any]) -> str:
        """Validate a name, dotted path or attribute selector."""
        path = selector_path(prop)
        if not path:
            raise InvalidPropertyPath(repr(prop), entity_type.__name__)
        return self.validate_path(entity_type, path)
