"""Fluent paging/sort state.

PagingSortState is a mutable builder: every call mutates in place and
returns the same instance for chaining.  Reads never execute against the
builder itself; build() snapshots it into an immutable QueryOptions.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from src.domain.models.enums import SortOrder
from src.domain.models.query import QueryOptions

from .paths import PropertyPathValidator


class PagingSortState:
    def __init__(
        self,
        entity_type: type,
        validator: PropertyPathValidator | None = None,
    ) -> None:
        self._entity_type = entity_type
        self._validator = validator or PropertyPathValidator()
        self.page_number = 1
        self.page_size = 0
        self.sort_property_name: str | None = None
        self.sort_order = SortOrder.UNSPECIFIED

    def page(self, number: int, size: int) -> PagingSortState:
        """Select a one-based page; size 0 leaves the page unbounded."""
        if number < 1:
            raise ValueError(f"page number must be >= 1, got {number}")
        if size < 0:
            raise ValueError(f"page size must be >= 0, got {size}")
        self.page_number = number
        self.page_size = size
        return self

    def clear_paging(self) -> PagingSortState:
        self.page_number = 1
        self.page_size = 0
        return self

    def sort_by(self, prop: str | Callable[[Any], Any]) -> PagingSortState:
        return self._sort(prop, SortOrder.ASCENDING)

    def sort_by_descending(self, prop: str | Callable[[Any], Any]) -> PagingSortState:
        return self._sort(prop, SortOrder.DESCENDING)

    def clear_sorting(self) -> PagingSortState:
        self.sort_property_name = None
        self.sort_order = SortOrder.UNSPECIFIED
        return self

    def _sort(self, prop: str | Callable[[Any], Any], order: SortOrder) -> PagingSortState:
        if prop is None:
            raise ValueError("sort property must not be None")
        # validate first: a bad name leaves the state untouched
        name = self._validator.validate(self._entity_type, prop)
        self.sort_property_name = name
        self.sort_order = order
        return self

    def build(self) -> QueryOptions:
        return QueryOptions(
            page_number=self.page_number,
            page_size=self.page_size,
            sort_property_name=self.sort_property_name,
            sort_order=self.sort_order,
        )
