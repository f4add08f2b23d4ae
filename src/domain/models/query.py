"""Per-call query values: options, sort clause and filters.

QueryOptions is the immutable snapshot of paging/sort state that a read
operation actually executes with.  Filters are built inside a single
operation call and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import SortOrder


@dataclass(frozen=True)
class SortClause:
    property_path: str
    descending: bool = False


class QueryOptions(BaseModel):
    """Paging and sorting for one read.

    page_size = 0 means unbounded.  sort_property_name is only meaningful
    when sort_order is not UNSPECIFIED; it is kept but ignored otherwise.
    """

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(default=1, ge=1)
    page_size: int = Field(default=0, ge=0)
    sort_property_name: str | None = None
    sort_order: SortOrder = SortOrder.UNSPECIFIED

    @model_validator(mode="after")
    def _sort_needs_property(self) -> QueryOptions:
        if self.sort_order is not SortOrder.UNSPECIFIED and not self.sort_property_name:
            raise ValueError(f"sort_order {self.sort_order.value} requires sort_property_name")
        return self

    @property
    def sort(self) -> SortClause | None:
        if self.sort_order is SortOrder.UNSPECIFIED:
            return None
        return SortClause(
            property_path=self.sort_property_name,
            descending=self.sort_order is SortOrder.DESCENDING,
        )

    @property
    def is_paged(self) -> bool:
        return self.page_number > 1 or self.page_size > 0


# --- filters ---

@dataclass(frozen=True)
class ByIdentity:
    """Equality on the identity property."""

    field: str
    value: Any


@dataclass(frozen=True)
class ByIdentitySet:
    """Membership of the identity property in a set of values."""

    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Unfiltered:
    pass


Filter = ByIdentity | ByIdentitySet | Unfiltered
