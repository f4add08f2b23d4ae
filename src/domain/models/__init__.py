"""Domain model package.

Entity shapes, query options and filters.  Pure Python / Pydantic with no
ORM or infrastructure dependencies.
"""

from .enums import ExecutionMode, QueryStyle, SortOrder
from .query import ByIdentity, ByIdentitySet, Filter, QueryOptions, SortClause, Unfiltered
from .shape import EntityShape, PropertyInfo, build_shape, selector_path

__all__ = [
    # enums
    "ExecutionMode",
    "QueryStyle",
    "SortOrder",
    # shapes
    "EntityShape",
    "PropertyInfo",
    "build_shape",
    "selector_path",
    # queries
    "QueryOptions",
    "SortClause",
    "Filter",
    "ByIdentity",
    "ByIdentitySet",
    "Unfiltered",
]
