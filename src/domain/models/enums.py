"""Domain enumerations for the repository engine.

All string-valued enums use str mixin so they serialize cleanly to JSON
and remain comparable to plain strings (Pydantic default behaviour).
"""

from enum import Enum


class SortOrder(str, Enum):
    UNSPECIFIED = "unspecified"
    ASCENDING = "ascending"
    DESCENDING = "descending"


class QueryStyle(str, Enum):
    """How a store prefers reads to be expressed.

    COMPOSABLE : an immutable query built by successive where/order_by/
                  offset/limit calls, executed as a whole.
    IMPERATIVE : a cursor returned by find(filter) that is then sorted,
                  skipped and limited in place.
    """

    COMPOSABLE = "composable"
    IMPERATIVE = "imperative"


class ExecutionMode(str, Enum):
    """Which form of a store's methods is the real implementation."""

    SYNC = "sync"
    ASYNC = "async"
