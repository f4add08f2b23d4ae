"""Domain services package."""

from .bridge import CancellationToken, SyncAsyncBridge, default_bridge
from .identity import IdentityResolver, identity_resolver
from .paging import PagingSortState
from .paths import PropertyPathValidator
from .translation import QueryPlan, QueryTranslator

__all__ = [
    "CancellationToken",
    "IdentityResolver",
    "PagingSortState",
    "PropertyPathValidator",
    "QueryPlan",
    "QueryTranslator",
    "SyncAsyncBridge",
    "default_bridge",
    "identity_resolver",
]
