"""Translation of filter + paging/sort options into backend queries.

Both query styles share one QueryPlan so they cannot drift apart:

    sort  : only when sort_order is not UNSPECIFIED; otherwise the backend's
            natural order is used (undefined to callers)
    skip  : (page_number - 1) * page_size, only when paging is active
            (page_number > 1 or page_size > 0)
    limit : page_size, only when page_size > 0

page_size = 0 with page_number > 1 therefore skips (0 rows) but does not
limit; this corner is intentional and kept as is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from src.domain.models.enums import QueryStyle
from src.domain.models.query import Filter, QueryOptions, SortClause, Unfiltered

if TYPE_CHECKING:
    from src.domain.repositories.store import ComposableQuery, Cursor


@dataclass(frozen=True)
class QueryPlan:
    filter: Filter
    sort: SortClause | None = None
    skip: int | None = None
    limit: int | None = None


class QueryTranslator:
    @staticmethod
    def plan(filter: Filter, options: QueryOptions) -> QueryPlan:
        skip = limit = None
        if options.is_paged:
            skip = (options.page_number - 1) * options.page_size
            limit = options.page_size or None
        return QueryPlan(filter=filter, sort=options.sort, skip=skip, limit=limit)

    @staticmethod
    def compose(base: ComposableQuery, plan: QueryPlan) -> ComposableQuery:
        query = base
        if not isinstance(plan.filter, Unfiltered):
            query = query.where(plan.filter)
        if plan.sort is not None:
            query = query.order_by(plan.sort)
        if plan.skip is not None:
            query = query.offset(plan.skip)
        if plan.limit is not None:
            query = query.limit(plan.limit)
        return query

    @staticmethod
    def apply(cursor: Cursor, plan: QueryPlan) -> Cursor:
        if plan.sort is not None:
            cursor = cursor.sort(plan.sort)
        if plan.skip is not None:
            cursor = cursor.skip(plan.skip)
        if plan.limit is not None:
            cursor = cursor.limit(plan.limit)
        return cursor

    def translate(self, store: Any, filter: Filter, options: QueryOptions) -> Any:
        """Build the unexecuted query or cursor in the store's preferred style."""
        plan = self.plan(filter, options)
        if store.query_style is QueryStyle.IMPERATIVE:
            return self.apply(store.find(plan.filter), plan)
        return self.compose(store.as_composable_query(), plan)
