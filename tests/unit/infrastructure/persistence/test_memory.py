"""Tests for src/infrastructure/persistence/memory.py."""

import threading

import pytest
from pydantic import BaseModel

from src.domain.exceptions import OperationCancelled, StoreError
from src.domain.models.enums import ExecutionMode, QueryStyle
from src.domain.models.query import ByIdentity, ByIdentitySet, SortClause, Unfiltered
from src.domain.services.bridge import CancellationToken
from src.domain.services.identity import IdentityResolver
from src.infrastructure.persistence.memory import InMemoryStore


class Line(BaseModel):
    sku: str
    qty: int


class Address(BaseModel):
    city: str | None = None


class Order(BaseModel):
    order_id: int
    total: float
    address: Address = Address()
    lines: list[Line] = []


class Note(BaseModel):
    text: str


def _order(order_id, total=1.0, city=None, qtys=()):
    return Order(
        order_id=order_id,
        total=total,
        address=Address(city=city),
        lines=[Line(sku=f"s{q}", qty=q) for q in qtys],
    )


@pytest.fixture
def store():
    return InMemoryStore(Order, identity=IdentityResolver())


def _ids(orders):
    return [o.order_id for o in orders]


# --- basics ---

def test_native_mode_is_sync(store):
    assert store.native_mode is ExecutionMode.SYNC
    assert store.query_style is QueryStyle.IMPERATIVE


def test_insert_and_find_one(store):
    store.insert_one(_order(1))
    assert store.find_one(ByIdentity("order_id", 1)) == _order(1)
    assert store.find_one(ByIdentity("order_id", 2)) is None


def test_entities_are_copied_in_and_out(store):
    order = _order(1, 5.0)
    store.insert_one(order)
    order.total = 99.0
    fetched = store.find_one(ByIdentity("order_id", 1))
    fetched.total = 42.0
    assert store.find_one(ByIdentity("order_id", 1)).total == 5.0


def test_duplicate_identity_raises_store_error(store):
    store.insert_one(_order(1))
    with pytest.raises(StoreError, match="Duplicate key"):
        store.insert_one(_order(1))
    assert len(store) == 1


def test_insert_many_rejects_duplicates_inside_batch_atomically(store):
    with pytest.raises(StoreError):
        store.insert_many([_order(1), _order(2), _order(1)])
    assert len(store) == 0


def test_types_without_identity_allow_equal_rows():
    notes = InMemoryStore(Note, identity=IdentityResolver())
    notes.insert_many([Note(text="a"), Note(text="a")])
    assert len(notes) == 2


def test_replace_where_replaces_first_match_only(store):
    store.insert_many([_order(1, 1.0), _order(2, 2.0)])
    store.replace_where(ByIdentity("order_id", 2), _order(2, 20.0))
    assert [o.total for o in store.query()] == [1.0, 20.0]


def test_replace_where_without_match_changes_nothing(store):
    store.insert_one(_order(1))
    store.replace_where(ByIdentity("order_id", 9), _order(9))
    assert _ids(store.query()) == [1]


def test_delete_where_with_identity_set(store):
    store.insert_many(_order(i) for i in range(5))
    store.delete_where(ByIdentitySet("order_id", (0, 2, 4)))
    assert _ids(store.query()) == [1, 3]


def test_delete_where_unfiltered_empties_the_store(store):
    store.insert_many(_order(i) for i in range(3))
    store.delete_where(Unfiltered())
    assert len(store) == 0


# --- querying ---

def test_cursor_sort_skip_limit(store):
    store.insert_many(_order(i, t) for i, t in enumerate([3.0, 1.0, 4.0, 1.5, 5.0]))
    cursor = store.find(Unfiltered()).sort(SortClause("total")).skip(1).limit(2)
    assert [o.total for o in cursor.to_list()] == [1.5, 3.0]


def test_query_helper_matches_cursor(store):
    store.insert_many(_order(i, t) for i, t in enumerate([3.0, 1.0, 4.0]))
    assert _ids(store.query(sort=SortClause("total", descending=True), limit=2)) == [2, 0]


def test_composable_query_is_immutable(store):
    store.insert_many(_order(i, float(i)) for i in range(4))
    base = store.as_composable_query().order_by(SortClause("total", descending=True))
    limited = base.limit(1)
    assert _ids(store.execute(base)) == [3, 2, 1, 0]
    assert _ids(store.execute(limited)) == [3]


def test_composable_query_where_filters(store):
    store.insert_many(_order(i) for i in range(4))
    query = store.as_composable_query().where(ByIdentitySet("order_id", (1, 3)))
    assert _ids(query) == [1, 3]


def test_sort_by_nested_path_puts_missing_values_first(store):
    store.insert_many([_order(1, city="Oslo"), _order(2), _order(3, city="Bergen")])
    assert _ids(store.query(sort=SortClause("address.city"))) == [2, 3, 1]


def test_sort_over_sequence_uses_min_ascending_and_max_descending(store):
    store.insert_many([_order(1, qtys=(5, 1)), _order(2, qtys=(3,)), _order(3, qtys=(2, 9))])
    assert _ids(store.query(sort=SortClause("lines.qty"))) == [1, 3, 2]
    assert _ids(store.query(sort=SortClause("lines.qty", descending=True))) == [3, 1, 2]


def test_sort_is_stable_for_equal_keys(store):
    store.insert_many(_order(i, 1.0) for i in range(5))
    assert _ids(store.query(sort=SortClause("total"))) == [0, 1, 2, 3, 4]


# --- cancellation / concurrency ---

def test_cancelled_token_stops_before_write(store):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelled):
        store.insert_one(_order(1), cancellation=token)
    assert len(store) == 0


def test_concurrent_inserts_are_all_kept(store):
    def _insert(start):
        store.insert_many(_order(i) for i in range(start, start + 50))

    threads = [threading.Thread(target=_insert, args=(n * 50,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(store) == 400
