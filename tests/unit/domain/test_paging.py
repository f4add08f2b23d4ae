"""Tests for PagingSortState (src/domain/services/paging.py) and QueryOptions."""

import pytest
from pydantic import BaseModel, ValidationError

from src.domain.exceptions import InvalidPropertyPath
from src.domain.models.enums import SortOrder
from src.domain.models.query import QueryOptions, SortClause
from src.domain.services.identity import IdentityResolver
from src.domain.services.paging import PagingSortState
from src.domain.services.paths import PropertyPathValidator


class Address(BaseModel):
    city: str


class Order(BaseModel):
    order_id: int
    customer: str
    total: float
    address: Address | None = None


def _state():
    return PagingSortState(Order, PropertyPathValidator(IdentityResolver()))


# --- defaults ---

def test_defaults_are_first_page_unbounded_unsorted():
    state = _state()
    assert (state.page_number, state.page_size) == (1, 0)
    assert (state.sort_property_name, state.sort_order) == (None, SortOrder.UNSPECIFIED)


# --- paging ---

def test_page_sets_number_and_size():
    state = _state().page(3, 25)
    assert (state.page_number, state.page_size) == (3, 25)


def test_page_returns_same_instance():
    state = _state()
    assert state.page(1, 10) is state


def test_page_size_zero_is_accepted():
    assert _state().page(2, 0).page_size == 0


def test_page_number_below_one_is_rejected():
    with pytest.raises(ValueError):
        _state().page(0, 10)


def test_negative_page_size_is_rejected():
    with pytest.raises(ValueError):
        _state().page(1, -1)


def test_clear_paging_resets_after_any_sequence_of_pages():
    state = _state().page(4, 10).page(2, 5).page(9, 0)
    state.clear_paging()
    assert (state.page_number, state.page_size) == (1, 0)


def test_clear_paging_is_idempotent():
    state = _state().clear_paging().clear_paging()
    assert (state.page_number, state.page_size) == (1, 0)


# --- sorting ---

def test_sort_by_sets_ascending_with_corrected_case():
    state = _state().sort_by("TOTAL")
    assert (state.sort_property_name, state.sort_order) == ("total", SortOrder.ASCENDING)


def test_sort_by_descending_sets_descending():
    state = _state().sort_by_descending("customer")
    assert state.sort_order == SortOrder.DESCENDING


def test_sort_by_accepts_selector():
    assert _state().sort_by(lambda o: o.address.city).sort_property_name == "address.city"


def test_sort_by_invalid_property_leaves_state_unchanged():
    state = _state().sort_by_descending("total")
    with pytest.raises(InvalidPropertyPath):
        state.sort_by("missing")
    assert (state.sort_property_name, state.sort_order) == ("total", SortOrder.DESCENDING)


def test_sort_by_none_is_rejected():
    with pytest.raises(ValueError):
        _state().sort_by(None)


def test_clear_sorting_resets():
    state = _state().sort_by("total").clear_sorting()
    assert (state.sort_property_name, state.sort_order) == (None, SortOrder.UNSPECIFIED)


# --- build ---

def test_build_snapshots_current_state():
    options = _state().sort_by("total").page(2, 10).build()
    assert options == QueryOptions(
        page_number=2, page_size=10, sort_property_name="total", sort_order=SortOrder.ASCENDING
    )


def test_build_is_not_affected_by_later_mutation():
    state = _state().page(2, 10)
    options = state.build()
    state.page(5, 50)
    assert options.page_number == 2


# --- QueryOptions ---

def test_query_options_is_frozen():
    with pytest.raises(ValidationError):
        QueryOptions().page_number = 3


def test_query_options_rejects_page_number_below_one():
    with pytest.raises(ValidationError):
        QueryOptions(page_number=0)


def test_query_options_rejects_negative_page_size():
    with pytest.raises(ValidationError):
        QueryOptions(page_size=-5)


def test_query_options_rejects_sort_order_without_property():
    with pytest.raises(ValidationError):
        QueryOptions(sort_order=SortOrder.ASCENDING)


def test_unspecified_order_has_no_sort_clause():
    assert QueryOptions(sort_property_name="total").sort is None


def test_unspecified_order_keeps_but_ignores_property_name():
    options = QueryOptions(sort_property_name="total")
    assert options.sort_property_name == "total"
    assert options.sort is None


def test_descending_sort_clause():
    options = QueryOptions(sort_property_name="total", sort_order=SortOrder.DESCENDING)
    assert options.sort == SortClause("total", descending=True)


@pytest.mark.parametrize(
    "number,size,paged",
    [(1, 0, False), (1, 10, True), (2, 0, True), (3, 5, True)],
)
def test_is_paged(number, size, paged):
    assert QueryOptions(page_number=number, page_size=size).is_paged is paged
