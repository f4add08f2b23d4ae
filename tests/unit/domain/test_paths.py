"""Tests for src/domain/services/paths.py."""

from unittest.mock import patch

import pytest
from pydantic import BaseModel

from src.domain.exceptions import InvalidPropertyPath
from src.domain.services.identity import IdentityResolver
from src.domain.services.paths import PropertyPathValidator


class Country(BaseModel):
    code: str


class Address(BaseModel):
    city: str
    country: Country


class Line(BaseModel):
    sku: str
    quantity: int


class Order(BaseModel):
    order_id: int
    total: float
    address: Address
    lines: list[Line] = []


@pytest.fixture
def validator():
    return PropertyPathValidator(IdentityResolver())


# --- plain names ---

def test_validate_name_returns_exact_name(validator):
    assert validator.validate_name(Order, "total") == "total"


def test_validate_name_corrects_case(validator):
    assert validator.validate_name(Order, "TOTAL") == "total"


def test_validate_name_raises_for_unknown_property(validator):
    with pytest.raises(InvalidPropertyPath) as exc_info:
        validator.validate_name(Order, "missing")
    assert exc_info.value.path == "missing"
    assert exc_info.value.type_name == "Order"


def test_plain_name_short_circuits_the_path_walk(validator):
    with patch.object(validator, "validate_name", wraps=validator.validate_name) as spy:
        validator.validate_path(Order, "total")
    spy.assert_called_once_with(Order, "total")


# --- dotted paths ---

def test_validate_path_walks_nested_models(validator):
    assert validator.validate_path(Order, "Address.City") == "address.city"


def test_validate_path_walks_two_levels(validator):
    assert validator.validate_path(Order, "address.country.CODE") == "address.country.code"


def test_validate_path_walks_into_sequence_elements(validator):
    assert validator.validate_path(Order, "lines.SKU") == "lines.sku"


def test_validate_path_raises_for_unknown_segment(validator):
    with pytest.raises(InvalidPropertyPath) as exc_info:
        validator.validate_path(Order, "address.zip")
    assert exc_info.value.path == "address.zip"


def test_validate_path_raises_when_walking_past_a_scalar(validator):
    with pytest.raises(InvalidPropertyPath):
        validator.validate_path(Order, "total.value")


# --- selectors ---

def test_validate_accepts_selectors(validator):
    assert validator.validate(Order, lambda o: o.address.city) == "address.city"


def test_validate_rejects_unrecordable_selectors(validator):
    with pytest.raises(InvalidPropertyPath):
        validator.validate(Order, lambda o: o.total * 2)
