"""Unit tests for currency conversion and display"""

from decimal import Decimal

import pytest

from creator_wallet.domain.exceptions import InvalidAmount
from creator_wallet.utils.currency import format_brl, from_minor_units, to_minor_units


@pytest.mark.parametrize(
    "amount,expected",
    [
        (Decimal("150.50"), 15050),
        (Decimal("0.01"), 1),
        ("500", 50000),
        (200, 20000),
        (Decimal("1234.5"), 123450),
    ],
)
def test_to_minor_units(amount, expected):
    assert to_minor_units(amount) == expected


def test_to_minor_units_rejects_floats():
    """Binary floats never reach the ledger"""
    with pytest.raises(InvalidAmount):
        to_minor_units(0.1)


def test_to_minor_units_rejects_sub_cent_precision():
    with pytest.raises(InvalidAmount):
        to_minor_units(Decimal("10.005"))


@pytest.mark.parametrize("amount", ["abc", "NaN", "Infinity"])
def test_to_minor_units_rejects_non_numbers(amount):
    with pytest.raises(InvalidAmount):
        to_minor_units(amount)


def test_from_minor_units():
    assert from_minor_units(15050) == Decimal("150.50")
    assert from_minor_units(-1) == Decimal("-0.01")


@pytest.mark.parametrize(
    "cents,expected",
    [
        (0, "R$ 0,00"),
        (5, "R$ 0,05"),
        (123456, "R$ 1.234,56"),
        (100000000, "R$ 1.000.000,00"),
        (-5000, "-R$ 50,00"),
    ],
)
def test_format_brl(cents, expected):
    assert format_brl(cents) == expected
