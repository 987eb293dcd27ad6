from decimal import Decimal

import pytest

from shopledger.errors import InvalidAmount
from shopledger.money import (
    MAX_PRICE_CENTS,
    check_minor_units,
    format_money,
    to_decimal,
    to_minor_units,
)


def test_float_price_converts_exactly():
    assert to_minor_units(14.99) == 1499
    assert to_decimal(1499) == Decimal("14.99")


ROUND_TRIP_AMOUNTS = ["0", "0.01", "0.10", "0.05", "1", "100.10", "19.99", "9999999.99"]


@pytest.mark.parametrize("text", ROUND_TRIP_AMOUNTS)
@pytest.mark.parametrize("as_input", [Decimal, str, float], ids=["decimal", "str", "float"])
def test_two_place_amounts_round_trip(text, as_input):
    amount = as_input(text)
    assert to_decimal(to_minor_units(amount)) == Decimal(text)


@pytest.mark.parametrize(
    "amount, expected",
    [
        ("8.50", 850),
        (Decimal("0.005"), 1),
        ("0.004", 0),
        ("1,234.56", 123456),
        (12, 1200),
        (0, 0),
        ("14.999", 1500),
    ],
)
def test_to_minor_units_rounds_half_up(amount, expected):
    assert to_minor_units(amount) == expected


@pytest.mark.parametrize("amount", [-1, "-0.01", "abc", "", True, None, float("nan"), "Infinity"])
def test_to_minor_units_rejects_bad_input(amount):
    with pytest.raises(InvalidAmount):
        to_minor_units(amount)


def test_to_minor_units_enforces_ceiling():
    assert to_minor_units("9999999.99") == MAX_PRICE_CENTS
    with pytest.raises(InvalidAmount) as exc:
        to_minor_units("10000000.00", field="selling_price")
    assert exc.value.details["field"] == "selling_price"


def test_check_minor_units_is_strict_about_type():
    assert check_minor_units(0) == 0
    with pytest.raises(InvalidAmount):
        check_minor_units(12.0)
    with pytest.raises(InvalidAmount):
        check_minor_units(False)
    with pytest.raises(InvalidAmount):
        check_minor_units(-5)


def test_to_decimal_always_has_two_places():
    assert str(to_decimal(0)) == "0.00"
    assert str(to_decimal(5)) == "0.05"
    assert format_money(150000) == "1500.00"


def test_format_money_keeps_sign():
    assert format_money(-1234) == "-12.34"
