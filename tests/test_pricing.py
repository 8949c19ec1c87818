"""
Pricing Tests.

Integer arithmetic over half-open day ranges.
"""

from datetime import date, datetime

import pytest

from carhire.core.exceptions import InvalidAddon, InvalidDateRange, ValidationError
from carhire.domain.pricing import Addon, calculate_price, price, rental_days


def test_three_days_at_flat_rate():
    assert price(10000, date(2024, 3, 1), date(2024, 3, 4)) == 30000


def test_breakdown_fields():
    breakdown = calculate_price(500000, date(2024, 3, 1), date(2024, 3, 4))

    assert breakdown.days == 3
    assert breakdown.base_amount == 1_500_000
    assert breakdown.addon_amount == 0
    assert breakdown.total == 1_500_000


def test_zero_length_range_rejected():
    with pytest.raises(InvalidDateRange):
        price(10000, date(2024, 3, 1), date(2024, 3, 1))


def test_reversed_range_rejected():
    with pytest.raises(InvalidDateRange):
        price(10000, date(2024, 3, 4), date(2024, 3, 1))


def test_maximum_rental_length():
    assert calculate_price(100, date(2024, 3, 1), date(2024, 3, 31)).days == 30

    with pytest.raises(InvalidDateRange):
        calculate_price(100, date(2024, 3, 1), date(2024, 4, 1))


def test_partial_days_round_up():
    start = datetime(2024, 3, 1, 9, 0)
    assert rental_days(start, datetime(2024, 3, 2, 10, 0)) == 2
    assert rental_days(start, datetime(2024, 3, 2, 9, 0)) == 1


def test_mixed_date_and_datetime_rejected():
    with pytest.raises(InvalidDateRange):
        rental_days(date(2024, 3, 1), datetime(2024, 3, 2, 9, 0))


def test_chauffeur_addon_is_linear():
    addon = Addon(units=40, rate_per_unit=1000)
    breakdown = calculate_price(500000, date(2024, 3, 1), date(2024, 3, 4), addon)

    assert breakdown.addon_units == 40
    assert breakdown.addon_amount == 40000
    assert breakdown.total == 1_540_000


@pytest.mark.parametrize("units", [-1, 5001])
def test_addon_units_out_of_bounds(units):
    with pytest.raises(InvalidAddon):
        calculate_price(100, date(2024, 3, 1), date(2024, 3, 2), Addon(units=units, rate_per_unit=1000))


def test_negative_rate_rejected():
    with pytest.raises(ValidationError):
        price(-1, date(2024, 3, 1), date(2024, 3, 2))
